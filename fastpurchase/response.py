"""
Response - HTTP response builder and the service's JSON envelope.

Every JSON body the service emits has the shape::

    {"success": bool, "message": str, "object": any, "errors": [str] | null}

with ``pageNumber``/``pageSize``/``totalSize`` added for paginated lists.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence


_TWO_PLACES = Decimal("0.01")


def _json_default_serializer(o: Any) -> Any:
    """Default JSON serializer for non-standard types."""
    if isinstance(o, Decimal):
        # Money goes out as a JSON number; repr of a two-place float keeps the
        # cents digits for every amount a price or order total can hold.
        return float(o.quantize(_TWO_PLACES))
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    if isinstance(o, (set, tuple)):
        return list(o)
    return str(o)


def dumps(obj: Any) -> bytes:
    return json.dumps(obj, default=_json_default_serializer, separators=(",", ":")).encode("utf-8")


# ============================================================================
# Envelope
# ============================================================================

def envelope(
    success: bool,
    message: str,
    obj: Any = None,
    errors: Optional[Sequence[str]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": success, "message": message, "object": obj}
    body.update(extra)
    body["errors"] = list(errors) if errors else None
    return body


def paginated_envelope(
    message: str,
    items: List[Any],
    *,
    page_number: int,
    page_size: int,
    total_size: int,
) -> Dict[str, Any]:
    return envelope(
        True,
        message,
        items,
        pageNumber=page_number,
        pageSize=page_size,
        totalSize=total_size,
    )


# ============================================================================
# Response
# ============================================================================

class Response:
    """
    Buffered HTTP response.

    Headers are stored lower-cased in a plain dict; middleware mutates
    ``response.headers`` directly.
    """

    __slots__ = ("status", "_content", "_headers")

    def __init__(
        self,
        content: bytes | str = b"",
        status: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        media_type: Optional[str] = None,
    ):
        self.status = status
        self._content = content.encode("utf-8") if isinstance(content, str) else content
        self._headers: Dict[str, str] = {}
        if headers:
            for key, value in headers.items():
                self._headers[key.lower()] = value
        if media_type:
            self._headers["content-type"] = media_type
        elif "content-type" not in self._headers:
            self._headers["content-type"] = (
                "text/plain; charset=utf-8" if isinstance(content, str) else "application/octet-stream"
            )

    @property
    def headers(self) -> Dict[str, str]:
        return self._headers

    @property
    def body(self) -> bytes:
        return self._content

    # ========================================================================
    # Factory Methods
    # ========================================================================

    @classmethod
    def json(
        cls,
        obj: Any,
        status: int = 200,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "Response":
        return cls(
            content=dumps(obj),
            status=status,
            headers=headers,
            media_type="application/json; charset=utf-8",
        )

    @classmethod
    def ok(cls, message: str, obj: Any = None, status: int = 200, **extra: Any) -> "Response":
        """Success envelope."""
        return cls.json(envelope(True, message, obj, **extra), status=status)

    @classmethod
    def created(cls, message: str, obj: Any = None) -> "Response":
        return cls.ok(message, obj, status=201)

    @classmethod
    def error(
        cls,
        message: str,
        errors: Sequence[str],
        status: int = 400,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "Response":
        """Failure envelope; ``errors`` must be non-empty."""
        return cls.json(envelope(False, message, None, errors or [message]), status=status, headers=headers)

    # ========================================================================
    # ASGI
    # ========================================================================

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]]) -> None:
        self._headers["content-length"] = str(len(self._content))
        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": [
                (name.encode("latin-1"), str(value).encode("latin-1"))
                for name, value in self._headers.items()
            ],
        })
        await send({"type": "http.response.body", "body": self._content, "more_body": False})

    def __repr__(self) -> str:
        return f"<Response [{self.status}] {len(self._content)}B>"
