"""
Request - lean ASGI HTTP request wrapper.

Provides:
- Lazy header and query-string parsing
- Idempotent body read with a size limit
- JSON parsing that raises ``InvalidJSONFault`` instead of bare errors
- Per-request ``state`` dict for middleware hand-off
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl

from .faults import InvalidJSONFault, ValidationFault

_EMPTY = object()


class Request:
    """
    HTTP request built from an ASGI scope and receive callable.
    """

    __slots__ = (
        "scope",
        "_receive",
        "max_body_size",
        "state",
        "_body",
        "_json",
        "_query_params",
        "_headers",
    )

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[dict]],
        *,
        max_body_size: int = 1_048_576,
    ):
        self.scope = scope
        self._receive = receive
        self.max_body_size = max_body_size
        self.state: Dict[str, Any] = {}
        self._body: Optional[bytes] = None
        self._json: Any = _EMPTY
        self._query_params: Optional[Dict[str, str]] = None
        self._headers: Optional[Dict[str, str]] = None

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        return self.scope.get("method", "GET")

    @property
    def path(self) -> str:
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("latin-1")

    @property
    def client(self) -> Optional[Tuple[str, int]]:
        return self.scope.get("client")

    @property
    def path_params(self) -> Dict[str, Any]:
        return self.state.get("path_params", {})

    def client_ip(self) -> str:
        client = self.client
        return client[0] if client else "0.0.0.0"

    # ========================================================================
    # Query Parameters & Headers
    # ========================================================================

    @property
    def query_params(self) -> Dict[str, str]:
        """Parsed query parameters; the first occurrence of a name wins."""
        if self._query_params is None:
            params: Dict[str, str] = {}
            for name, value in parse_qsl(self.query_string, keep_blank_values=True):
                params.setdefault(name, value)
            self._query_params = params
        return self._query_params

    def query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.query_params.get(name, default)

    @property
    def headers(self) -> Dict[str, str]:
        if self._headers is None:
            self._headers = {
                name.decode("latin-1").lower(): value.decode("latin-1")
                for name, value in self.scope.get("headers", [])
            }
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single header (case-insensitive)."""
        return self.headers.get(name.lower(), default)

    # ========================================================================
    # Body
    # ========================================================================

    async def body(self) -> bytes:
        """
        Read full request body (idempotent).

        Raises:
            ValidationFault: If body exceeds ``max_body_size``
        """
        if self._body is not None:
            return self._body

        chunks: List[bytes] = []
        total = 0
        more_body = True
        while more_body:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            total += len(chunk)
            if total > self.max_body_size:
                raise ValidationFault(
                    "Payload too large",
                    [f"Request body exceeds {self.max_body_size} bytes"],
                    status=413,
                )
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        self._body = b"".join(chunks)
        return self._body

    async def json(self) -> Any:
        """
        Parse request body as JSON. An empty body parses to ``None``.

        Raises:
            InvalidJSONFault: If the body is not valid UTF-8 JSON
        """
        if self._json is not _EMPTY:
            return self._json

        raw = await self.body()
        if not raw.strip():
            self._json = None
            return None
        try:
            self._json = stdlib_json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise InvalidJSONFault(f"Invalid UTF-8: {e}") from e
        except (ValueError, RecursionError) as e:
            # JSONDecodeError, over-long integer literals and very deep nesting
            raise InvalidJSONFault(str(e)) from e
        return self._json

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
