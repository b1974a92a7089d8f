"""
Auth - bearer tokens.

Compact JWS (``header.payload.signature``) signed with HMAC-SHA256 under a
shared secret. Claims::

    {"userId", "username", "role", "iat", "exp", "iss"}
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import time
from dataclasses import dataclass
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

from .faults import TokenExpiredFault, TokenInvalidFault

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str | int) -> int:
    """
    Parse a duration such as ``"24h"``, ``"30m"``, ``"7d"`` or ``3600``
    into seconds.

    Raises:
        ValueError: On anything else
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        if value <= 0:
            raise ValueError(f"Duration must be positive: {value!r}")
        return value
    m = _DURATION_RE.match(str(value))
    if not m:
        raise ValueError(f"Invalid duration: {value!r}")
    seconds = int(m.group(1)) * _UNIT_SECONDS[m.group(2)]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds


@dataclass
class TokenConfig:
    """Token manager configuration."""
    secret: str
    issuer: str = "fastpurchase"
    ttl: int = 86400  # 24 hours
    algorithm: str = "HS256"


class TokenManager:
    """
    Token lifecycle manager.

    Responsibilities:
    - Issue signed access tokens
    - Validate token signatures and claims

    Validation checks, in order: format, header, signature, issuer,
    expiration. An expired token raises ``TokenExpiredFault``; every other
    failure raises ``TokenInvalidFault``.
    """

    def __init__(self, config: TokenConfig):
        if not config.secret:
            raise ValueError("Token secret must not be empty")
        if config.algorithm != "HS256":
            raise ValueError(f"Unsupported algorithm: {config.algorithm}")
        self.config = config
        self._key = config.secret.encode("utf-8")

    async def issue_access_token(
        self,
        user_id: str,
        username: str,
        role: str,
        ttl: int | None = None,
    ) -> str:
        """Issue a signed access token for an account."""
        now = int(time.time())
        payload = {
            "userId": user_id,
            "username": username,
            "role": role,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.config.ttl),
            "iss": self.config.issuer,
        }
        return self._sign_token(payload)

    async def validate_access_token(self, token: str) -> dict[str, Any]:
        """
        Validate and decode an access token.

        Raises:
            TokenExpiredFault: Signature valid but ``exp`` has passed
            TokenInvalidFault: Any other failure
        """
        try:
            header_b64, payload_b64, signature_b64 = token.split(".")
        except ValueError:
            raise TokenInvalidFault("Malformed token: expected 3 parts") from None

        try:
            header = self._base64_decode_json(header_b64)
            signature = self._base64_decode(signature_b64)
        except (ValueError, binascii.Error) as e:
            raise TokenInvalidFault(f"Undecodable token: {e}") from None

        if not isinstance(header, dict) or header.get("alg") != self.config.algorithm:
            raise TokenInvalidFault("Unexpected algorithm")

        message = f"{header_b64}.{payload_b64}".encode()
        if not self._verify_signature(message, signature):
            raise TokenInvalidFault("Invalid signature")

        try:
            payload = self._base64_decode_json(payload_b64)
        except (ValueError, binascii.Error) as e:
            raise TokenInvalidFault(f"Undecodable payload: {e}") from None

        if not isinstance(payload, dict):
            raise TokenInvalidFault("Payload is not an object")
        if payload.get("iss") != self.config.issuer:
            raise TokenInvalidFault("Unexpected issuer")
        for claim in ("userId", "username", "role"):
            if not isinstance(payload.get(claim), str):
                raise TokenInvalidFault(f"Missing claim: {claim}")

        exp = payload.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise TokenInvalidFault("Missing exp claim")
        if exp <= int(time.time()):
            raise TokenExpiredFault()

        return payload

    def _sign_token(self, payload: dict[str, Any]) -> str:
        header = {"alg": self.config.algorithm, "typ": "JWT"}
        header_b64 = self._base64_encode_json(header)
        payload_b64 = self._base64_encode_json(payload)
        message = f"{header_b64}.{payload_b64}".encode()
        signature_b64 = self._base64_encode(self._create_signature(message))
        return f"{header_b64}.{payload_b64}.{signature_b64}"

    def _create_signature(self, message: bytes) -> bytes:
        h = hmac.HMAC(self._key, hashes.SHA256())
        h.update(message)
        return h.finalize()

    def _verify_signature(self, message: bytes, signature: bytes) -> bool:
        h = hmac.HMAC(self._key, hashes.SHA256())
        h.update(message)
        try:
            h.verify(signature)
        except InvalidSignature:
            return False
        return True

    def _base64_encode(self, data: bytes) -> str:
        """URL-safe base64 encode."""
        return base64.urlsafe_b64encode(data).rstrip(b"=").decode()

    def _base64_decode(self, data: str) -> bytes:
        """URL-safe base64 decode."""
        padding = 4 - (len(data) % 4)
        if padding != 4:
            data += "=" * padding
        return base64.urlsafe_b64decode(data.encode("ascii"))

    def _base64_encode_json(self, data: dict) -> str:
        return self._base64_encode(json.dumps(data, separators=(",", ":")).encode())

    def _base64_decode_json(self, data: str) -> Any:
        return json.loads(self._base64_decode(data))
