"""
Auth - guards.

Guards are controller pipeline nodes: async callables taking
``(request, ctx)`` that raise a fault to reject the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, TYPE_CHECKING

from .faults import AuthenticationRequiredFault, InsufficientRoleFault
from .tokens import TokenManager

if TYPE_CHECKING:
    from ..controller.base import RequestCtx
    from ..request import Request


@dataclass(frozen=True)
class Identity:
    """
    Authenticated account, as carried by a validated token.

    Lives on ``RequestCtx.identity`` for the duration of one request.
    """
    id: str
    username: str
    role: str

    def has_role(self, *roles: str) -> bool:
        return self.role in roles


class Guard:
    """Base guard."""

    async def __call__(self, request: "Request", ctx: "RequestCtx") -> None:
        raise NotImplementedError


class AuthGuard(Guard):
    """
    Authentication guard - requires a valid ``Authorization: Bearer`` token.

    Places the token's ``Identity`` on ``ctx.identity``.
    """

    scheme = "Bearer "

    async def __call__(self, request: "Request", ctx: "RequestCtx") -> None:
        header = request.header("authorization") or ""
        if not header.startswith(self.scheme):
            raise AuthenticationRequiredFault()

        token = header[len(self.scheme):].strip()
        token_manager = ctx.container.resolve(TokenManager)
        claims = await token_manager.validate_access_token(token)
        identity = Identity(id=claims["userId"], username=claims["username"], role=claims["role"])

        ctx.identity = identity
        request.state["identity"] = identity


class RoleGuard(Guard):
    """
    Authorization guard - requires one of ``roles``.

    Must run after ``AuthGuard`` in the same pipeline.
    """

    def __init__(self, roles: Iterable[str]):
        self.roles = tuple(roles)

    async def __call__(self, request: "Request", ctx: "RequestCtx") -> None:
        identity = ctx.identity
        if identity is None:
            raise AuthenticationRequiredFault("No user information found")
        if not identity.has_role(*self.roles):
            raise InsufficientRoleFault(identity.role, self.roles)
