"""
Auth - credentials, tokens and route guards.

Components:
- PasswordHasher / PasswordPolicy: argon2id hashing and strength rules
- TokenManager: HS256 bearer tokens
- AuthGuard / RoleGuard: controller pipeline nodes
- Identity: the authenticated account on ``RequestCtx.identity``
"""

from .faults import (
    AuthenticationRequiredFault,
    TokenExpiredFault,
    TokenInvalidFault,
    InsufficientRoleFault,
)
from .guards import AuthGuard, Guard, Identity, RoleGuard
from .hashing import PasswordHasher, PasswordPolicy
from .tokens import TokenConfig, TokenManager, parse_duration

__all__ = [
    "AuthenticationRequiredFault",
    "TokenExpiredFault",
    "TokenInvalidFault",
    "InsufficientRoleFault",
    "Guard",
    "AuthGuard",
    "RoleGuard",
    "Identity",
    "PasswordHasher",
    "PasswordPolicy",
    "TokenConfig",
    "TokenManager",
    "parse_duration",
]
