"""
Auth - fault definitions.
"""

from ..faults import AuthenticationFault, AuthorizationFault


class AuthenticationRequiredFault(AuthenticationFault):
    code = "AUTHENTICATION_REQUIRED"

    def __init__(self, reason: str = "No token provided"):
        super().__init__("Authentication required", [reason])


class TokenExpiredFault(AuthenticationFault):
    code = "TOKEN_EXPIRED"

    def __init__(self):
        super().__init__("Authentication failed", ["Token expired"])


class TokenInvalidFault(AuthenticationFault):
    code = "TOKEN_INVALID"

    def __init__(self, reason: str = ""):
        super().__init__("Authentication failed", ["Invalid token"], metadata={"reason": reason})


class InsufficientRoleFault(AuthorizationFault):
    code = "INSUFFICIENT_ROLE"

    def __init__(self, role: str = "", required: tuple[str, ...] = ()):
        super().__init__(
            "Access denied",
            ["You do not have permission to access this resource"],
            metadata={"role": role, "required": list(required)},
        )
