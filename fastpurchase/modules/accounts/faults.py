"""
Accounts Module - Fault Definitions
"""

from typing import Sequence

from fastpurchase.faults import (
    AuthenticationFault,
    FaultDomain,
    InternalFault,
    ValidationFault,
)


ACCOUNTS_DOMAIN = FaultDomain(
    name="accounts",
    description="Registration and login fault domain",
)


class MissingFieldsFault(ValidationFault):
    domain = ACCOUNTS_DOMAIN
    code = "ACCOUNT_FIELDS_REQUIRED"

    def __init__(self, detail: str):
        super().__init__("All fields are required", [detail])


class AccountValidationFault(ValidationFault):
    domain = ACCOUNTS_DOMAIN
    code = "ACCOUNT_VALIDATION_FAILED"

    def __init__(self, errors: Sequence[str]):
        super().__init__("Validation failed", list(errors))


class WeakPasswordFault(ValidationFault):
    domain = ACCOUNTS_DOMAIN
    code = "WEAK_PASSWORD"

    def __init__(self, errors: Sequence[str]):
        super().__init__("Password validation failed", list(errors))


class EmailTakenFault(ValidationFault):
    domain = ACCOUNTS_DOMAIN
    code = "EMAIL_TAKEN"

    def __init__(self):
        super().__init__("Registration failed", ["Email is already registered"])


class UsernameTakenFault(ValidationFault):
    domain = ACCOUNTS_DOMAIN
    code = "USERNAME_TAKEN"

    def __init__(self):
        super().__init__("Registration failed", ["Username is already taken"])


class InvalidCredentialsFault(AuthenticationFault):
    domain = ACCOUNTS_DOMAIN
    code = "INVALID_CREDENTIALS"

    def __init__(self):
        super().__init__("Authentication failed", ["Invalid credentials"])


class RegistrationFault(InternalFault):
    domain = ACCOUNTS_DOMAIN
    code = "REGISTRATION_FAILED"

    def __init__(self, reason: str = ""):
        super().__init__(
            errors=["An error occurred during registration"],
            metadata={"reason": reason},
        )
