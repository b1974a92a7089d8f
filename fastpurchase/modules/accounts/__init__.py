"""
Accounts Module

Components:
- AccountService: registration, login, admin seeding
- AccountRepository: users table
- AccountController: /auth routes
"""

from .controllers import AccountController
from .faults import (
    AccountValidationFault,
    EmailTakenFault,
    InvalidCredentialsFault,
    MissingFieldsFault,
    RegistrationFault,
    UsernameTakenFault,
    WeakPasswordFault,
)
from .repository import AccountRepository
from .services import AccountService, public_account
from .validators import Credentials, Registration, is_valid_email, is_valid_username

__all__ = [
    "AccountController",
    "AccountRepository",
    "AccountService",
    "public_account",
    "Credentials",
    "Registration",
    "is_valid_email",
    "is_valid_username",
    "AccountValidationFault",
    "EmailTakenFault",
    "InvalidCredentialsFault",
    "MissingFieldsFault",
    "RegistrationFault",
    "UsernameTakenFault",
    "WeakPasswordFault",
]
