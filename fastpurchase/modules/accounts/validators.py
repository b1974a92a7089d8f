"""
Accounts Module - Input validation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .faults import AccountValidationFault, MissingFieldsFault

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9]+")

EMAIL_RULE = "Invalid email address format"
USERNAME_RULE = "Username must be alphanumeric (letters and numbers only, no special characters or spaces)"


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_PATTERN.fullmatch(value))


def is_valid_username(value: Any) -> bool:
    return isinstance(value, str) and bool(USERNAME_PATTERN.fullmatch(value))


def _field(payload: Any, name: str) -> Any:
    return payload.get(name) if isinstance(payload, dict) else None


@dataclass(frozen=True)
class Registration:
    username: str
    email: str
    password: str

    @classmethod
    def parse(cls, payload: Any) -> "Registration":
        """
        Check presence and shape; password strength is checked by the service.

        Raises:
            MissingFieldsFault: A field is absent or empty
            AccountValidationFault: Email or username has the wrong shape
        """
        username = _field(payload, "username")
        email = _field(payload, "email")
        password = _field(payload, "password")
        if not username or not email or not password:
            raise MissingFieldsFault("Username, email, and password are required")
        if not is_valid_email(email):
            raise AccountValidationFault([EMAIL_RULE])
        if not is_valid_username(username):
            raise AccountValidationFault([USERNAME_RULE])
        if not isinstance(password, str):
            raise MissingFieldsFault("Username, email, and password are required")
        return cls(username=username, email=email, password=password)


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str

    @classmethod
    def parse(cls, payload: Any) -> "Credentials":
        email = _field(payload, "email")
        password = _field(payload, "password")
        if not email or not password:
            raise MissingFieldsFault("Email and password are required")
        if not is_valid_email(email):
            raise AccountValidationFault([EMAIL_RULE])
        if not isinstance(password, str):
            raise MissingFieldsFault("Email and password are required")
        return cls(email=email, password=password)
