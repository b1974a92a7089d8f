"""
Auth - password hashing and password policy.

Argon2id via argon2-cffi.
"""

from __future__ import annotations

import re

from argon2 import PasswordHasher as Argon2PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError


class PasswordHasher:
    """
    Password hasher using Argon2id.

    Security parameters (defaults):
    - time_cost=2, memory_cost=65536 (64MB), parallelism=4

    Tests construct it with cheap parameters; the encoded hash carries its
    own parameters, so verification works across settings.
    """

    def __init__(
        self,
        time_cost: int = 2,
        memory_cost: int = 65536,
        parallelism: int = 4,
        hash_len: int = 32,
        salt_len: int = 16,
    ):
        self.hasher = Argon2PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_len,
            salt_len=salt_len,
        )

    def hash(self, password: str) -> str:
        """
        Hash password.

        Example output:
            $argon2id$v=19$m=65536,t=2,p=4$saltbase64$hashbase64
        """
        return self.hasher.hash(password)

    def verify(self, password_hash: str, password: str) -> bool:
        """Verify password against hash. Malformed hashes never match."""
        try:
            return self.hasher.verify(password_hash, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False


# ============================================================================
# Password Validation
# ============================================================================

class PasswordPolicy:
    """
    Password policy validator.

    Enforces a minimum length and the presence of an uppercase letter, a
    lowercase letter, a digit and a special character. Every failed rule is
    reported, in that order.
    """

    def __init__(
        self,
        min_length: int = 8,
        require_uppercase: bool = True,
        require_lowercase: bool = True,
        require_digit: bool = True,
        require_special: bool = True,
        special_chars: str = "!@#$%^&*",
    ):
        self.min_length = min_length
        self.require_uppercase = require_uppercase
        self.require_lowercase = require_lowercase
        self.require_digit = require_digit
        self.require_special = require_special
        self.special_chars = special_chars

    def validate(self, password: str) -> tuple[bool, list[str]]:
        """
        Validate password against policy.

        Returns:
            (is_valid, error_messages)
        """
        errors = []

        if len(password) < self.min_length:
            errors.append(f"Password must be at least {self.min_length} characters long")

        if self.require_uppercase and not re.search(r"[A-Z]", password):
            errors.append("Password must include at least one uppercase letter")

        if self.require_lowercase and not re.search(r"[a-z]", password):
            errors.append("Password must include at least one lowercase letter")

        if self.require_digit and not re.search(r"[0-9]", password):
            errors.append("Password must include at least one number")

        if self.require_special and not any(c in self.special_chars for c in password):
            errors.append(f"Password must include at least one special character ({self.special_chars})")

        return (len(errors) == 0, errors)
