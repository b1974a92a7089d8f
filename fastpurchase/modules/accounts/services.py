"""
Accounts Module - Services

Registration, login and admin seeding. Argon2 work runs in a worker
thread so hashing never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Any, Dict, Optional

from fastpurchase.auth import PasswordHasher, PasswordPolicy, TokenManager
from fastpurchase.faults import QueryFault

from .faults import (
    EmailTakenFault,
    InvalidCredentialsFault,
    RegistrationFault,
    UsernameTakenFault,
    WeakPasswordFault,
)
from .repository import AccountRepository
from .validators import Credentials, Registration

logger = logging.getLogger("fastpurchase.accounts")


def public_account(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "username": row["username"],
        "email": row["email"],
        "role": row["role"],
    }


class AccountService:
    """
    Account service.

    Integrates:
    - AccountRepository (users table)
    - PasswordHasher / PasswordPolicy (argon2id, strength rules)
    - TokenManager (bearer tokens issued at login)
    """

    def __init__(
        self,
        repository: AccountRepository,
        hasher: PasswordHasher,
        policy: PasswordPolicy,
        token_manager: TokenManager,
    ):
        self.repository = repository
        self.hasher = hasher
        self.policy = policy
        self.token_manager = token_manager
        self._decoy_hash: Optional[str] = None

    async def register(self, payload: Any) -> Dict[str, Any]:
        """Create a ``user`` account. Returns the public account with ``createdAt``."""
        data = Registration.parse(payload)
        row = await self._create(data, role="user")
        logger.info(f"Account {row['id']} registered ({row['username']})")
        return {**public_account(row), "createdAt": row["created_at"]}

    async def create_admin(self, username: str, email: str, password: str) -> Dict[str, Any]:
        """Seed an ``admin`` account; used by the CLI only."""
        data = Registration.parse({"username": username, "email": email, "password": password})
        row = await self._create(data, role="admin")
        logger.info(f"Admin account {row['id']} created ({row['username']})")
        return {**public_account(row), "createdAt": row["created_at"]}

    async def login(self, payload: Any) -> Dict[str, Any]:
        """
        Check credentials and issue an access token.

        Unknown email and wrong password are indistinguishable to the caller.
        """
        creds = Credentials.parse(payload)
        row = await self.repository.find_by_email(creds.email)
        if row is None:
            # Unknown emails cost one argon2 verify, same as a wrong password
            await asyncio.to_thread(self.hasher.verify, await self._get_decoy_hash(), creds.password)
            raise InvalidCredentialsFault()
        if not await asyncio.to_thread(self.hasher.verify, row["password"], creds.password):
            raise InvalidCredentialsFault()

        token = await self.token_manager.issue_access_token(row["id"], row["username"], row["role"])
        logger.info(f"Account {row['id']} logged in")
        return {"token": token, "user": public_account(row)}

    async def _get_decoy_hash(self) -> str:
        if self._decoy_hash is None:
            self._decoy_hash = await asyncio.to_thread(self.hasher.hash, secrets.token_urlsafe(16))
        return self._decoy_hash

    async def _create(self, data: Registration, *, role: str) -> Dict[str, Any]:
        ok, errors = self.policy.validate(data.password)
        if not ok:
            raise WeakPasswordFault(errors)

        if await self.repository.email_exists(data.email):
            raise EmailTakenFault()
        if await self.repository.username_exists(data.username):
            raise UsernameTakenFault()

        password_hash = await asyncio.to_thread(self.hasher.hash, data.password)
        try:
            return await self.repository.insert(data.username, data.email, password_hash, role)
        except QueryFault as exc:
            # Lost a race against a concurrent registration
            reason = exc.reason or ""
            if "users.email" in reason:
                raise EmailTakenFault() from exc
            if "users.username" in reason:
                raise UsernameTakenFault() from exc
            logger.error(f"Registration of {data.username} failed: {exc}")
            raise RegistrationFault(reason) from exc
