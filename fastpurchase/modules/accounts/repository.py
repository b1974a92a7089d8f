"""
Accounts Module - User store.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastpurchase.db import Database
from fastpurchase.utils import new_id, utcnow_iso


class AccountRepository:
    """Data access for the ``users`` table."""

    def __init__(self, db: Database):
        self.db = db

    async def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.db.fetch_one(
            "SELECT id, username, email, password, role, created_at FROM users WHERE email = ?",
            [email],
        )

    async def find_admin(self) -> Optional[Dict[str, Any]]:
        """The earliest admin account, if any."""
        return await self.db.fetch_one(
            "SELECT id, username, email, role, created_at FROM users "
            "WHERE role = 'admin' ORDER BY created_at, rowid LIMIT 1"
        )

    async def email_exists(self, email: str) -> bool:
        return await self.db.fetch_val("SELECT 1 FROM users WHERE email = ?", [email]) is not None

    async def username_exists(self, username: str) -> bool:
        return await self.db.fetch_val("SELECT 1 FROM users WHERE username = ?", [username]) is not None

    async def insert(self, username: str, email: str, password_hash: str, role: str = "user") -> Dict[str, Any]:
        now = utcnow_iso()
        row = {
            "id": new_id(),
            "username": username,
            "email": email,
            "password": password_hash,
            "role": role,
            "created_at": now,
            "updated_at": now,
        }
        await self.db.execute(
            "INSERT INTO users (id, username, email, password, role, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            list(row.values()),
        )
        return row
