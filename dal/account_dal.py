"""Async Data Access Layer for the ACCOUNT and CURRENT_ACCOUNT tables."""

from __future__ import annotations

import time
from typing import Optional, Sequence, Tuple

from models.session_models import Account
from utils.database_init import AsyncDatabaseInitializer


class AccountDAL:
    """Data access layer for accounts and the remembered sign-in."""

    _COLUMNS = ("uid", "email", "display_name", "password_hash")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_account(self, account: Account, password_hash: str) -> None:
        """Insert a new ACCOUNT row.

        Raises:
            sqlite3.IntegrityError: If the email is already registered.
        """
        async with self._db.connection() as conn:
            await conn.execute(
                "INSERT INTO ACCOUNT (uid, email, display_name, password_hash, created_at) VALUES (?, ?, ?, ?, ?)",
                (account.uid, account.email, account.display_name, password_hash, time.time()),
            )
            await conn.commit()

    async def get_by_email(self, email: str) -> Optional[Tuple[Account, str]]:
        """Return the account and its stored password hash, or None."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM ACCOUNT WHERE email = ?",
                (email,),
            )
            row = await cur.fetchone()
            return (self._row_to_account(row), row[3]) if row else None

    async def get_by_uid(self, uid: str) -> Optional[Account]:
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM ACCOUNT WHERE uid = ?",
                (uid,),
            )
            row = await cur.fetchone()
            return self._row_to_account(row) if row else None

    async def remember(self, uid: Optional[str]) -> None:
        """Store (or clear, when uid is None) the remembered account."""
        async with self._db.connection() as conn:
            if uid is None:
                await conn.execute("DELETE FROM CURRENT_ACCOUNT")
            else:
                await conn.execute(
                    "INSERT INTO CURRENT_ACCOUNT (slot, uid) VALUES (1, ?) "
                    "ON CONFLICT(slot) DO UPDATE SET uid = excluded.uid",
                    (uid,),
                )
            await conn.commit()

    async def remembered_uid(self) -> Optional[str]:
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT uid FROM CURRENT_ACCOUNT WHERE slot = 1")
            row = await cur.fetchone()
            return row[0] if row else None

    @staticmethod
    def _row_to_account(row: Sequence[object]) -> Account:
        return Account(uid=row[0], email=row[1], display_name=row[2])
