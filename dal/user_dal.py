"""Async Data Access Layer for the users table."""

from __future__ import annotations

import time
from typing import Optional, Sequence

from models.records import UserRecord
from utils.database_init import AsyncDatabaseInitializer


class UserDAL:
    """Data access layer for chat users, keyed by their Telegram id."""

    _COLUMNS = ("id", "telegram_id", "username", "created_at")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def get_or_create(self, telegram_id: int, username: Optional[str] = None) -> UserRecord:
        """Insert the user unless the Telegram id is already known, then return the row.

        The username is refreshed when a new one is supplied.
        """
        async with self._db.connection() as conn:
            await conn.execute(
                "INSERT INTO users (telegram_id, username, created_at) VALUES (?, ?, ?) "
                "ON CONFLICT(telegram_id) DO UPDATE SET username = COALESCE(excluded.username, users.username)",
                (telegram_id, username, int(time.time())),
            )
            await conn.commit()
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM users WHERE telegram_id = ?",
                (telegram_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row)

    async def count_users(self) -> int:
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT COUNT(*) FROM users")
            row = await cur.fetchone()
            return int(row[0]) if row else 0

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> UserRecord:
        return UserRecord(id=row[0], telegram_id=row[1], username=row[2], created_at=row[3])
