"""Async Data Access Layer for the wallets table."""

from __future__ import annotations

import time
from typing import Optional, Sequence

from models.records import WalletRecord
from utils.database_init import AsyncDatabaseInitializer


class WalletDAL:
    """Data access layer for managed wallets (one per user)."""

    _COLUMNS = ("id", "user_id", "address", "encrypted_secret", "created_at")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_wallet(self, record: WalletRecord) -> WalletRecord:
        """Store `record` and return the row now owned by its user.

        A user already holding a wallet keeps it; the stored row is
        returned instead of the new one.
        """
        created_at = record.created_at or int(time.time())

        async with self._db.connection() as conn:
            await conn.execute(
                "INSERT INTO wallets (user_id, address, encrypted_secret, created_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(user_id) DO NOTHING",
                (record.user_id, record.address, record.encrypted_secret, created_at),
            )
            await conn.commit()
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM wallets WHERE user_id = ?",
                (record.user_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row)

    async def get_by_user_id(self, user_id: int) -> Optional[WalletRecord]:
        """Return the wallet of users.id `user_id`, or None."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM wallets WHERE user_id = ?",
                (user_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def get_by_telegram_id(self, telegram_id: int) -> Optional[WalletRecord]:
        """Return the wallet of the user with `telegram_id`, or None."""
        columns = ", ".join(f"w.{col}" for col in self._COLUMNS)
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {columns} FROM wallets w JOIN users u ON u.id = w.user_id WHERE u.telegram_id = ?",
                (telegram_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> WalletRecord:
        return WalletRecord(
            id=row[0],
            user_id=row[1],
            address=row[2],
            encrypted_secret=row[3],
            created_at=row[4],
        )
