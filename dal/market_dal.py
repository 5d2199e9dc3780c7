"""Async Data Access Layer for the markets and trades tables.

Provides MarketDAL with the async operations the conversation flows need,
compatible with `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import List, Optional, Sequence

from models.records import LeaderboardEntry, MarketRecord, MarketStats, Position, TradeRecord
from utils.database_init import AsyncDatabaseInitializer


class MarketDAL:
    """Data access layer for market records and the trades placed on them.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "market_id",
        "question",
        "option_a",
        "option_b",
        "end_time",
        "creator_id",
        "contract_address",
        "image_url",
        "tags",
        "status",
        "tx_hash",
        "created_at",
    )
    _COLUMN_LIST, _INSERT_COLUMNS = ", ".join(_COLUMNS), ", ".join(_COLUMNS[1:])

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_market(self, record: MarketRecord) -> int:
        """Insert a new markets row and return the new id.

        Args:
            record: MarketRecord with `id=None` and fields to insert.

        Returns:
            The integer primary key of the created row.
        """
        created_at = record.created_at or int(time.time())

        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"INSERT INTO markets ({self._INSERT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.market_id,
                    record.question,
                    record.option_a,
                    record.option_b,
                    record.end_time,
                    record.creator_id,
                    record.contract_address,
                    record.image_url,
                    record.tags,
                    record.status,
                    record.tx_hash,
                    created_at,
                ),
            )
            await conn.commit()
            return cur.lastrowid

    async def get_market_by_id(self, record_id: int) -> Optional[MarketRecord]:
        """Return MarketRecord for `record_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM markets WHERE id = ?",
                (record_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def list_active(self, limit: int = 8, now: Optional[int] = None) -> List[MarketRecord]:
        """List active markets whose betting window is still open, newest first.

        Args:
            limit: Maximum number of rows to return.
            now: Reference timestamp; defaults to the current time.
        """
        now = int(time.time()) if now is None else now
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM markets WHERE status = 'active' AND end_time > ? "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (now, limit),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def count_active(self, now: Optional[int] = None) -> int:
        now = int(time.time()) if now is None else now
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT COUNT(*) FROM markets WHERE status = 'active' AND end_time > ?",
                (now,),
            )
            row = await cur.fetchone()
            return int(row[0]) if row else 0

    async def update_status(self, record_id: int, status: str) -> bool:
        """Set the status of a markets row. Returns True if a row was changed."""
        async with self._db.connection() as conn:
            await conn.execute("UPDATE markets SET status = ? WHERE id = ?", (status, record_id))
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    async def record_trade(self, trade: TradeRecord) -> int:
        """Insert a trades row and return its id."""
        created_at = trade.created_at or int(time.time())
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "INSERT INTO trades (user_id, market_record_id, side, amount, tx_hash, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (trade.user_id, trade.market_record_id, trade.side, trade.amount, trade.tx_hash, created_at),
            )
            await conn.commit()
            return cur.lastrowid

    async def list_positions(self, user_id: int, limit: int = 10) -> List[Position]:
        """Return the latest trades of users.id `user_id` with their market, newest first."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT m.question, t.side, CASE t.side WHEN 'A' THEN m.option_a ELSE m.option_b END, "
                "t.amount, m.status, t.tx_hash "
                "FROM trades t LEFT JOIN markets m ON m.id = t.market_record_id "
                "WHERE t.user_id = ? ORDER BY t.id DESC LIMIT ?",
                (user_id, limit),
            )
            rows = await cur.fetchall()
            return [Position(*r) for r in rows]

    async def leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        """Return the users with the largest summed trade amount, largest first."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT u.telegram_id, u.username, SUM(CAST(t.amount AS REAL)) AS volume, COUNT(t.id) "
                "FROM trades t JOIN users u ON u.id = t.user_id "
                "GROUP BY t.user_id ORDER BY volume DESC, t.user_id ASC LIMIT ?",
                (limit,),
            )
            rows = await cur.fetchall()
            return [LeaderboardEntry(r[0], r[1], _to_decimal(r[2]), int(r[3])) for r in rows]

    async def market_stats(self, now: Optional[int] = None) -> MarketStats:
        """Count markets and trades and sum the traded volume."""
        now = int(time.time()) if now is None else now
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT COUNT(*), COALESCE(SUM(status = 'active' AND end_time > ?), 0) FROM markets",
                (now,),
            )
            markets = await cur.fetchone()
            cur = await conn.execute("SELECT COUNT(*), SUM(CAST(amount AS REAL)) FROM trades")
            trades = await cur.fetchone()
        return MarketStats(
            total_markets=int(markets[0]),
            active_markets=int(markets[1]),
            total_trades=int(trades[0]),
            total_volume=_to_decimal(trades[1]),
        )

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> MarketRecord:
        """Convert a DB row tuple into a MarketRecord."""
        return MarketRecord(
            id=row[0],
            market_id=row[1],
            question=row[2],
            option_a=row[3],
            option_b=row[4],
            end_time=row[5],
            creator_id=row[6],
            contract_address=row[7],
            image_url=row[8],
            tags=row[9],
            status=row[10],
            tx_hash=row[11],
            created_at=row[12],
        )


def _to_decimal(value: Optional[float]) -> Decimal:
    # amounts are stored as text with at most six decimals (USDC precision)
    return Decimal(str(round(value or 0, 6)))
