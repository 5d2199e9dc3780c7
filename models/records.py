from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass
class UserRecord:
    """In-memory representation of a row in the users table."""

    id: Optional[int]
    telegram_id: int
    username: Optional[str] = None
    created_at: Optional[int] = None


@dataclass
class WalletRecord:
    """Managed wallet owned by one user.

    Attributes:
        id: Primary key (None for new records).
        user_id: Owning row in the users table.
        address: Checksummed wallet address.
        encrypted_secret: Fernet token holding the private key.
        created_at: Unix timestamp (seconds) when the row was inserted.
    """

    id: Optional[int]
    user_id: int
    address: str
    encrypted_secret: str
    created_at: Optional[int] = None


@dataclass
class MarketRecord:
    """In-memory representation of a row in the markets table.

    Attributes:
        id: Primary key (None for new records).
        market_id: Identity emitted by the factory, or a manual placeholder.
        question: Market question.
        option_a: Label of outcome A.
        option_b: Label of outcome B.
        end_time: Unix timestamp (seconds) when betting closes.
        creator_id: users.id of the creator.
        contract_address: Market contract address when the event was parsed.
        image_url: Optional hosted image.
        tags: Optional comma-joined categories.
        status: "active" until resolved.
        tx_hash: Creation transaction hash.
        created_at: Unix timestamp (seconds) when the row was inserted.
    """

    id: Optional[int]
    market_id: str
    question: str
    option_a: str
    option_b: str
    end_time: int
    creator_id: Optional[int] = None
    contract_address: Optional[str] = None
    image_url: Optional[str] = None
    tags: Optional[str] = None
    status: str = "active"
    tx_hash: Optional[str] = None
    created_at: Optional[int] = None


@dataclass
class TradeRecord:
    """A bet placed through the bot."""

    id: Optional[int]
    user_id: int
    market_record_id: Optional[int]
    side: str
    amount: str
    tx_hash: Optional[str] = None
    created_at: Optional[int] = None


@dataclass
class Position:
    """A trade joined with the market it was placed on."""

    question: Optional[str]
    side: str
    option_label: Optional[str]
    amount: str
    market_status: Optional[str]
    tx_hash: Optional[str] = None


@dataclass
class LeaderboardEntry:
    """Total USDC a user has bet through the bot."""

    telegram_id: int
    username: Optional[str]
    volume: Decimal
    trades: int


@dataclass
class MarketStats:
    """Aggregate counters over the markets and trades tables."""

    total_markets: int
    active_markets: int
    total_trades: int
    total_volume: Decimal

    @property
    def average_bet(self) -> Decimal:
        if not self.total_trades:
            return Decimal(0)
        return self.total_volume / self.total_trades
