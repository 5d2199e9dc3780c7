from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MarketReference:
    """Denormalized snapshot of a listed market, addressed by a short token.

    Attributes:
        source: Where the snapshot came from (currently always "store").
        record_id: Primary key of the market row, when known.
        market_id: External market identity emitted by the factory contract.
        contract_address: On-chain address of the market contract.
        question: Market question.
        option_a: Label of outcome A.
        option_b: Label of outcome B.
        end_time: Unix timestamp (seconds) when the market closes.
        image_url: Optional hosted image.
        tags: Optional comma-joined category string.
    """

    source: str
    record_id: Optional[int]
    market_id: str
    contract_address: Optional[str]
    question: str
    option_a: str
    option_b: str
    end_time: Optional[int] = None
    image_url: Optional[str] = None
    tags: Optional[str] = None
