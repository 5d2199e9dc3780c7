"""Epoch gate values read from the epoch manager contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import IntEnum
from typing import List


class EpochPhase(IntEnum):
    ACTIVE = 0
    PENDING_FINALIZE = 1
    FINALIZED = 2

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class EpochStatus:
    """Status of the current epoch. Recomputed on every read, never cached."""

    epoch_id: int
    phase: EpochPhase
    window_start: int
    window_end: int
    reward_pool: Decimal

    @property
    def is_active(self) -> bool:
        return self.phase is EpochPhase.ACTIVE


@dataclass
class PendingEpochs:
    """Parallel lists of epochs awaiting finalization and their reward pools.

    Empty lists mean "no information", not "nothing pending".
    """

    epoch_ids: List[int] = field(default_factory=list)
    reward_pools: List[Decimal] = field(default_factory=list)

    @property
    def total_rewards(self) -> Decimal:
        return sum(self.reward_pools, Decimal("0"))
