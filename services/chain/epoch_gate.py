"""Read the epoch gate that decides whether market creation is open."""

from __future__ import annotations

import logging
from typing import Optional

from models.epoch_models import EpochPhase, EpochStatus, PendingEpochs
from services.chain.chain_gateway import to_units

logger = logging.getLogger(__name__)


class EpochGateReader:
    """Query epoch status; failures become sentinels instead of exceptions."""

    def __init__(self, gateway) -> None:
        self.gateway = gateway

    async def read_status(self) -> Optional[EpochStatus]:
        """Return the current epoch status, or None when the reader is unavailable."""
        try:
            info = await self.gateway.current_epoch_info()
            epoch_id = int(info[0])
            phase = EpochPhase(await self.gateway.epoch_phase(epoch_id))
            return EpochStatus(
                epoch_id=epoch_id,
                phase=phase,
                window_start=int(info[1]),
                window_end=int(info[2]),
                reward_pool=to_units(info[6]),
            )
        except Exception:
            logger.warning("Epoch status unavailable", exc_info=True)
            return None

    async def read_pending(self) -> PendingEpochs:
        """Return pending epochs and reward pools; empty lists when unknown."""
        try:
            epoch_ids, pools = await self.gateway.pending_epochs()
            return PendingEpochs(
                epoch_ids=[int(epoch_id) for epoch_id in epoch_ids],
                reward_pools=[to_units(pool) for pool in pools],
            )
        except Exception:
            logger.warning("Pending epochs unavailable", exc_info=True)
            return PendingEpochs()
