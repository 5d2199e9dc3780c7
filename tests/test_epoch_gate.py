from decimal import Decimal

import pytest

from fakes import FakeGateway, rate_limited
from models.epoch_models import EpochPhase
from services.chain.epoch_gate import EpochGateReader


@pytest.mark.asyncio
async def test_reads_status_from_two_calls():
    reader = EpochGateReader(FakeGateway(phase=1))

    status = await reader.read_status()

    assert status.epoch_id == 12
    assert status.phase is EpochPhase.PENDING_FINALIZE
    assert status.window_start == 1_700_000_000
    assert status.window_end == 1_700_604_800
    assert status.reward_pool == Decimal("2500")
    assert not status.is_active


@pytest.mark.asyncio
async def test_unavailable_reader_returns_none():
    gateway = FakeGateway()
    gateway.failures["epoch_phase"] = rate_limited()

    assert await EpochGateReader(gateway).read_status() is None


@pytest.mark.asyncio
async def test_unknown_phase_value_returns_none():
    assert await EpochGateReader(FakeGateway(phase=9)).read_status() is None


@pytest.mark.asyncio
async def test_pending_epochs():
    gateway = FakeGateway()
    gateway.pending = ([10, 11], [1_000_000, 2_500_000])

    pending = await EpochGateReader(gateway).read_pending()

    assert pending.epoch_ids == [10, 11]
    assert pending.reward_pools == [Decimal("1"), Decimal("2.5")]
    assert pending.total_rewards == Decimal("3.5")


@pytest.mark.asyncio
async def test_pending_failure_is_empty():
    gateway = FakeGateway()
    gateway.failures["pending_epochs"] = RuntimeError("node down")

    pending = await EpochGateReader(gateway).read_pending()

    assert pending.epoch_ids == []
    assert pending.reward_pools == []
