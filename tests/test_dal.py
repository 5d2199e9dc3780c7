import time
from decimal import Decimal

import pytest

from dal.market_dal import MarketDAL
from dal.user_dal import UserDAL
from dal.wallet_dal import WalletDAL
from models.records import MarketRecord, TradeRecord, WalletRecord
from utils.database_init import AsyncDatabaseInitializer


def _market(question, end_time, created_at=None):
    return MarketRecord(
        id=None,
        market_id="0x01",
        question=question,
        option_a="Yes",
        option_b="No",
        end_time=end_time,
        contract_address="0x" + "11" * 20,
        tags="Sports",
        created_at=created_at,
    )


@pytest.mark.asyncio
async def test_user_upsert_is_idempotent(tmp_path):
    users = UserDAL(AsyncDatabaseInitializer(tmp_path))

    first = await users.get_or_create(42, "alice")
    again = await users.get_or_create(42, None)
    renamed = await users.get_or_create(42, "alice_b")

    assert first.id == again.id == renamed.id
    assert again.username == "alice"
    assert renamed.username == "alice_b"
    assert await users.count_users() == 1


@pytest.mark.asyncio
async def test_wallet_is_unique_per_user(tmp_path):
    db = AsyncDatabaseInitializer(tmp_path)
    user = await UserDAL(db).get_or_create(42)
    wallets = WalletDAL(db)

    stored = await wallets.create_wallet(WalletRecord(None, user.id, "0xAAA", "token-1"))
    duplicate = await wallets.create_wallet(WalletRecord(None, user.id, "0xBBB", "token-2"))

    assert duplicate.id == stored.id
    assert duplicate.address == "0xAAA"
    assert (await wallets.get_by_telegram_id(42)).address == "0xAAA"
    assert await wallets.get_by_telegram_id(43) is None


@pytest.mark.asyncio
async def test_active_markets_and_trades(tmp_path):
    db = AsyncDatabaseInitializer(tmp_path)
    markets = MarketDAL(db)
    user = await UserDAL(db).get_or_create(42)
    now = int(time.time())

    old_id = await markets.create_market(_market("Older open market?", now + 3600, created_at=now - 10))
    new_id = await markets.create_market(_market("Newer open market?", now + 3600, created_at=now))
    await markets.create_market(_market("Already closed market?", now - 1))
    closed_id = await markets.create_market(_market("Resolved market here?", now + 3600))
    assert await markets.update_status(closed_id, "resolved")

    active = await markets.list_active(limit=8)
    assert [m.id for m in active] == [new_id, old_id]
    assert await markets.count_active() == 2
    assert (await markets.get_market_by_id(old_id)).tags == "Sports"

    await markets.record_trade(TradeRecord(None, user.id, new_id, "A", "12.5", "0xbet"))
    await markets.record_trade(TradeRecord(None, user.id, None, "B", "3", "0xorphan"))
    positions = await markets.list_positions(user.id)
    assert [(p.question, p.option_label, p.amount) for p in positions] == [
        (None, None, "3"),
        ("Newer open market?", "Yes", "12.5"),
    ]
    assert positions[1].market_status == "active"


@pytest.mark.asyncio
async def test_existing_rows_survive_reinitialization(tmp_path):
    await UserDAL(AsyncDatabaseInitializer(tmp_path)).get_or_create(1)
    assert await UserDAL(AsyncDatabaseInitializer(tmp_path)).count_users() == 1


def test_database_dir_is_required(monkeypatch):
    monkeypatch.delenv("DATABASE_DIR", raising=False)
    with pytest.raises(RuntimeError):
        AsyncDatabaseInitializer()


@pytest.mark.asyncio
async def test_leaderboard_and_market_stats(tmp_path):
    db = AsyncDatabaseInitializer(tmp_path)
    markets = MarketDAL(db)
    users = UserDAL(db)
    alice = await users.get_or_create(1, "alice")
    bob = await users.get_or_create(2, None)
    now = int(time.time())

    open_id = await markets.create_market(_market("Open market question?", now + 3600))
    await markets.create_market(_market("Expired market question?", now - 1))
    resolved_id = await markets.create_market(_market("Resolved market question?", now + 3600))
    await markets.update_status(resolved_id, "resolved")

    assert await markets.leaderboard() == []
    empty = await markets.market_stats(now=now)
    assert (empty.total_trades, empty.total_volume, empty.average_bet) == (0, 0, 0)

    await markets.record_trade(TradeRecord(None, alice.id, open_id, "A", "5"))
    await markets.record_trade(TradeRecord(None, bob.id, open_id, "B", "12.5"))
    await markets.record_trade(TradeRecord(None, alice.id, resolved_id, "B", "10.25"))

    board = await markets.leaderboard(limit=10)
    assert [(e.telegram_id, e.username, e.volume, e.trades) for e in board] == [
        (1, "alice", Decimal("15.25"), 2),
        (2, None, Decimal("12.5"), 1),
    ]
    assert len(await markets.leaderboard(limit=1)) == 1

    stats = await markets.market_stats(now=now)
    assert (stats.total_markets, stats.active_markets, stats.total_trades) == (3, 1, 3)
    assert stats.total_volume == Decimal("27.75")
    assert stats.average_bet == Decimal("9.25")
