"""In-memory collaborators shared by the conversation tests."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from models.chat_events import EventKind, ImageAttachment, InboundEvent
from models.records import LeaderboardEntry, MarketRecord, MarketStats, Position, TradeRecord, UserRecord, WalletRecord
from services.chain.chain_gateway import CreationReceipt
from services.rpc.errors import ChainError, ChainErrorKind


def text_event(chat_id: int, text: str, user_id: int = 7) -> InboundEvent:
    return InboundEvent(chat_id=chat_id, user_id=user_id, kind=EventKind.TEXT, text=text)


def button_event(chat_id: int, data: str, user_id: int = 7, message_id: Optional[int] = None) -> InboundEvent:
    return InboundEvent(
        chat_id=chat_id,
        user_id=user_id,
        kind=EventKind.BUTTON,
        data=data,
        callback_id=f"cb-{data}",
        message_id=message_id,
    )


def image_event(chat_id: int, data: bytes = b"img", user_id: int = 7) -> InboundEvent:
    return InboundEvent(chat_id=chat_id, user_id=user_id, kind=EventKind.IMAGE, image=ImageAttachment(data=data))


class FakeWallets:
    """Stands in for WalletService; user 7 owns a wallet unless told otherwise."""

    def __init__(self, owners=(7,)) -> None:
        self.wallets: Dict[int, WalletRecord] = {
            owner: WalletRecord(id=owner, user_id=100 + owner, address=f"0x{owner:040x}", encrypted_secret="secret")
            for owner in owners
        }
        self.ensured: List[int] = []

    async def ensure_user(self, telegram_id: int, username: Optional[str] = None) -> UserRecord:
        self.ensured.append(telegram_id)
        return UserRecord(id=100 + telegram_id, telegram_id=telegram_id, username=username)

    async def find_wallet(self, telegram_id: int) -> Optional[WalletRecord]:
        return self.wallets.get(telegram_id)

    async def create_wallet(self, telegram_id: int, username: Optional[str] = None) -> WalletRecord:
        wallet = self.wallets.get(telegram_id)
        if wallet is None:
            wallet = WalletRecord(
                id=telegram_id, user_id=100 + telegram_id, address=f"0x{telegram_id:040x}", encrypted_secret="secret"
            )
            self.wallets[telegram_id] = wallet
        return wallet

    def signer(self, wallet: WalletRecord) -> str:
        return f"signer:{wallet.address}"


class FakeGateway:
    """Chain gateway double recording every write."""

    factory_address = "0x7910aEb89f4843457d90cb26161EebA34d39EB60"

    def __init__(
        self,
        usdc: str = "100",
        eth: str = "0.01",
        fee: str = "5",
        phase: int = 0,
    ) -> None:
        self.usdc = Decimal(usdc)
        self.eth = Decimal(eth)
        self.fee = Decimal(fee)
        self.phase = phase
        self.pending = ([], [])
        self.failures: Dict[str, Exception] = {}
        self.writes: List[tuple] = []
        self.reads: List[str] = []
        self.receipt = CreationReceipt(tx_hash="0xcreate", market_id="0xabc", market_address="0x" + "22" * 20)

    def _maybe_fail(self, name: str) -> None:
        error = self.failures.get(name)
        if error is not None:
            raise error

    async def usdc_balance(self, address: str) -> Decimal:
        self.reads.append("usdc_balance")
        self._maybe_fail("usdc_balance")
        return self.usdc

    async def eth_balance(self, address: str) -> Decimal:
        self.reads.append("eth_balance")
        self._maybe_fail("eth_balance")
        return self.eth

    async def creation_fee(self) -> Decimal:
        self.reads.append("creation_fee")
        self._maybe_fail("creation_fee")
        return self.fee

    async def current_epoch_info(self):
        self._maybe_fail("current_epoch_info")
        return (12, 1_700_000_000, 1_700_604_800, 0, 0, 0, 2_500_000_000)

    async def epoch_phase(self, epoch_id: int) -> int:
        self._maybe_fail("epoch_phase")
        return self.phase

    async def pending_epochs(self):
        self._maybe_fail("pending_epochs")
        return self.pending

    async def approve_usdc(self, account, spender: str, amount: Decimal):
        self._maybe_fail("approve_usdc")
        self.writes.append(("approve_usdc", spender, amount))
        return "0xapprove"

    async def create_market(self, account, question, option_a, option_b, end_time) -> CreationReceipt:
        self._maybe_fail("create_market")
        self.writes.append(("create_market", question, option_a, option_b, end_time))
        return self.receipt

    async def place_bet(self, account, market_address: str, bet_on_a: bool, amount: Decimal) -> str:
        self._maybe_fail("place_bet")
        self.writes.append(("place_bet", market_address, bet_on_a, amount))
        return "0xbet"

    async def transfer_usdc(self, account, destination: str, amount: Decimal) -> str:
        self._maybe_fail("transfer_usdc")
        self.writes.append(("transfer_usdc", destination, amount))
        return "0xusdc"

    async def transfer_all_eth(self, account, destination: str) -> str:
        self._maybe_fail("transfer_all_eth")
        self.writes.append(("transfer_all_eth", destination))
        return "0xeth"


class FakeMarkets:
    """MarketDAL double keeping rows in lists."""

    def __init__(self, records=None) -> None:
        self.records: List[MarketRecord] = list(records or [])
        self.trades: List[TradeRecord] = []
        self.fail_writes = False

    async def create_market(self, record: MarketRecord) -> int:
        if self.fail_writes:
            raise RuntimeError("database is locked")
        record.id = len(self.records) + 1
        self.records.append(record)
        return record.id

    async def get_market_by_id(self, record_id: int) -> Optional[MarketRecord]:
        return next((r for r in self.records if r.id == record_id), None)

    async def update_status(self, record_id: int, status: str) -> bool:
        record = await self.get_market_by_id(record_id)
        if record is None:
            return False
        record.status = status
        return True

    async def list_active(self, limit: int = 8, now=None) -> List[MarketRecord]:
        return [r for r in self.records if r.status == "active"][:limit]

    async def record_trade(self, trade: TradeRecord) -> int:
        if self.fail_writes:
            raise RuntimeError("database is locked")
        trade.id = len(self.trades) + 1
        self.trades.append(trade)
        return trade.id

    async def list_positions(self, user_id: int, limit: int = 10) -> List[Position]:
        by_id = {record.id: record for record in self.records}
        items = []
        for trade in reversed([t for t in self.trades if t.user_id == user_id]):
            market = by_id.get(trade.market_record_id)
            label = None
            if market is not None:
                label = market.option_a if trade.side == "A" else market.option_b
            items.append(
                Position(
                    question=market.question if market else None,
                    side=trade.side,
                    option_label=label,
                    amount=trade.amount,
                    market_status=market.status if market else None,
                    tx_hash=trade.tx_hash,
                )
            )
        return items[:limit]

    async def leaderboard(self, limit: int = 10) -> List[LeaderboardEntry]:
        totals: Dict[int, LeaderboardEntry] = {}
        for trade in self.trades:
            entry = totals.setdefault(trade.user_id, LeaderboardEntry(trade.user_id - 100, None, Decimal(0), 0))
            entry.volume += Decimal(trade.amount)
            entry.trades += 1
        return sorted(totals.values(), key=lambda e: -e.volume)[:limit]

    async def market_stats(self, now=None) -> MarketStats:
        return MarketStats(
            total_markets=len(self.records),
            active_markets=len([r for r in self.records if r.status == "active"]),
            total_trades=len(self.trades),
            total_volume=sum((Decimal(t.amount) for t in self.trades), Decimal(0)),
        )


class FakeImageHost:
    def __init__(self) -> None:
        self.stored: List[ImageAttachment] = []

    async def store(self, attachment: ImageAttachment) -> str:
        if attachment.data == b"not-an-image":
            raise ValueError("Uploaded bytes are not a supported image format")
        self.stored.append(attachment)
        return f"http://testserver/images/{len(self.stored):032x}.jpg"


def rate_limited(message: str = "over rate limit") -> ChainError:
    return ChainError(ChainErrorKind.RATE_LIMITED, message)


class Stack:
    """The conversation layer wired to fakes, as main.py wires the real services."""

    def __init__(self, gateway=None, wallets=None, markets=None, handler_timeout: float = 30.0) -> None:
        from services.chain.epoch_gate import EpochGateReader
        from services.conversation.account_handlers import AccountHandlers
        from services.conversation.bet_flow import BetFlow
        from services.conversation.create_market_wizard import CreateMarketWizard
        from services.conversation.dispatcher import ConversationDispatcher
        from services.conversation.market_browser import MarketBrowser
        from services.conversation.market_cache import MarketReferenceCache
        from services.conversation.market_commit import MarketCommitter
        from services.conversation.session_store import SessionStore
        from services.conversation.withdraw_flow import WithdrawFlow
        from services.transport import BufferedTransport

        self.gateway = gateway or FakeGateway()
        self.wallets = wallets or FakeWallets()
        self.markets = markets or FakeMarkets()
        self.image_host = FakeImageHost()
        self.sessions = SessionStore()
        self.cache = MarketReferenceCache()
        self.transport = BufferedTransport()
        self.epoch_gate = EpochGateReader(self.gateway)
        self.committer = MarketCommitter(
            self.sessions, self.epoch_gate, self.wallets, self.gateway, self.markets, clock=lambda: 1_800_000_000
        )
        self.wizard = CreateMarketWizard(
            self.sessions, self.transport, self.image_host, self.wallets, self.gateway, self.committer
        )
        self.bets = BetFlow(self.sessions, self.transport, self.wallets, self.gateway, self.markets, self.cache)
        self.withdrawals = WithdrawFlow(self.sessions, self.transport, self.wallets, self.gateway)
        self.browser = MarketBrowser(self.transport, self.markets, self.cache, self.epoch_gate)
        self.accounts = AccountHandlers(self.sessions, self.transport, self.wallets, self.gateway, self.markets)
        self.dispatcher = ConversationDispatcher(
            self.sessions,
            self.transport,
            self.wizard,
            self.bets,
            self.withdrawals,
            self.browser,
            self.accounts,
            handler_timeout=handler_timeout,
        )

    def texts(self, chat_id: int) -> List[str]:
        return [message.text for message in self.transport.drain(chat_id)]
