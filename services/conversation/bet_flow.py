"""Place a USDC bet on a listed market."""

from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from dal.market_dal import MarketDAL
from models.chat_events import InboundEvent
from models.records import TradeRecord
from models.session_models import PlaceBetSession
from services.conversation import keyboards, messages
from services.conversation.market_cache import MarketReferenceCache
from services.conversation.session_store import SessionStore
from services.rpc.errors import ChainError

logger = logging.getLogger(__name__)

MAX_BET_USDC = Decimal("1000000")


def parse_amount(text: Optional[str]) -> Decimal:
	try:
		amount = Decimal((text or "").strip())
	except InvalidOperation:
		raise ValueError("Please enter a number, for example 5 or 12.5.") from None
	if not amount.is_finite() or amount <= 0:
		raise ValueError("The amount must be greater than zero.")
	if amount > MAX_BET_USDC:
		raise ValueError(f"The amount cannot exceed {MAX_BET_USDC:,} USDC.")
	return amount


class BetFlow:
	def __init__(
		self,
		sessions: SessionStore,
		transport,
		wallets,
		gateway,
		markets: MarketDAL,
		cache: MarketReferenceCache,
		*,
		min_gas_eth: Decimal = Decimal("0.001"),
		clock: Callable[[], float] = time.time,
	) -> None:
		self.sessions = sessions
		self.transport = transport
		self.wallets = wallets
		self.gateway = gateway
		self.markets = markets
		self.cache = cache
		self.min_gas_eth = min_gas_eth
		self._clock = clock

	async def start(self, event: InboundEvent, token: str, side: str) -> Optional[PlaceBetSession]:
		"""Open a bet session for `token` on side "A" or "B" if the user can pay for it."""
		chat_id = event.chat_id
		reference = self.cache.get(token)
		if reference is None or side not in ("A", "B"):
			await self.transport.send_text(chat_id, messages.MARKET_EXPIRED, keyboards.refresh_markets())
			return None
		if not reference.contract_address:
			await self.transport.send_text(chat_id, "This market cannot take bets yet.", keyboards.back_to_menu())
			return None

		wallet = await self.wallets.find_wallet(event.user_id)
		if wallet is None:
			await self.transport.send_text(chat_id, messages.NEED_WALLET, keyboards.wallet_menu(False))
			return None
		try:
			usdc, eth = await asyncio.gather(
				self.gateway.usdc_balance(wallet.address),
				self.gateway.eth_balance(wallet.address),
			)
		except ChainError as exc:
			await self.transport.send_text(chat_id, messages.chain_failure(exc), keyboards.back_to_menu())
			return None
		if eth < self.min_gas_eth:
			await self.transport.send_text(chat_id, messages.needs_gas(self.min_gas_eth), keyboards.wallet_menu(True))
			return None
		if usdc <= 0:
			await self.transport.send_text(chat_id, "💸 You have no USDC to bet with.", keyboards.wallet_menu(True))
			return None

		session = self.sessions.start(chat_id, PlaceBetSession(market_token=token, market=reference, side=side))
		await self.transport.send_text(chat_id, messages.bet_prompt(session.option_label, usdc), keyboards.cancel_only())
		return session

	async def handle_amount(self, event: InboundEvent, session: PlaceBetSession) -> bool:
		"""Validate the typed amount and place the bet. Returns True when placed."""
		chat_id = event.chat_id
		try:
			amount = parse_amount(event.text)
		except ValueError as exc:
			await self.transport.send_text(chat_id, f"⚠️ {exc}", keyboards.cancel_only())
			return False

		if not await self._still_open(session.market.record_id):
			self.sessions.delete(chat_id)
			await self.transport.send_text(chat_id, messages.MARKET_CLOSED, keyboards.refresh_markets())
			return False

		wallet = await self.wallets.find_wallet(event.user_id)
		if wallet is None:
			self.sessions.delete(chat_id)
			await self.transport.send_text(chat_id, messages.NEED_WALLET, keyboards.wallet_menu(False))
			return False
		try:
			balance = await self.gateway.usdc_balance(wallet.address)
			if amount > balance:
				await self.transport.send_text(
					chat_id, f"⚠️ You only have {messages.usdc(balance)}.", keyboards.cancel_only()
				)
				return False
			tx_hash = await self.gateway.place_bet(
				self.wallets.signer(wallet),
				session.market.contract_address,
				session.side == "A",
				amount,
			)
		except ChainError as exc:
			logger.warning("Bet failed for chat %s on %s: %s", chat_id, session.market.market_id, exc)
			await self.transport.send_text(
				chat_id, messages.chain_failure(exc) + "\nYou can enter another amount or cancel.", keyboards.cancel_only()
			)
			return False

		try:
			await self.markets.record_trade(
				TradeRecord(
					id=None,
					user_id=wallet.user_id,
					market_record_id=session.market.record_id,
					side=session.side,
					amount=str(amount),
					tx_hash=tx_hash,
				)
			)
		except Exception:
			logger.exception("Bet %s placed but not recorded", tx_hash)

		self.sessions.delete(chat_id)
		await self.transport.send_text(
			chat_id, messages.bet_placed(amount, session.option_label, tx_hash), keyboards.main_menu()
		)
		return True

	async def _still_open(self, record_id: Optional[int]) -> bool:
		"""Re-read the stored market; an expired active market is marked closed."""
		if record_id is None:
			return True
		record = await self.markets.get_market_by_id(record_id)
		if record is None or record.status != "active":
			return False
		if record.end_time <= int(self._clock()):
			await self.markets.update_status(record.id, "closed")
			logger.info("Market %s passed its end time, marked closed", record.market_id)
			return False
		return True
