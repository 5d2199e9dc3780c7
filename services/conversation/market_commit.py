"""Gated on-chain commit of a confirmed market-creation session."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from dal.market_dal import MarketDAL
from models.epoch_models import EpochPhase
from models.records import MarketRecord
from models.session_models import CreateMarketSession
from services.chain.epoch_gate import EpochGateReader
from services.conversation.session_store import SessionStore
from services.rpc.errors import ChainError, ChainErrorKind

logger = logging.getLogger(__name__)


class CommitErrorKind(str, Enum):
	WEEK_NOT_ACTIVE = "week_not_active"
	NO_WALLET = "no_wallet"
	INSUFFICIENT_FUNDS = "insufficient_funds"
	DEADLINE_TOO_FAR = "deadline_too_far"
	DEADLINE_TOO_SOON = "deadline_too_soon"
	DEADLINE_PAST = "deadline_past"
	TRANSACTION_REJECTED = "transaction_rejected"
	CONTRACT_REVERTED = "contract_reverted"
	UNKNOWN = "unknown"

	@classmethod
	def from_chain(cls, kind: ChainErrorKind) -> "CommitErrorKind":
		try:
			return cls(kind.value)
		except ValueError:
			# rate_limited and unavailable only surface once failover gave up
			return cls.UNKNOWN


class CommitFailed(Exception):
	"""The commit was aborted; the session stays at confirmation."""

	def __init__(
		self,
		kind: CommitErrorKind,
		reason: Optional[str] = None,
		phase: Optional[EpochPhase] = None,
	) -> None:
		super().__init__(reason or kind.value)
		self.kind = kind
		self.reason = reason
		self.phase = phase


@dataclass
class CommitOutcome:
	tx_hash: str
	market_id: str
	market_address: Optional[str]
	record_id: Optional[int]


class MarketCommitter:
	"""Run the commit sequence for a session sitting at the confirm step.

	Order: epoch gate, signing wallet, fresh balances and fee, fee approval,
	market creation, store write, session removal. Nothing is written before
	the gate reports an active epoch; a failed chain step leaves the session
	untouched so the user can press confirm again.
	"""

	def __init__(
		self,
		sessions: SessionStore,
		epoch_gate: EpochGateReader,
		wallets,
		gateway,
		markets: MarketDAL,
		*,
		min_gas_eth: Decimal = Decimal("0.001"),
		clock: Callable[[], float] = time.time,
	) -> None:
		self.sessions = sessions
		self.epoch_gate = epoch_gate
		self.wallets = wallets
		self.gateway = gateway
		self.markets = markets
		self.min_gas_eth = min_gas_eth
		self._clock = clock

	async def commit(self, chat_id: int, user_id: int, session: CreateMarketSession) -> CommitOutcome:
		status = await self.epoch_gate.read_status()
		if status is None or not status.is_active:
			phase = status.phase if status is not None else None
			logger.info("Market creation blocked for chat %s, epoch phase %s", chat_id, phase)
			raise CommitFailed(CommitErrorKind.WEEK_NOT_ACTIVE, phase=phase)

		wallet = await self.wallets.find_wallet(user_id)
		if wallet is None:
			raise CommitFailed(CommitErrorKind.NO_WALLET)
		account = self.wallets.signer(wallet)

		try:
			usdc, eth, fee = await asyncio.gather(
				self.gateway.usdc_balance(wallet.address),
				self.gateway.eth_balance(wallet.address),
				self.gateway.creation_fee(),
			)
			if usdc < fee or eth < self.min_gas_eth:
				raise CommitFailed(
					CommitErrorKind.INSUFFICIENT_FUNDS,
					reason=f"needs {fee} USDC and {self.min_gas_eth} ETH, has {usdc} USDC and {eth} ETH",
				)
			await self.gateway.approve_usdc(account, self.gateway.factory_address, fee)
			receipt = await self.gateway.create_market(
				account,
				session.question,
				session.option_a,
				session.option_b,
				session.end_time,
			)
		except CommitFailed:
			raise
		except ChainError as exc:
			logger.warning("Market commit failed for chat %s: %s (%s)", chat_id, exc.kind.value, exc)
			raise CommitFailed(CommitErrorKind.from_chain(exc.kind), reason=exc.reason) from exc
		except Exception as exc:
			logger.exception("Market commit failed for chat %s", chat_id)
			raise CommitFailed(CommitErrorKind.UNKNOWN, reason=str(exc) or None) from exc

		market_id = receipt.market_id or f"manual_{int(self._clock())}"
		record_id = None
		try:
			record_id = await self.markets.create_market(
				MarketRecord(
					id=None,
					market_id=market_id,
					question=session.question,
					option_a=session.option_a,
					option_b=session.option_b,
					end_time=session.end_time,
					creator_id=wallet.user_id,
					contract_address=receipt.market_address,
					image_url=session.image_url,
					tags=session.tags or None,
					tx_hash=receipt.tx_hash,
				)
			)
		except Exception:
			logger.exception("Market %s created on-chain (tx %s) but not stored", market_id, receipt.tx_hash)

		self.sessions.delete(chat_id)
		return CommitOutcome(
			tx_hash=receipt.tx_hash,
			market_id=market_id,
			market_address=receipt.market_address,
			record_id=record_id,
		)
