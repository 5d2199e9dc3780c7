"""The six-step market-creation wizard."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from models.chat_events import InboundEvent
from models.session_models import CreateMarketSession, WizardStep
from services.conversation import keyboards, messages
from services.conversation.market_commit import CommitFailed, MarketCommitter
from services.conversation.session_store import SessionStore
from services.rpc.errors import ChainError

logger = logging.getLogger(__name__)

QUESTION_MIN, QUESTION_MAX = 10, 200
OPTION_MIN, OPTION_MAX = 1, 50

_DATE_FORMATS = (
	"%Y-%m-%d %H:%M",
	"%Y-%m-%d %H:%M:%S",
	"%Y-%m-%d",
	"%d/%m/%Y %H:%M",
	"%d/%m/%Y",
)


class InputRejected(ValueError):
	"""User input that fails validation; the step is prompted again."""


def validate_question(text: Optional[str]) -> str:
	value = (text or "").strip()
	if not QUESTION_MIN <= len(value) <= QUESTION_MAX:
		raise InputRejected(f"The question must be {QUESTION_MIN} to {QUESTION_MAX} characters long.")
	return value


def validate_option(text: Optional[str]) -> str:
	value = (text or "").strip()
	if not OPTION_MIN <= len(value) <= OPTION_MAX:
		raise InputRejected(f"Options must be {OPTION_MIN} to {OPTION_MAX} characters long.")
	return value


def parse_end_time(text: Optional[str], now: Optional[datetime] = None) -> int:
	"""Parse a closing date typed by the user into epoch seconds.

	ISO 8601 is tried first, then the common `YYYY-MM-DD HH:MM` and
	`DD/MM/YYYY` forms. Values without a timezone are read as UTC. The
	result must lie strictly in the future.
	"""
	value = (text or "").strip()
	parsed = None
	try:
		parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
	except ValueError:
		for fmt in _DATE_FORMATS:
			try:
				parsed = datetime.strptime(value, fmt)
				break
			except ValueError:
				continue
	if parsed is None:
		raise InputRejected("I could not read that date.")
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	now = now or datetime.now(timezone.utc)
	if parsed <= now:
		raise InputRejected("The end time must be in the future.")
	return int(parsed.timestamp())


class CreateMarketWizard:
	"""Drive a `CreateMarketSession` from the question to the gated commit.

	Validation failures re-prompt the current step without advancing it.
	The commit itself is delegated to `MarketCommitter`.
	"""

	def __init__(
		self,
		sessions: SessionStore,
		transport,
		image_host,
		wallets,
		gateway,
		committer: MarketCommitter,
		*,
		min_gas_eth: Decimal = Decimal("0.001"),
	) -> None:
		self.sessions = sessions
		self.transport = transport
		self.image_host = image_host
		self.wallets = wallets
		self.gateway = gateway
		self.committer = committer
		self.min_gas_eth = min_gas_eth

	async def start(self, event: InboundEvent) -> Optional[CreateMarketSession]:
		"""Open a new wizard after an advisory funds check.

		The balances read here may be stale by the time the user confirms;
		the commit checks them again.
		"""
		chat_id = event.chat_id
		wallet = await self.wallets.find_wallet(event.user_id)
		if wallet is None:
			await self.transport.send_text(chat_id, messages.NEED_WALLET, keyboards.wallet_menu(False))
			return None
		try:
			usdc, eth, fee = await asyncio.gather(
				self.gateway.usdc_balance(wallet.address),
				self.gateway.eth_balance(wallet.address),
				self.gateway.creation_fee(),
			)
		except ChainError as exc:
			logger.warning("Skipping funds check for chat %s: %s", chat_id, exc)
		else:
			if usdc < fee:
				await self.transport.send_text(chat_id, messages.needs_funds(fee, usdc), keyboards.wallet_menu(True))
				return None
			if eth < self.min_gas_eth:
				await self.transport.send_text(chat_id, messages.needs_gas(self.min_gas_eth), keyboards.wallet_menu(True))
				return None

		session = self.sessions.start(chat_id, CreateMarketSession())
		await self.transport.send_text(chat_id, messages.PROMPT_QUESTION, keyboards.cancel_only())
		return session

	async def handle_text(self, event: InboundEvent, session: CreateMarketSession) -> None:
		chat_id = event.chat_id
		text = event.text
		step = session.step
		try:
			if step is WizardStep.QUESTION:
				session.question = validate_question(text)
				session.step = WizardStep.OPTION_A
				await self.transport.send_text(chat_id, messages.PROMPT_OPTION_A, keyboards.cancel_only())
			elif step is WizardStep.OPTION_A:
				session.option_a = validate_option(text)
				session.step = WizardStep.OPTION_B
				await self.transport.send_text(chat_id, messages.PROMPT_OPTION_B, keyboards.cancel_only())
			elif step is WizardStep.OPTION_B:
				session.option_b = validate_option(text)
				session.step = WizardStep.END_TIME
				await self.transport.send_text(chat_id, messages.PROMPT_END_TIME, keyboards.cancel_only())
			elif step is WizardStep.END_TIME:
				session.end_time = parse_end_time(text)
				session.step = WizardStep.IMAGE
				await self.transport.send_text(chat_id, messages.PROMPT_IMAGE, keyboards.cancel_only())
			elif step is WizardStep.IMAGE:
				if (text or "").strip().lower() != "skip":
					raise InputRejected("Send an image or type 'skip'.")
				await self._ask_tags(session, chat_id)
			else:
				await self.transport.send_text(chat_id, messages.USE_BUTTONS)
		except InputRejected as exc:
			await self.transport.send_text(
				chat_id, messages.rejected(str(exc), _PROMPTS[step]), keyboards.cancel_only()
			)

	async def handle_image(self, event: InboundEvent, session: CreateMarketSession) -> None:
		chat_id = event.chat_id
		if session.step is not WizardStep.IMAGE or event.image is None:
			await self.transport.send_text(chat_id, messages.NOT_EXPECTING_IMAGE)
			return
		try:
			session.image_url = await self.image_host.store(event.image)
		except ValueError as exc:
			logger.warning("Rejected market image for chat %s: %s", chat_id, exc)
			await self.transport.send_text(
				chat_id, messages.rejected("That image could not be used.", messages.PROMPT_IMAGE), keyboards.cancel_only()
			)
			return
		await self._ask_tags(session, chat_id)

	async def toggle_tag(self, event: InboundEvent, session: CreateMarketSession, tag: str) -> None:
		if session.step is not WizardStep.TAGS or tag not in keyboards.MARKET_CATEGORIES:
			return
		session.toggle_tag(tag)
		grid = keyboards.tag_grid(session.selected_tags)
		if event.message_id is not None:
			await self.transport.edit_text(event.chat_id, event.message_id, messages.PROMPT_TAGS, grid)
		else:
			await self.transport.send_text(event.chat_id, messages.PROMPT_TAGS, grid)

	async def finish_tags(self, event: InboundEvent, session: CreateMarketSession) -> None:
		if session.step is not WizardStep.TAGS:
			return
		session.freeze_tags()
		await self.transport.send_text(event.chat_id, messages.confirmation(session), keyboards.confirm_market())

	async def confirm(self, event: InboundEvent, session: CreateMarketSession) -> bool:
		"""Commit the market. Returns True when it was created."""
		chat_id = event.chat_id
		if session.step is not WizardStep.CONFIRM:
			await self.transport.send_text(chat_id, messages.NO_PENDING_MARKET)
			return False
		try:
			outcome = await self.committer.commit(chat_id, event.user_id, session)
		except CommitFailed as exc:
			await self.transport.send_text(chat_id, messages.commit_failure(exc), keyboards.confirm_market())
			return False
		await self.transport.send_text(
			chat_id, messages.market_created(outcome.market_id, outcome.tx_hash), keyboards.main_menu()
		)
		return True

	async def _ask_tags(self, session: CreateMarketSession, chat_id: int) -> None:
		session.step = WizardStep.TAGS
		await self.transport.send_text(chat_id, messages.PROMPT_TAGS, keyboards.tag_grid(session.selected_tags))


_PROMPTS = {
	WizardStep.QUESTION: messages.PROMPT_QUESTION,
	WizardStep.OPTION_A: messages.PROMPT_OPTION_A,
	WizardStep.OPTION_B: messages.PROMPT_OPTION_B,
	WizardStep.END_TIME: messages.PROMPT_END_TIME,
	WizardStep.IMAGE: messages.PROMPT_IMAGE,
	WizardStep.TAGS: messages.PROMPT_TAGS,
	WizardStep.CONFIRM: messages.USE_BUTTONS,
}
