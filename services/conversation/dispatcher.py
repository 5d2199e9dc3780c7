"""Route inbound chat events to the conversation flows.

Every event is handled under its chat's lock, so two deliveries for the same
chat never interleave. A double-tapped confirm therefore commits once: the
second press runs after the first has deleted the session and finds nothing
to confirm.
"""

from __future__ import annotations

import asyncio
import logging

from models.chat_events import EventKind, InboundEvent
from models.session_models import CreateMarketSession, PlaceBetSession, WithdrawSession
from services.conversation import keyboards, messages
from services.conversation.account_handlers import AccountHandlers
from services.conversation.bet_flow import BetFlow
from services.conversation.create_market_wizard import CreateMarketWizard
from services.conversation.market_browser import MarketBrowser
from services.conversation.session_store import SessionStore
from services.conversation.withdraw_flow import WithdrawFlow

logger = logging.getLogger(__name__)


class ConversationDispatcher:
	def __init__(
		self,
		sessions: SessionStore,
		transport,
		wizard: CreateMarketWizard,
		bets: BetFlow,
		withdrawals: WithdrawFlow,
		browser: MarketBrowser,
		accounts: AccountHandlers,
		*,
		ack_timeout: float = 5.0,
		handler_timeout: float = 30.0,
	) -> None:
		self.sessions = sessions
		self.transport = transport
		self.wizard = wizard
		self.bets = bets
		self.withdrawals = withdrawals
		self.browser = browser
		self.accounts = accounts
		self.ack_timeout = ack_timeout
		self.handler_timeout = handler_timeout

	async def dispatch(self, event: InboundEvent) -> bool:
		"""Handle one event. Returns False when the handler ran past its timeout.

		A timed-out handler is not cancelled; it keeps running and may still
		change the session.
		"""
		if event.kind is EventKind.BUTTON and event.callback_id:
			await self._acknowledge(event.callback_id)

		work = asyncio.ensure_future(self._handle(event))
		try:
			await asyncio.wait_for(asyncio.shield(work), self.handler_timeout)
		except asyncio.TimeoutError:
			logger.error("Handler for chat %s exceeded %ss", event.chat_id, self.handler_timeout)
			work.add_done_callback(self._report_late_failure)
			await self.transport.send_text(event.chat_id, messages.HANDLER_TIMEOUT)
			return False
		return True

	async def _acknowledge(self, callback_id: str) -> None:
		try:
			await asyncio.wait_for(self.transport.answer_button(callback_id), self.ack_timeout)
		except asyncio.TimeoutError:
			logger.warning("Button acknowledgement %s timed out", callback_id)
		except Exception:
			logger.warning("Button acknowledgement %s failed", callback_id, exc_info=True)

	@staticmethod
	def _report_late_failure(task: asyncio.Future) -> None:
		if task.cancelled():
			return
		exc = task.exception()
		if exc is not None:
			logger.error("Timed-out handler failed later", exc_info=exc)

	async def _handle(self, event: InboundEvent) -> None:
		chat_id = event.chat_id
		async with self.sessions.lock(chat_id):
			try:
				await self._route(event)
			except Exception:
				logger.exception("Unhandled error for chat %s", chat_id)
				self.sessions.delete(chat_id)
				await self.transport.send_text(chat_id, messages.UNEXPECTED_ERROR, keyboards.main_menu())

	async def _route(self, event: InboundEvent) -> None:
		if self.sessions.find(event.chat_id) is not None:
			self.sessions.touch(event.chat_id)

		if event.is_command:
			await self._route_command(event)
		elif event.kind is EventKind.BUTTON:
			await self._route_button(event)
		elif event.kind is EventKind.IMAGE:
			session = self.sessions.find(event.chat_id)
			if isinstance(session, CreateMarketSession):
				await self.wizard.handle_image(event, session)
			else:
				await self.transport.send_text(event.chat_id, messages.NOT_EXPECTING_IMAGE)
		else:
			await self._route_text(event)

	async def _route_command(self, event: InboundEvent) -> None:
		command = event.command
		if command == "/start":
			await self.accounts.welcome(event)
		elif command == "/cancel":
			await self.accounts.cancel(event)
		elif command == "/create":
			await self.wizard.start(event)
		elif command == "/markets":
			await self.browser.browse(event)
		elif command == "/wallet":
			await self.accounts.wallet_menu(event)
		elif command == "/epoch":
			await self.browser.epoch_status(event)
		elif command == "/leaderboard":
			await self.browser.leaderboard(event)
		elif command == "/stats":
			await self.browser.market_stats(event)
		else:
			await self.transport.send_text(event.chat_id, messages.UNKNOWN_COMMAND)

	async def _route_text(self, event: InboundEvent) -> None:
		session = self.sessions.find(event.chat_id)
		if isinstance(session, CreateMarketSession):
			await self.wizard.handle_text(event, session)
		elif isinstance(session, PlaceBetSession):
			await self.bets.handle_amount(event, session)
		elif isinstance(session, WithdrawSession):
			await self.withdrawals.handle_address(event, session)
		else:
			await self.transport.send_text(event.chat_id, messages.USE_MENU, keyboards.main_menu())

	async def _route_button(self, event: InboundEvent) -> None:
		data = event.data or ""
		session = self.sessions.find(event.chat_id)

		if data == keyboards.MAIN_MENU:
			await self.accounts.main_menu(event)
		elif data == keyboards.CANCEL:
			await self.accounts.cancel(event)
		elif data == keyboards.BROWSE_MARKETS:
			await self.browser.browse(event)
		elif data.startswith(keyboards.MARKET_PREFIX):
			await self.browser.show_details(event, data[len(keyboards.MARKET_PREFIX):])
		elif data.startswith(keyboards.BET_PREFIX):
			token, _, side = data[len(keyboards.BET_PREFIX):].partition(":")
			await self.bets.start(event, token, side)
		elif data == keyboards.CREATE_START:
			await self.wizard.start(event)
		elif data == keyboards.CREATE_CONFIRM:
			if isinstance(session, CreateMarketSession):
				await self.wizard.confirm(event, session)
			else:
				await self.transport.send_text(event.chat_id, messages.NO_PENDING_MARKET)
		elif data.startswith(keyboards.TAG_PREFIX):
			if isinstance(session, CreateMarketSession):
				await self.wizard.toggle_tag(event, session, data[len(keyboards.TAG_PREFIX):])
		elif data == keyboards.TAGS_DONE:
			if isinstance(session, CreateMarketSession):
				await self.wizard.finish_tags(event, session)
		elif data == keyboards.WALLET_MENU:
			await self.accounts.wallet_menu(event)
		elif data == keyboards.WALLET_CREATE:
			await self.accounts.create_wallet(event)
		elif data == keyboards.WALLET_BALANCE:
			await self.accounts.show_balance(event)
		elif data == keyboards.WALLET_DEPOSIT:
			await self.accounts.show_deposit(event)
		elif data == keyboards.WALLET_POSITIONS:
			await self.accounts.show_positions(event)
		elif data == keyboards.WALLET_WITHDRAW:
			await self.withdrawals.start(event)
		elif data in (keyboards.WITHDRAW_USDC, keyboards.WITHDRAW_ETH):
			if isinstance(session, WithdrawSession):
				await self.withdrawals.choose_asset(event, session, data.split(":", 1)[1])
			else:
				await self.transport.send_text(event.chat_id, messages.USE_MENU, keyboards.main_menu())
		elif data == keyboards.EPOCH_STATUS:
			await self.browser.epoch_status(event)
		elif data == keyboards.LEADERBOARD:
			await self.browser.leaderboard(event)
		elif data == keyboards.MARKET_STATS:
			await self.browser.market_stats(event)
		else:
			logger.warning("Unknown button payload %r from chat %s", data, event.chat_id)
