"""Welcome, menus, cancellation and wallet screens."""

from __future__ import annotations

import asyncio
import logging

from dal.market_dal import MarketDAL
from models.chat_events import InboundEvent
from services.conversation import keyboards, messages
from services.conversation.session_store import SessionStore
from services.rpc.errors import ChainError
from utils.tasks import spawn_detached

logger = logging.getLogger(__name__)


class AccountHandlers:
	def __init__(self, sessions: SessionStore, transport, wallets, gateway, markets: MarketDAL) -> None:
		self.sessions = sessions
		self.transport = transport
		self.wallets = wallets
		self.gateway = gateway
		self.markets = markets

	async def welcome(self, event: InboundEvent) -> None:
		# The reply does not wait for the user row.
		spawn_detached(
			self.wallets.ensure_user(event.user_id, event.username),
			name=f"ensure-user-{event.user_id}",
		)
		await self.transport.send_text(event.chat_id, messages.welcome(event.first_name), keyboards.main_menu())

	async def main_menu(self, event: InboundEvent) -> None:
		await self.transport.send_text(event.chat_id, messages.USE_MENU, keyboards.main_menu())

	async def cancel(self, event: InboundEvent) -> bool:
		"""Drop whatever session the chat has. Returns True if one existed."""
		existed = self.sessions.delete(event.chat_id)
		text = messages.CANCELLED if existed else messages.NOTHING_TO_CANCEL
		await self.transport.send_text(event.chat_id, text, keyboards.main_menu())
		return existed

	async def wallet_menu(self, event: InboundEvent) -> None:
		wallet = await self.wallets.find_wallet(event.user_id)
		address = wallet.address if wallet is not None else None
		await self.transport.send_text(
			event.chat_id, messages.wallet_summary(address), keyboards.wallet_menu(wallet is not None)
		)

	async def create_wallet(self, event: InboundEvent) -> None:
		wallet = await self.wallets.create_wallet(event.user_id, event.username)
		await self.transport.send_text(event.chat_id, messages.wallet_created(wallet.address), keyboards.wallet_menu(True))

	async def show_balance(self, event: InboundEvent) -> None:
		wallet = await self.wallets.find_wallet(event.user_id)
		if wallet is None:
			await self.transport.send_text(event.chat_id, messages.NEED_WALLET, keyboards.wallet_menu(False))
			return
		try:
			usdc, eth = await asyncio.gather(
				self.gateway.usdc_balance(wallet.address),
				self.gateway.eth_balance(wallet.address),
			)
		except ChainError as exc:
			await self.transport.send_text(event.chat_id, messages.chain_failure(exc), keyboards.wallet_menu(True))
			return
		await self.transport.send_text(
			event.chat_id, messages.balances(wallet.address, usdc, eth), keyboards.wallet_menu(True)
		)

	async def show_deposit(self, event: InboundEvent) -> None:
		wallet = await self.wallets.find_wallet(event.user_id)
		if wallet is None:
			await self.transport.send_text(event.chat_id, messages.NEED_WALLET, keyboards.wallet_menu(False))
			return
		await self.transport.send_text(event.chat_id, messages.deposit(wallet.address), keyboards.wallet_menu(True))

	async def show_positions(self, event: InboundEvent) -> None:
		wallet = await self.wallets.find_wallet(event.user_id)
		if wallet is None:
			await self.transport.send_text(event.chat_id, messages.NEED_WALLET, keyboards.wallet_menu(False))
			return
		items = await self.markets.list_positions(wallet.user_id)
		await self.transport.send_text(event.chat_id, messages.positions(items), keyboards.wallet_menu(True))
