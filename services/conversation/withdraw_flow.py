"""Withdraw USDC or ETH from the managed wallet to an external address."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from web3 import Web3

from models.chat_events import InboundEvent
from models.session_models import WithdrawSession
from services.conversation import keyboards, messages
from services.conversation.session_store import SessionStore
from services.rpc.errors import ChainError

logger = logging.getLogger(__name__)


class WithdrawFlow:
	"""Ask for a destination, then send the full balance of the chosen asset."""

	def __init__(self, sessions: SessionStore, transport, wallets, gateway) -> None:
		self.sessions = sessions
		self.transport = transport
		self.wallets = wallets
		self.gateway = gateway

	async def start(self, event: InboundEvent) -> Optional[WithdrawSession]:
		chat_id = event.chat_id
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
			await self.transport.send_text(chat_id, messages.chain_failure(exc), keyboards.wallet_menu(True))
			return None
		if usdc <= 0 and eth <= 0:
			await self.transport.send_text(chat_id, "There is nothing to withdraw.", keyboards.wallet_menu(True))
			return None
		session = self.sessions.start(chat_id, WithdrawSession(usdc_balance=usdc, eth_balance=eth))
		await self.transport.send_text(
			chat_id,
			f"{messages.balances(wallet.address, usdc, eth)}\n\n{messages.PROMPT_WITHDRAW_ADDRESS}",
			keyboards.cancel_only(),
		)
		return session

	async def handle_address(self, event: InboundEvent, session: WithdrawSession) -> None:
		chat_id = event.chat_id
		if session.destination is not None:
			await self.transport.send_text(chat_id, messages.PROMPT_WITHDRAW_ASSET, keyboards.withdraw_assets())
			return
		text = (event.text or "").strip()
		if not Web3.is_address(text):
			await self.transport.send_text(
				chat_id, messages.rejected("That is not a valid address.", messages.PROMPT_WITHDRAW_ADDRESS),
				keyboards.cancel_only(),
			)
			return
		session.destination = Web3.to_checksum_address(text)
		await self.transport.send_text(chat_id, messages.PROMPT_WITHDRAW_ASSET, keyboards.withdraw_assets())

	async def choose_asset(self, event: InboundEvent, session: WithdrawSession, asset: str) -> bool:
		"""Send `asset` ("usdc" or "eth") to the chosen destination. Returns True when sent."""
		chat_id = event.chat_id
		if session.destination is None:
			await self.transport.send_text(chat_id, messages.PROMPT_WITHDRAW_ADDRESS, keyboards.cancel_only())
			return False
		wallet = await self.wallets.find_wallet(event.user_id)
		if wallet is None:
			self.sessions.delete(chat_id)
			await self.transport.send_text(chat_id, messages.NEED_WALLET, keyboards.wallet_menu(False))
			return False
		account = self.wallets.signer(wallet)
		try:
			if asset == "usdc":
				amount = await self.gateway.usdc_balance(wallet.address)
				if amount <= 0:
					await self.transport.send_text(chat_id, "You have no USDC to withdraw.", keyboards.withdraw_assets())
					return False
				tx_hash = await self.gateway.transfer_usdc(account, session.destination, amount)
			else:
				tx_hash = await self.gateway.transfer_all_eth(account, session.destination)
		except ChainError as exc:
			logger.warning("Withdrawal of %s failed for chat %s: %s", asset, chat_id, exc)
			await self.transport.send_text(chat_id, messages.chain_failure(exc), keyboards.withdraw_assets())
			return False

		self.sessions.delete(chat_id)
		await self.transport.send_text(
			chat_id, messages.withdraw_sent(asset.upper(), session.destination, tx_hash), keyboards.main_menu()
		)
		return True
