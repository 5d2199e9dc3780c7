"""Market listing, market details, leaderboard, statistics and the epoch status view."""

from __future__ import annotations

import logging

from dal.market_dal import MarketDAL
from models.chat_events import InboundEvent
from models.market_reference import MarketReference
from models.records import MarketRecord
from services.chain.epoch_gate import EpochGateReader
from services.conversation import keyboards, messages
from services.conversation.market_cache import MarketReferenceCache

logger = logging.getLogger(__name__)

PAGE_SIZE = 8
LEADERBOARD_SIZE = 10


def to_reference(record: MarketRecord) -> MarketReference:
	return MarketReference(
		source="store",
		record_id=record.id,
		market_id=record.market_id,
		contract_address=record.contract_address,
		question=record.question,
		option_a=record.option_a,
		option_b=record.option_b,
		end_time=record.end_time,
		image_url=record.image_url,
		tags=record.tags,
	)


class MarketBrowser:
	def __init__(
		self,
		transport,
		markets: MarketDAL,
		cache: MarketReferenceCache,
		epoch_gate: EpochGateReader,
		*,
		page_size: int = PAGE_SIZE,
	) -> None:
		self.transport = transport
		self.markets = markets
		self.cache = cache
		self.epoch_gate = epoch_gate
		self.page_size = page_size

	async def browse(self, event: InboundEvent) -> int:
		"""List active markets, registering a fresh token for each. Returns the count."""
		records = await self.markets.list_active(limit=self.page_size)
		if not records:
			await self.transport.send_text(event.chat_id, messages.NO_MARKETS, keyboards.main_menu())
			return 0
		entries = [(self.cache.put(to_reference(record)), record.question) for record in records]
		await self.transport.send_text(
			event.chat_id, messages.market_list_header(len(entries)), keyboards.market_list(entries)
		)
		return len(entries)

	async def show_details(self, event: InboundEvent, token: str) -> None:
		reference = self.cache.get(token)
		if reference is None:
			await self.transport.send_text(event.chat_id, messages.MARKET_EXPIRED, keyboards.refresh_markets())
			return
		text = messages.market_details(reference)
		keyboard = keyboards.market_actions(token, reference.option_a, reference.option_b)
		if reference.image_url:
			try:
				await self.transport.send_photo(event.chat_id, reference.image_url, text, keyboard)
				return
			except Exception:
				logger.warning("Could not send image for market %s, falling back to text", reference.market_id, exc_info=True)
		await self.transport.send_text(event.chat_id, text, keyboard)

	async def epoch_status(self, event: InboundEvent) -> None:
		status = await self.epoch_gate.read_status()
		pending = await self.epoch_gate.read_pending()
		await self.transport.send_text(event.chat_id, messages.epoch_status(status, pending), keyboards.back_to_menu())

	async def leaderboard(self, event: InboundEvent) -> None:
		entries = await self.markets.leaderboard(limit=LEADERBOARD_SIZE)
		await self.transport.send_text(event.chat_id, messages.leaderboard(entries), keyboards.leaderboard_actions())

	async def market_stats(self, event: InboundEvent) -> None:
		"""Store-wide counters plus the current epoch; an unreadable epoch is reported, not raised."""
		stats = await self.markets.market_stats()
		status = await self.epoch_gate.read_status()
		await self.transport.send_text(event.chat_id, messages.market_stats(stats, status), keyboards.stats_actions())
