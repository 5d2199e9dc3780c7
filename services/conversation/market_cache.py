"""Short tokens for market snapshots rendered in listings."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from models.market_reference import MarketReference

logger = logging.getLogger(__name__)

DEFAULT_CEILING = 500


class MarketReferenceCache:
	"""Map `m<counter>` tokens to market snapshots.

	The cache is never trimmed entry by entry: once it holds `ceiling`
	entries it is cleared completely and the counter restarts, which bounds
	memory without any bookkeeping. Entries may outlive the market they
	describe.
	"""

	def __init__(self, ceiling: int = DEFAULT_CEILING) -> None:
		self.ceiling = ceiling
		self.counter = 0
		self._entries: Dict[str, MarketReference] = {}

	def __len__(self) -> int:
		return len(self._entries)

	def put(self, reference: MarketReference) -> str:
		"""Register a snapshot and return its token."""
		self.enforce_ceiling()
		self.counter += 1
		token = f"m{self.counter}"
		self._entries[token] = reference
		return token

	def get(self, token: str) -> Optional[MarketReference]:
		return self._entries.get(token)

	def enforce_ceiling(self) -> bool:
		"""Clear everything when the cache is full. Returns True if it cleared."""
		if len(self._entries) < self.ceiling:
			return False
		self.clear()
		logger.info("Cleared market reference cache at %d entries", self.ceiling)
		return True

	def clear(self) -> None:
		self._entries.clear()
		self.counter = 0
