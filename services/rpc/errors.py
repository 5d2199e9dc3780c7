"""Structured failure kinds raised by the chain collaborator."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ChainErrorKind(str, Enum):
	RATE_LIMITED = "rate_limited"
	UNAVAILABLE = "unavailable"
	WEEK_NOT_ACTIVE = "week_not_active"
	INSUFFICIENT_FUNDS = "insufficient_funds"
	DEADLINE_TOO_FAR = "deadline_too_far"
	DEADLINE_TOO_SOON = "deadline_too_soon"
	DEADLINE_PAST = "deadline_past"
	TRANSACTION_REJECTED = "transaction_rejected"
	CONTRACT_REVERTED = "contract_reverted"
	UNKNOWN = "unknown"


class ChainError(Exception):
	"""A chain call failure tagged with its kind at the point of failure."""

	def __init__(self, kind: ChainErrorKind, message: str, reason: Optional[str] = None) -> None:
		super().__init__(message)
		self.kind = kind
		self.reason = reason

	@property
	def is_rate_limit(self) -> bool:
		return self.kind is ChainErrorKind.RATE_LIMITED
