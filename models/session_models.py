"""Conversation session variants for the chat workflows."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union

from models.market_reference import MarketReference


class WizardStep(str, Enum):
	"""Steps of the market-creation wizard, in order."""

	QUESTION = "question"
	OPTION_A = "optionA"
	OPTION_B = "optionB"
	END_TIME = "endTime"
	IMAGE = "image"
	TAGS = "tags"
	CONFIRM = "confirm"


@dataclass
class CreateMarketSession:
	"""State accumulated while a user walks through the market wizard."""

	step: WizardStep = WizardStep.QUESTION
	question: Optional[str] = None
	option_a: Optional[str] = None
	option_b: Optional[str] = None
	end_time: Optional[int] = None
	image_url: Optional[str] = None
	selected_tags: List[str] = field(default_factory=list)
	tags: Optional[str] = None
	touched_at: float = field(default_factory=time.time)

	action = "create_market"

	def toggle_tag(self, tag: str) -> None:
		"""Add the tag when absent, remove it when present."""
		if tag in self.selected_tags:
			self.selected_tags.remove(tag)
		else:
			self.selected_tags.append(tag)

	def freeze_tags(self) -> str:
		"""Fix the tag selection and move on to confirmation."""
		self.tags = ", ".join(self.selected_tags)
		self.step = WizardStep.CONFIRM
		return self.tags


@dataclass
class PlaceBetSession:
	"""A pending bet waiting for the user to type an amount."""

	market_token: str
	market: MarketReference
	side: str
	touched_at: float = field(default_factory=time.time)

	action = "place_bet"

	@property
	def option_label(self) -> str:
		return self.market.option_a if self.side == "A" else self.market.option_b


@dataclass
class WithdrawSession:
	"""A withdrawal waiting for a destination address and an asset choice."""

	usdc_balance: Decimal
	eth_balance: Decimal
	destination: Optional[str] = None
	touched_at: float = field(default_factory=time.time)

	action = "withdraw"


Session = Union[CreateMarketSession, PlaceBetSession, WithdrawSession]
