"""Outbound side of the chat platform."""

from __future__ import annotations

import itertools
from typing import Dict, List, Optional, Protocol

from models.chat_events import Keyboard, OutboundMessage


class ChatTransport(Protocol):
    """Operations the flows need from the chat platform."""

    async def send_text(self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None) -> int: ...

    async def send_photo(self, chat_id: int, photo_url: str, caption: str, keyboard: Optional[Keyboard] = None) -> int: ...

    async def edit_text(self, chat_id: int, message_id: int, text: str, keyboard: Optional[Keyboard] = None) -> None: ...

    async def answer_button(self, callback_id: str) -> None: ...


class BufferedTransport:
    """Collect outbound messages per chat until a caller drains them."""

    def __init__(self) -> None:
        self._outbox: Dict[int, List[OutboundMessage]] = {}
        self._ids = itertools.count(1)
        self.answered: List[str] = []

    async def send_text(self, chat_id: int, text: str, keyboard: Optional[Keyboard] = None) -> int:
        message_id = next(self._ids)
        self._outbox.setdefault(chat_id, []).append(
            OutboundMessage(chat_id=chat_id, message_id=message_id, text=text, keyboard=keyboard)
        )
        return message_id

    async def send_photo(self, chat_id: int, photo_url: str, caption: str, keyboard: Optional[Keyboard] = None) -> int:
        message_id = next(self._ids)
        self._outbox.setdefault(chat_id, []).append(
            OutboundMessage(chat_id=chat_id, message_id=message_id, text=caption, keyboard=keyboard, photo_url=photo_url)
        )
        return message_id

    async def edit_text(self, chat_id: int, message_id: int, text: str, keyboard: Optional[Keyboard] = None) -> None:
        self._outbox.setdefault(chat_id, []).append(
            OutboundMessage(chat_id=chat_id, message_id=message_id, text=text, keyboard=keyboard, edited=True)
        )

    async def answer_button(self, callback_id: str) -> None:
        self.answered.append(callback_id)

    def messages(self, chat_id: int) -> List[OutboundMessage]:
        """Return the pending messages for a chat without removing them."""
        return list(self._outbox.get(chat_id, []))

    def drain(self, chat_id: int) -> List[OutboundMessage]:
        """Return and forget the pending messages for a chat."""
        return self._outbox.pop(chat_id, [])
