"""Inbound and outbound chat event shapes shared by the transport and flows."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class EventKind(str, Enum):
    TEXT = "text"
    BUTTON = "button"
    IMAGE = "image"


@dataclass
class ImageAttachment:
    data: bytes
    mime_type: str = "image/jpeg"
    filename: Optional[str] = None


@dataclass
class InboundEvent:
    """One message or button press delivered for a chat.

    Attributes:
        chat_id: Conversation identity; sessions are keyed by it.
        user_id: Sender identity.
        kind: Text message, button press or image upload.
        text: Message text (TEXT events and optional image captions).
        data: Button payload (BUTTON events).
        image: Uploaded image (IMAGE events).
        callback_id: Button press id that must be acknowledged.
        message_id: Message carrying the pressed keyboard, for in-place edits.
        username: Optional sender handle.
        first_name: Optional sender display name.
    """

    chat_id: int
    user_id: int
    kind: EventKind
    text: Optional[str] = None
    data: Optional[str] = None
    image: Optional[ImageAttachment] = None
    callback_id: Optional[str] = None
    message_id: Optional[int] = None
    username: Optional[str] = None
    first_name: Optional[str] = None

    @property
    def is_command(self) -> bool:
        return self.kind is EventKind.TEXT and (self.text or "").startswith("/")

    @property
    def command(self) -> Optional[str]:
        if not self.is_command:
            return None
        return (self.text or "").split()[0].split("@")[0].lower()


@dataclass
class Button:
    text: str
    data: str


Keyboard = List[List[Button]]


@dataclass
class OutboundMessage:
    """A message sent (or an edit applied) by the bot."""

    chat_id: int
    message_id: int
    text: str
    keyboard: Optional[Keyboard] = None
    photo_url: Optional[str] = None
    edited: bool = False
