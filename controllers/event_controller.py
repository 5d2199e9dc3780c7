from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request

from models.chat_events import EventKind, ImageAttachment, InboundEvent
from utils.media_validation import decode_image_payload


def build_event(
    *,
    chat_id: int,
    user_id: int,
    kind: str,
    text: Optional[str] = None,
    data: Optional[str] = None,
    image_b64: Optional[str] = None,
    image_mime_type: str = "image/jpeg",
    callback_id: Optional[str] = None,
    message_id: Optional[int] = None,
    username: Optional[str] = None,
    first_name: Optional[str] = None,
) -> InboundEvent:
    """Validate a raw event payload and turn it into an `InboundEvent`."""
    try:
        event_kind = EventKind(kind)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown event kind: {kind}")

    image = None
    if event_kind is EventKind.TEXT and not (text or "").strip():
        raise HTTPException(status_code=400, detail="Text events require text.")
    if event_kind is EventKind.BUTTON and not data:
        raise HTTPException(status_code=400, detail="Button events require data.")
    if event_kind is EventKind.IMAGE:
        if not image_b64:
            raise HTTPException(status_code=400, detail="Image events require image_b64.")
        image = ImageAttachment(data=decode_image_payload(image_b64, image_mime_type), mime_type=image_mime_type)

    return InboundEvent(
        chat_id=chat_id,
        user_id=user_id,
        kind=event_kind,
        text=text,
        data=data,
        image=image,
        callback_id=callback_id,
        message_id=message_id,
        username=username,
        first_name=first_name,
    )


async def handle_event(request: Request, event: InboundEvent) -> Dict[str, Any]:
    """Dispatch one chat event and return the messages it produced.

    Returns:
        A dict containing: chat_id, completed (False when the handler timed
        out), messages (outbound messages and in-place edits, in order).
    """
    dispatcher = request.app.state.dispatcher
    transport = request.app.state.transport

    completed = await dispatcher.dispatch(event)
    outbound = transport.drain(event.chat_id)
    return {
        "chat_id": event.chat_id,
        "completed": completed,
        "messages": [asdict(message) for message in outbound],
    }
