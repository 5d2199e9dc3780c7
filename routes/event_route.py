"""FastAPI route receiving chat events."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.event_controller import build_event, handle_event

router = APIRouter()


class EventPayload(BaseModel):
	chat_id: int
	user_id: int
	kind: str = "text"
	text: Optional[str] = None
	data: Optional[str] = None
	image_b64: Optional[str] = None
	image_mime_type: str = "image/jpeg"
	callback_id: Optional[str] = None
	message_id: Optional[int] = None
	username: Optional[str] = None
	first_name: Optional[str] = None


@router.post("/events")
async def post_event_route(request: Request, payload: EventPayload):
	try:
		event = build_event(**payload.model_dump())
		return await handle_event(request, event)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
