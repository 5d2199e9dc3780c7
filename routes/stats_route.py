from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request

from controllers.stats_controller import get_stats

router = APIRouter()


@router.get("/stats")
async def get_stats_route(request: Request, x_admin_id: Optional[int] = Header(default=None)):
	try:
		return await get_stats(request, x_admin_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
