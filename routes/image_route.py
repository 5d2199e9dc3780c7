from fastapi import APIRouter, HTTPException, Request

from controllers.image_controller import get_image

router = APIRouter()


@router.get("/images/{filename}")
async def get_market_image(request: Request, filename: str):
	"""Return the JPEG stored for a market image."""
	try:
		return await get_image(request, filename)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
