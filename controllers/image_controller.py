from fastapi import HTTPException, Request
from fastapi.responses import FileResponse


async def get_image(request: Request, filename: str) -> FileResponse:
    """Return a hosted market image by file name."""
    path = request.app.state.image_host.resolve(filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return FileResponse(path, media_type="image/jpeg")
