"""Validation helpers for images posted with chat events."""

import base64
import binascii

from fastapi import HTTPException

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/bmp",
}

MAX_IMAGE_BYTES = 10 * 1024 * 1024


def decode_image_payload(image_b64: str, mime_type: str = "image/jpeg") -> bytes:
    """Return the raw image bytes carried by a base64 event payload.

    Data URLs (`data:image/png;base64,...`) are accepted as well as bare
    base64 text.
    """
    text = (image_b64 or "").strip()
    if text.startswith("data:") and "," in text:
        header, text = text.split(",", 1)
        mime_type = header[5:].split(";", 1)[0] or mime_type
    content_type = (mime_type or "").lower().split(";", 1)[0].strip()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=415, detail=f"Unsupported image content type: {mime_type}")
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Image payload must be base64 encoded.") from exc
    if not raw:
        raise HTTPException(status_code=400, detail="Image payload is empty.")
    if len(raw) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="Image payload is too large.")
    return raw
