"""Host market images uploaded during the creation wizard.

Uploads are decoded with Pillow, flattened to RGB, bounded to `max_size`
and written as JPEG under the configured image directory. The returned URL
points at the `/images/{filename}` route, which serves the stored file.
"""

from __future__ import annotations

import asyncio
import io
import re
import uuid
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image

from models.chat_events import ImageAttachment

_FILENAME_RE = re.compile(r"^[0-9a-f]{32}\.jpg$")


class LocalImageHost:
    """Store images on disk and hand out durable public URLs.

    Args:
        image_dir: Directory that receives the JPEG files.
        public_base_url: Base URL under which `/images/...` is reachable.
        max_size: Maximum width and height of the stored image.
        background: Color used to flatten transparent images.
    """

    def __init__(
        self,
        image_dir: Path | str,
        public_base_url: str,
        max_size: Tuple[int, int] = (1280, 1280),
        background: Tuple[int, int, int] = (255, 255, 255),
    ) -> None:
        self.image_dir = Path(image_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.max_size = max_size
        self.background = background

    async def store(self, attachment: ImageAttachment) -> str:
        """Persist an uploaded image and return its public URL.

        Raises:
            ValueError: If the attachment is empty or not a readable image.
        """
        if not attachment.data:
            raise ValueError("Image bytes are required.")
        filename = f"{uuid.uuid4().hex}.jpg"
        # Pillow work is blocking -> run in thread
        await asyncio.to_thread(self._write_jpeg, attachment.data, self.image_dir / filename)
        return f"{self.public_base_url}/images/{filename}"

    def resolve(self, filename: str) -> Optional[Path]:
        """Return the stored file for `filename`, or None if unknown."""
        if not _FILENAME_RE.match(filename or ""):
            return None
        path = self.image_dir / filename
        return path if path.is_file() else None

    def _write_jpeg(self, data: bytes, path: Path) -> None:
        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except Exception as exc:
            raise ValueError("Uploaded bytes are not a supported image format") from exc

        src = src.convert("RGBA")
        src.thumbnail(self.max_size, Image.LANCZOS)
        flattened = Image.new("RGB", src.size, self.background)
        flattened.paste(src, mask=src.split()[3])

        path.parent.mkdir(parents=True, exist_ok=True)
        flattened.save(path, format="JPEG", quality=85, optimize=True)
