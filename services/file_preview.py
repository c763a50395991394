"""Preview thumbnails for image uploads shown in the study vault.

Provides a small OOP wrapper around Pillow. The resulting thumbnail fits
within 160x160 pixels and is returned as base64-encoded PNG text.

Example:
    previews = FilePreviewGenerator(max_size=(160, 160))
    preview_b64 = previews.create_preview(raw_bytes)
"""
from __future__ import annotations

import base64
import io
from typing import Tuple

from PIL import Image


class FilePreviewGenerator:
    """Generate PNG previews from raw image bytes.

    Args:
        max_size: Maximum width and height for the preview. Defaults to (160, 160).
        background: Color used to flatten transparent images. Defaults to white.
    """

    def __init__(self, max_size: Tuple[int, int] = (160, 160), background: Tuple[int, int, int] | None = None):
        self.max_size = max_size
        self.background = background or (255, 255, 255)

    @staticmethod
    def supports(mime_type: str) -> bool:
        return (mime_type or "").startswith("image/")

    def create_preview(self, raw: bytes) -> str:
        """Return a base64 PNG preview of `raw`.

        Raises:
            ValueError: If the bytes cannot be opened as an image.
        """
        try:
            src = Image.open(io.BytesIO(raw))
            src.load()
        except Exception as exc:
            raise ValueError("Bytes are not a supported image format") from exc

        src = src.convert("RGBA")
        src.thumbnail(self.max_size, Image.LANCZOS)

        # Flatten alpha against the background color
        flattened = Image.new("RGB", src.size, self.background)
        flattened.paste(src, mask=src.split()[3])

        out_io = io.BytesIO()
        flattened.save(out_io, format="PNG", optimize=True)
        return base64.b64encode(out_io.getvalue()).decode("utf-8")
