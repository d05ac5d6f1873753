"""Encoding of image and PDF files into data URLs for board items.

Images larger than `MAX_IMAGE_BYTES` are scaled so their longest side is at
most `MAX_IMAGE_DIMENSION` and re-encoded as JPEG before they are stored.
"""

from __future__ import annotations

import base64
import io
import logging
import mimetypes
from pathlib import Path
from typing import Tuple

from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .errors import WeaveError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 4 * 1024 * 1024
MAX_IMAGE_DIMENSION = 1500
JPEG_QUALITY = 80


def to_data_url(mime: str, payload: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


def compress_image(payload: bytes) -> Tuple[str, bytes]:
    """Shrink an oversized image to a JPEG. Returns `(mime, bytes)`."""
    try:
        with Image.open(io.BytesIO(payload)) as img:
            img.load()
            if max(img.size) > MAX_IMAGE_DIMENSION:
                scale = MAX_IMAGE_DIMENSION / max(img.size)
                size = (round(img.width * scale), round(img.height * scale))
                img = img.resize(size, Image.LANCZOS)
            out = io.BytesIO()
            img.convert("RGB").save(out, format="JPEG", quality=JPEG_QUALITY)
    except (UnidentifiedImageError, OSError) as e:
        raise WeaveError(f"Failed to load image for compression: {e}") from e
    return "image/jpeg", out.getvalue()


def image_data_url(path: str | Path) -> str:
    p = Path(path)
    payload = p.read_bytes()
    mime = mimetypes.guess_type(p.name)[0] or "application/octet-stream"
    if len(payload) > MAX_IMAGE_BYTES:
        before = len(payload)
        mime, payload = compress_image(payload)
        logger.debug("Compressed %s from %d to %d bytes", p.name, before, len(payload))
    return to_data_url(mime, payload)


def pdf_page_count(path: str | Path) -> int:
    try:
        return len(PdfReader(str(path)).pages)
    except (PdfReadError, OSError, ValueError) as e:
        raise WeaveError(f"Not a readable PDF: {path} ({e})") from e


def pdf_data_url(path: str | Path) -> str:
    return to_data_url("application/pdf", Path(path).read_bytes())
