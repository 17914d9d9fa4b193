from __future__ import annotations

import io
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from backend.images import ImageRef
from backend.network import LoadResult, fetch
from utils.errors import CrossOriginBlocked, ImageDecodeError, RemoteUnavailable
from utils.log import get_logger

_LOGGER = get_logger("backend.compressor")

_MIME_BY_FORMAT = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "GIF": "image/gif",
    "ICO": "image/x-icon",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
}


def probe(data: Optional[bytes]) -> Tuple[str, int, int]:
    """Decode ``data`` far enough to know it is an image; return (format, width, height)."""
    if not data:
        raise ImageDecodeError("empty payload")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.format or "", img.width, img.height
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(str(e)) from e


def mime_for(data: bytes, content_type: str = "") -> str:
    if content_type.startswith("image/"):
        return content_type
    try:
        fmt, _, _ = probe(data)
    except ImageDecodeError:
        return "application/octet-stream"
    return _MIME_BY_FORMAT.get(fmt, "application/octet-stream")


def encode_inline(result: LoadResult) -> ImageRef:
    if not result.data:
        raise CrossOriginBlocked(f"no readable bytes for {result.url}")
    return ImageRef.inline(result.data, mime_for(result.data, result.content_type))


def compress(data: Optional[bytes], quality: float = 0.6, max_width: int = 1920) -> Optional[ImageRef]:
    """Downscale to ``max_width`` and re-encode as JPEG at ``quality`` (0..1).

    Returns None when the bytes cannot be decoded.
    """
    if not data:
        _LOGGER.debug("compress: nothing to read")
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.width > max_width:
                height = max(1, round(img.height * max_width / img.width))
                img = img.resize((max_width, height), Image.Resampling.LANCZOS)
            if img.mode != "RGB":
                img = img.convert("RGB")
            out = io.BytesIO()
            img.save(out, format="JPEG", quality=int(round(quality * 100)))
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        _LOGGER.debug("compress failed: %s", e)
        return None
    return ImageRef.inline(out.getvalue(), "image/jpeg")


def compress_url(url: str, quality: float = 0.6, max_width: int = 1920,
                 timeout: float = None) -> Optional[ImageRef]:
    try:
        res = fetch(url, timeout)
    except RemoteUnavailable as e:
        _LOGGER.debug("compress_url: %s", e)
        return None
    return compress(res.data, quality, max_width)
