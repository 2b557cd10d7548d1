"""
Best-effort downloads of cover and chapter images.
"""

import io
import logging

import httpx
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Pillow format name -> (file extension, media type)
IMAGE_TYPES = {
    "JPEG": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "GIF": ("gif", "image/gif"),
    "WEBP": ("webp", "image/webp"),
    "BMP": ("bmp", "image/bmp"),
}


def fetch_image(url: str, timeout: float = 30.0, client: httpx.Client | None = None) -> bytes | None:
    """Download an image.

    Args:
        url: Image URL
        timeout: Seconds allowed for the request
        client: Optional shared client (connection reuse)

    Returns:
        Response body, or None when the download fails
    """
    if not url:
        return None
    try:
        if client is not None:
            response = client.get(url, timeout=timeout)
        else:
            response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Image download failed for {url}: {e}")
        return None
    return response.content


def sniff_image(data: bytes) -> tuple[str, str] | None:
    """Identify image bytes.

    Returns:
        Tuple of (extension, media type), or None for data Pillow cannot read
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Unreadable image data: {e}")
        return None
    return IMAGE_TYPES.get(image_format or "")
