"""Photo URL -> small embedded JPEG thumbnail.

Each conversion downloads one image with httpx, shrinks it with Pillow
and returns a `data:image/jpeg;base64,...` URL. Conversions run
concurrently and each one is bounded by its own timeout; a photo that
fails or times out simply has no thumbnail.
"""
from typing import List, Optional, Sequence
import asyncio
import base64
import io
import logging

import httpx
from PIL import Image, ImageOps

from .config import THUMBNAIL_TIMEOUT, THUMBNAIL_SIZE, THUMBNAIL_LIMIT

logger = logging.getLogger(__name__)

JPEG_QUALITY = 60


def resize_to_thumbnail(data: bytes, max_size: int = THUMBNAIL_SIZE) -> str:
    """Encode image bytes as a JPEG data URL no larger than `max_size` on its long side."""
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        # Convert to RGB if needed (e.g. RGBA PNGs, palette images)
        if img.mode not in ('RGB', 'L'):
            img = img.convert('RGB')
        img.thumbnail((max_size, max_size))
        buf = io.BytesIO()
        img.save(buf, 'JPEG', quality=JPEG_QUALITY)
    return 'data:image/jpeg;base64,' + base64.b64encode(buf.getvalue()).decode('ascii')


async def _fetch_and_resize(client: httpx.AsyncClient, url: str, max_size: int) -> str:
    response = await client.get(url)
    response.raise_for_status()
    return resize_to_thumbnail(response.content, max_size)


async def image_to_thumbnail(
    client: httpx.AsyncClient,
    url: str,
    max_size: int = THUMBNAIL_SIZE,
    timeout: float = THUMBNAIL_TIMEOUT,
) -> Optional[str]:
    try:
        return await asyncio.wait_for(_fetch_and_resize(client, url, max_size), timeout)
    except asyncio.TimeoutError:
        logger.warning('Thumbnail timed out after %.1fs: %s', timeout, url)
    except httpx.HTTPError as exc:
        logger.warning('Failed to load image %s: %s', url, exc)
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        # PIL.UnidentifiedImageError is an OSError
        logger.warning('Failed to convert image %s: %s', url, exc)
    return None


async def convert_photos_to_thumbnails(
    photos: Sequence[str],
    client: Optional[httpx.AsyncClient] = None,
    limit: int = THUMBNAIL_LIMIT,
    max_size: int = THUMBNAIL_SIZE,
    timeout: float = THUMBNAIL_TIMEOUT,
) -> List[str]:
    """Thumbnails for the first `limit` photos, skipping any that failed."""
    targets = [p for p in (photos or []) if p][:limit]
    if not targets:
        return []

    async def _convert(c: httpx.AsyncClient) -> List[Optional[str]]:
        return await asyncio.gather(
            *(image_to_thumbnail(c, url, max_size=max_size, timeout=timeout) for url in targets)
        )

    if client is not None:
        results = await _convert(client)
    else:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            results = await _convert(own_client)
    return [t for t in results if t is not None]
