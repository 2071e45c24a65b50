"""Load a listing page, extract it and save it to the collection.

Page loading is synchronous Selenium work, so it runs in a worker thread;
thumbnail conversion is async httpx I/O. `capture()` ties the steps
together the way a user clicking "add" on a listing page would:

    page = await load_page(url)
    result = await capture(page, ExtractionEngine(), service)
"""
from typing import Any, Dict, NamedTuple, Optional
from dataclasses import replace
import asyncio
import logging

import httpx

from .config import SETTLE_DELAY
from .engine import ExtractionEngine
from .models import Listing
from .page import Page
from .service import MessageService
from .thumbnails import convert_photos_to_thumbnails
from .utils.renderer import render_url

logger = logging.getLogger(__name__)

STATUS_SAVED = 'saved'
STATUS_ALREADY_SAVED = 'already_saved'
STATUS_NO_LISTING = 'no_listing'
STATUS_FAILED = 'failed'


class CaptureResult(NamedTuple):
    status: str
    listing: Optional[Listing] = None
    response: Optional[Dict[str, Any]] = None


async def load_page(url: str, settle: float = SETTLE_DELAY, headless: bool = True, timeout: int = 30) -> Page:
    """Render `url` in a browser and wait `settle` seconds for dynamic content."""
    html = await asyncio.to_thread(render_url, url, wait=settle, headless=headless, timeout=timeout)
    return Page(url, html)


async def capture(
    page: Page,
    engine: ExtractionEngine,
    service: MessageService,
    client: Optional[httpx.AsyncClient] = None,
) -> CaptureResult:
    """Extract the listing on `page` and save it with thumbnail photos.

    Pages that are not listings, or are filtered out by EV mode, give
    `no_listing`; a URL already in the collection gives `already_saved`
    without touching the network.
    """
    listing = engine.run(page)
    if listing is None:
        return CaptureResult(STATUS_NO_LISTING)

    checked = service.handle({'type': 'CHECK_URL', 'url': listing.url})
    if checked.get('saved'):
        logger.info('Already saved: %s', listing.url)
        return CaptureResult(STATUS_ALREADY_SAVED, listing)

    originals = list(listing.photos)
    thumbnails = await convert_photos_to_thumbnails(originals, client=client)
    to_save = replace(listing, photos=thumbnails, original_photo_urls=originals)

    response = service.handle({'type': 'SAVE_CAR', 'car': to_save.to_dict()})
    if not response.get('success'):
        logger.warning('Save failed for %s: %s', listing.url, response.get('error'))
        return CaptureResult(STATUS_FAILED, to_save, response)
    return CaptureResult(STATUS_SAVED, Listing.from_dict(response['car']), response)
