"""Adapter registry and the extraction orchestrator.

The engine picks the adapter for the page's site, checks the page is a
listing (and an EV when running in EV-only mode), extracts the record and
stamps its `isEV` flag. It keeps no state between runs, so running it
again on the same page, e.g. after single-page-app navigation, is safe.
"""
from typing import List, Optional, Dict, Any, Callable, Type
from dataclasses import replace
import logging

from .adapters.all_adapters import ALL_ADAPTERS
from .adapters.base import SiteAdapter
from .catalog import get_vehicle_specs
from .config import MODE_EV, resolve_mode
from .models import Listing, DEFAULT_RANGE, DEFAULT_LENGTH
from .page import Page

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Holds adapter instances in dispatch order."""

    def __init__(self, adapter_classes: Optional[List[Type[SiteAdapter]]] = None):
        classes = ALL_ADAPTERS if adapter_classes is None else adapter_classes
        self._adapters = [cls() for cls in classes]

    def adapters(self) -> List[SiteAdapter]:
        return list(self._adapters)

    def for_hostname(self, hostname: str) -> Optional[SiteAdapter]:
        host = (hostname or '').lower()
        if host.startswith('www.'):
            host = host[4:]
        for adapter in self._adapters:
            if adapter.matches_host(host):
                return adapter
        return None


def enrich_from_catalog(listing: Listing) -> Listing:
    """Fill range, length and heat pump from the catalog when still unknown."""
    specs = get_vehicle_specs(listing.make, listing.model)
    if specs is None:
        return listing
    changes: Dict[str, Any] = {}
    if not listing.range or listing.range == DEFAULT_RANGE:
        changes['range'] = specs.range
    if not listing.length or listing.length == DEFAULT_LENGTH:
        changes['length'] = specs.length
    if listing.heat_pump:
        # adapters never read heat pump from the page
        changes['heat_pump'] = specs.heat_pump
    return replace(listing, **changes) if changes else listing


class ExtractionEngine:
    """Runs detection and extraction on loaded pages.

    `mode_source` returns the active mode ("ev" or "all"); when it is not
    given, or returns nothing usable, the configured default applies.

    Example usage:
        engine = ExtractionEngine()
        listing = engine.run(Page.from_file(path, url))
    """

    def __init__(
        self,
        registry: Optional[AdapterRegistry] = None,
        mode_source: Optional[Callable[[], Optional[str]]] = None,
        enrich: bool = True,
    ):
        self.registry = registry or AdapterRegistry()
        self.mode_source = mode_source
        self.enrich = enrich

    def detect_adapter(self, page: Page) -> Optional[SiteAdapter]:
        return self.registry.for_hostname(page.hostname)

    def current_mode(self) -> str:
        value = None
        if self.mode_source is not None:
            try:
                value = self.mode_source()
            except Exception:
                logger.exception('Mode lookup failed; using configured default')
        return resolve_mode(value)

    def run(self, page: Page, mode: Optional[str] = None) -> Optional[Listing]:
        adapter = self.detect_adapter(page)
        if adapter is None:
            logger.debug('No adapter for host %s', page.hostname)
            return None
        if not adapter.is_listing_page(page):
            logger.debug('%s: not a listing page: %s', adapter.name, page.url)
            return None

        active_mode = resolve_mode(mode) if mode else self.current_mode()
        is_ev = adapter.is_ev_listing(page)
        if active_mode == MODE_EV and not is_ev:
            logger.info('%s: skipping non-EV listing in EV mode: %s', adapter.name, page.url)
            return None

        listing = adapter.extract_data(page)
        if listing is None:
            logger.warning('%s: extraction failed for %s', adapter.name, page.url)
            return None

        listing = replace(listing, is_ev=is_ev)
        if self.enrich:
            listing = enrich_from_catalog(listing)
        logger.info('Detected listing: %s (%s) isEV=%s', listing.title or '?', adapter.name, is_ev)
        return listing

    def page_data(self, page: Page, mode: Optional[str] = None) -> Dict[str, Any]:
        """Summary of what the engine sees on a page."""
        adapter = self.detect_adapter(page)
        listing = self.run(page, mode=mode) if adapter else None
        return {
            'hasParser': adapter is not None,
            'isListingPage': bool(adapter and adapter.is_listing_page(page)),
            'isEV': bool(adapter and adapter.is_ev_listing(page)),
            'data': listing.to_dict() if listing else None,
        }
