"""AutoTrader.ca adapter.

Listing URLs look like /a/<make>/<model>/<city>/<province>/<id>_<id>.
Pages carry a schema.org Car node; older layouts only have the DOM.
"""
from typing import Optional
import re

from ..models import Listing
from ..page import Page
from ..utils.schema_normalizer import parse_int, parse_vin
from .base import SiteAdapter
from .utils import collect_photos

_LOCATION_PATH_RE = re.compile(r'/a/[^/]+/[^/]+/([^/]+)/([^/]+)/')
_VIN_RE = re.compile(r'VIN', re.I)


class AutoTraderAdapter(SiteAdapter):
    name = 'AutoTrader'
    hostname = 'autotrader.ca'
    listing_path = re.compile(r'/a/[^/]+/[^/]+/[^/]+/[^/]+/[\d_]+')

    fuel_selectors = ('[data-testid="fuelType"]', '.fuel-type')
    title_selectors = ('h1', '[data-testid="listing-title"]')

    PRICE_SELECTORS = ('[data-testid="price"]', '.price-amount', '[class*="price"]')
    ODOMETER_SELECTORS = ('[data-testid="mileage"]', '[class*="mileage"]', '[class*="odometer"]')
    DEALER_SELECTORS = ('[data-testid="dealer-name"]', '.dealer-name', '[class*="dealer"]')
    LOCATION_SELECTORS = (
        '[data-testid="location"]',
        '[data-testid="dealer-location"]',
        '[class*="dealer-address"]',
        '[class*="dealerAddress"]',
        '[class*="location"]',
        'address',
        '[itemprop="address"]',
    )
    PHOTO_SELECTORS = (
        '[data-testid="gallery"] img',
        '.gallery-image img',
        '[class*="gallery"] img',
        '[class*="mediaviewer"] img',
        '[class*="photo"] img',
        'picture source',
        'picture img',
    )

    def _location_from_path(self, page: Page) -> str:
        m = _LOCATION_PATH_RE.search(page.path)
        if not m:
            return ''
        city = m.group(1).replace('-', ' ').title()
        province = m.group(2).upper()
        return f'{city}, {province}'

    def _vin(self, page: Page) -> str:
        el = page.soup.select_one('[data-testid="vin"]')
        if el is not None:
            return parse_vin(page.text(el))
        # a short element mentioning "VIN", e.g. <li>VIN: 1G1FY6S00P4123456</li>
        for node in page.soup.find_all(string=_VIN_RE):
            parent = node.parent
            txt = page.text(parent)
            if parent is not None and len(txt) < 50:
                vin = parse_vin(txt)
                if vin:
                    return vin
        return ''

    def try_dom_heuristics(self, page: Page) -> Optional[Listing]:
        parts = self.parse_title(self.page_title(page))
        odo_el = page.select_first(self.ODOMETER_SELECTORS)

        return Listing(
            year=parts.year,
            make=parts.make,
            model=parts.model,
            trim=parts.trim,
            price=self.price_from(page, self.PRICE_SELECTORS),
            odometer=parse_int(page.text(odo_el)),
            dealer=page.text(page.select_first(self.DEALER_SELECTORS)),
            location=page.first_text(self.LOCATION_SELECTORS) or self._location_from_path(page),
            photos=collect_photos(page.soup, self.PHOTO_SELECTORS, page.url),
            vin=self._vin(page),
            url=page.url,
            source=self.source,
        )
