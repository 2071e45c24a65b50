"""Kijiji.ca / Kijiji Autos adapter.

Private sellers are common here, so dealer defaults to "Private Seller".
Image URLs point at resized variants (`$_NN.JPG`); the large `$_57`
variant is kept instead.
"""
from typing import Dict, Optional
import re

from ..models import Listing
from ..page import Page
from ..utils.schema_normalizer import parse_int
from .base import SiteAdapter
from .utils import collect_photos

_SIZE_VARIANT_RE = re.compile(r'\$_\d+\.JPG', re.I)
_CATEGORY_RE = re.compile(r'/(v-)?((cars|autos)-?(trucks|camions)?|vehicles?)/')
_AD_ID_RE = re.compile(r'/\d{8,}')


def _large_variant(src: str) -> str:
    return _SIZE_VARIANT_RE.sub('$_57.JPG', src)


class KijijiAdapter(SiteAdapter):
    name = 'Kijiji'
    hostname = 'kijiji.ca'

    fuel_selectors = ('[class*="fuel"], [data-testid*="fuel"]',)
    ev_text_selectors = ('h1', '[class*="description"]')
    jsonld_types = ('car', 'vehicle', 'product')

    default_dealer = 'Private Seller'

    PRICE_SELECTORS = ('[class*="price"], [data-testid="price"]', '[itemprop="price"]')
    SELLER_SELECTORS = ('[class*="seller-name"], [class*="dealerName"]', '[data-testid="seller-info"]')
    LOCATION_SELECTORS = ('[class*="location"], [data-testid="location"]', 'address')
    PHOTO_SELECTORS = ('[class*="gallery"] img, [class*="image"] img',)
    PHOTO_EXCLUDE = ('placeholder', 'avatar', 'data:image')

    def is_listing_page(self, page: Page) -> bool:
        # Kijiji Autos: /cars-trucks/..., regular Kijiji: /v-cars-trucks/.../1234567890
        return bool(_CATEGORY_RE.search(page.path)) and bool(_AD_ID_RE.search(page.path))

    def extract_attributes(self, page: Page) -> Dict[str, str]:
        """Spec attributes keyed by lowercased label with whitespace removed."""
        attrs: Dict[str, str] = {}
        for item in page.soup.select('[class*="attributeList"] li, [class*="specs"] li'):
            text = page.text(item)
            if ':' not in text:
                continue
            key, value = (s.strip() for s in text.split(':', 1))
            if key and value:
                attrs[re.sub(r'\s+', '', key.lower())] = value

        for dt in page.soup.find_all('dt'):
            dd = dt.find_next_sibling()
            if dd is None or dd.name != 'dd':
                continue
            key = re.sub(r'\s+', '', page.text(dt).lower())
            value = page.text(dd)
            if key and value:
                attrs[key] = value
        return attrs

    def try_dom_heuristics(self, page: Page) -> Optional[Listing]:
        parts = self.parse_title(self.page_title(page))
        attrs = self.extract_attributes(page)
        odo = attrs.get('kilometres') or attrs.get('mileage') or attrs.get('odometer')

        return Listing(
            year=parts.year,
            make=parts.make,
            model=parts.model,
            trim=parts.trim,
            price=self.price_from(page, self.PRICE_SELECTORS),
            odometer=parse_int(odo),
            dealer=page.text(page.select_first(self.SELLER_SELECTORS)) or self.default_dealer,
            location=page.text(page.select_first(self.LOCATION_SELECTORS)),
            color=attrs.get('colour') or attrs.get('color') or '',
            photos=collect_photos(
                page.soup, self.PHOTO_SELECTORS, page.url,
                attrs=('src', 'data-src', 'data-lazy'),
                exclude=self.PHOTO_EXCLUDE,
                rewrite=_large_variant,
            ),
            url=page.url,
            source=self.source,
        )
