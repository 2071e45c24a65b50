"""CarGurus.ca adapter.

Besides JSON-LD, CarGurus inlines its listing state as a script variable
(`listingData = {...}` or `vehicleData: {...}`), tried second. Listings
carry CarGurus' deal rating.
"""
from typing import Any, Dict, Optional
import re

from ..models import Listing
from ..page import Page
from ..utils.schema_normalizer import parse_int, parse_leading_int, parse_year, clean_text
from .base import SiteAdapter, TitleParts, parse_title
from .utils import extract_script_assignment, clean_photos, collect_photos, photo_list

_CONDITION_RE = re.compile(r'used|new|certified', re.I)
_ADDRESS_PREFIX_RE = re.compile(r'^Address:?\s*', re.I)


class CarGurusAdapter(SiteAdapter):
    name = 'CarGurus'
    hostname = 'cargurus.ca'
    listing_path = re.compile(r'/(Cars/inventorylisting|inventory)/|/vdp/\d+')

    fuel_selectors = ('[data-cg-ft="fuel_type"]',)
    title_selectors = ('h1[class*="listing"]', 'h1')

    SCRIPT_VARIABLES = ('listingData', 'vehicleData')
    PRICE_SELECTORS = ('[class*="price"], [data-cg-ft="price"]',)
    ODOMETER_SELECTORS = ('[data-cg-ft="mileage"], [class*="mileage"]',)
    DEALER_SELECTORS = ('[class*="dealer-name"], [data-cg-ft="dealer"]',)
    LOCATION_SELECTORS = (
        '[class*="dealer-location"]',
        '[class*="dealerLocation"]',
        '[class*="dealer-address"]',
        '[class*="address"]',
        '[data-cg-ft="dealer-address"]',
        '[itemprop="address"]',
    )
    PHOTO_SELECTORS = ('[class*="gallery"] img, [class*="media"] img',)

    def parse_title(self, title: str) -> TitleParts:
        # "Used 2022 Kia EV6 Wind" -> "2022 Kia EV6 Wind"
        return parse_title(_CONDITION_RE.sub('', title or '').strip())

    def try_structured(self, page: Page) -> Optional[Listing]:
        listing = super().try_structured(page)
        if listing is not None:
            return listing
        data = extract_script_assignment(page.soup, self.SCRIPT_VARIABLES)
        if data is None:
            return None
        return self.listing_from_script(page, data)

    def listing_from_script(self, page: Page, data: Dict[str, Any]) -> Listing:
        return Listing(
            year=parse_year(data.get('year')) or 0,
            make=clean_text(data.get('make')),
            model=clean_text(data.get('model')),
            trim=clean_text(data.get('trim')),
            price=parse_leading_int(data.get('price') or data.get('listPrice')),
            odometer=parse_leading_int(data.get('mileage') or data.get('odometer')),
            dealer=clean_text(data.get('dealerName')),
            location=clean_text(data.get('dealerCity') or data.get('dealerLocation')),
            photos=clean_photos(photo_list(data.get('images')), page.url),
            deal_rating=clean_text(data.get('dealRating')),
            url=page.url,
            source=self.source,
        )

    def try_dom_heuristics(self, page: Page) -> Optional[Listing]:
        parts = self.parse_title(self.page_title(page))
        location = _ADDRESS_PREFIX_RE.sub('', page.first_text(self.LOCATION_SELECTORS))

        return Listing(
            year=parts.year,
            make=parts.make,
            model=parts.model,
            trim=parts.trim,
            price=self.price_from(page, self.PRICE_SELECTORS),
            odometer=parse_int(page.text(page.select_first(self.ODOMETER_SELECTORS))),
            dealer=page.text(page.select_first(self.DEALER_SELECTORS)),
            location=location,
            photos=collect_photos(page.soup, self.PHOTO_SELECTORS, page.url, attrs=('src', 'data-src')),
            deal_rating=page.text(page.soup.select_one('[class*="deal-rating"]')),
            url=page.url,
            source=self.source,
        )
