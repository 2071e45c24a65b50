"""Adapters for Next.js storefronts that ship their vehicle in `__NEXT_DATA__`.

Clutch and Canada Drives sell their own inventory online, so the dealer
is always the retailer and the location defaults to "Online". Both keep
specs in label/value blocks and print the odometer as "<n> km".
"""
from typing import Any, Dict, Optional, Sequence
import re

from ..models import Listing
from ..page import Page
from ..utils.schema_normalizer import parse_int, parse_leading_int, parse_vin, parse_year, clean_text
from .base import SiteAdapter
from .utils import extract_next_data, dig, clean_photos, collect_photos, photo_list

_ODOMETER_KM_RE = re.compile(r'(\d{1,3},?\d{3})\s*km', re.I)
_WS_RE = re.compile(r'\s+')


class NextDataAdapter(SiteAdapter):
    """Shared structured-data stage for Next.js pages."""

    # keys under props.pageProps that may hold the vehicle
    page_props_keys: Sequence[str] = ('vehicle',)
    price_keys: Sequence[str] = ('price',)
    odometer_keys: Sequence[str] = ('odometer', 'mileage')

    default_location = 'Online'

    PRICE_SELECTORS = ('[class*="price"], [data-testid="price"]',)
    SPEC_SELECTORS = '[class*="spec"], [class*="detail"]'
    PHOTO_SELECTORS: Sequence[str] = ('[class*="gallery"] img, [class*="image"] img',)

    @property
    def default_dealer(self) -> str:
        return self.name

    def next_vehicle(self, page: Page) -> Optional[Dict[str, Any]]:
        data = extract_next_data(page.soup)
        if data is None:
            return None
        for key in self.page_props_keys:
            vehicle = dig(data, ('props', 'pageProps', key))
            if isinstance(vehicle, dict) and vehicle:
                return vehicle
        return None

    @staticmethod
    def _first(vehicle: Dict[str, Any], keys: Sequence[str]) -> Any:
        for key in keys:
            if vehicle.get(key):
                return vehicle[key]
        return None

    def vehicle_location(self, vehicle: Dict[str, Any]) -> str:
        loc = vehicle.get('location')
        if isinstance(loc, dict):
            loc = loc.get('city')
        return clean_text(loc) or self.default_location

    def try_structured(self, page: Page) -> Optional[Listing]:
        vehicle = self.next_vehicle(page)
        if vehicle is None:
            return None
        return Listing(
            year=parse_year(vehicle.get('year')) or 0,
            make=clean_text(vehicle.get('make')),
            model=clean_text(vehicle.get('model')),
            trim=clean_text(vehicle.get('trim')),
            price=parse_leading_int(self._first(vehicle, self.price_keys)),
            odometer=parse_leading_int(self._first(vehicle, self.odometer_keys)),
            color=clean_text(vehicle.get('exteriorColour') or vehicle.get('color')),
            dealer=self.default_dealer,
            location=self.vehicle_location(vehicle),
            photos=clean_photos(photo_list(vehicle.get('images') or vehicle.get('photos')), page.url),
            vin=parse_vin(vehicle.get('vin')),
            url=page.url,
            source=self.source,
        )

    def odometer_from_body(self, page: Page) -> Optional[int]:
        m = _ODOMETER_KM_RE.search(page.body_text)
        return parse_int(m.group(1)) if m else None

    def extract_specs(self, page: Page) -> Dict[str, Any]:
        """`label: value` text inside spec/detail blocks."""
        specs: Dict[str, Any] = {}
        for item in page.soup.select(self.SPEC_SELECTORS):
            parts = page.text(item).split(':')
            if len(parts) == 2:
                key = _WS_RE.sub('', parts[0].strip().lower())
                specs[key] = parts[1].strip()
        odo = self.odometer_from_body(page)
        if odo is not None:
            specs['odometer'] = odo
        return specs

    def spec_location(self, page: Page, specs: Dict[str, Any]) -> str:
        return self.default_location

    def try_dom_heuristics(self, page: Page) -> Optional[Listing]:
        parts = self.parse_title(self.page_title(page))
        specs = self.extract_specs(page)

        return Listing(
            year=parts.year,
            make=parts.make,
            model=parts.model,
            trim=parts.trim,
            price=self.price_from(page, self.PRICE_SELECTORS),
            odometer=parse_int(specs.get('odometer') or specs.get('kilometres')),
            color=clean_text(specs.get('colour') or specs.get('color')),
            dealer=self.default_dealer,
            location=self.spec_location(page, specs),
            photos=collect_photos(page.soup, self.PHOTO_SELECTORS, page.url, attrs=('src', 'data-src')),
            url=page.url,
            source=self.source,
        )


class ClutchAdapter(NextDataAdapter):
    name = 'Clutch'
    hostname = 'clutch.ca'
    # /vehicles/76427 or /vehicles/2023-chevrolet-bolt-ev-123456
    listing_path = re.compile(r'/vehicles/[\w-]*\d+')

    fuel_selectors = ('[class*="fuel"], [class*="electric"]',)
    page_props_keys = ('vehicle', 'car')
    price_keys = ('price', 'allInPrice')

    SPEC_SELECTORS = '[class*="spec"], [class*="detail"], [class*="attribute"]'
    PHOTO_SELECTORS = (
        '[class*="gallery"] img',
        '[class*="carousel"] img',
        '[class*="Gallery"] img',
        '[class*="slider"] img',
        'picture img',
    )
    LOCATION_SELECTORS = (
        '[class*="location"]',
        '[class*="delivery"]',
        '[class*="available-in"]',
        '[class*="city"]',
    )

    def extract_specs(self, page: Page) -> Dict[str, Any]:
        """Label/value child pairs inside spec blocks."""
        specs: Dict[str, Any] = {}
        for item in page.soup.select(self.SPEC_SELECTORS):
            label = item.select_one('[class*="label"], dt, span:first-child')
            value = item.select_one('[class*="value"], dd, span:last-child')
            key = page.text(label).lower()
            val = page.text(value)
            if key and val:
                specs[_WS_RE.sub('', key)] = val
        odo = self.odometer_from_body(page)
        if odo is not None:
            specs['odometer'] = odo

        # delivery banners are not a location
        for sel in self.LOCATION_SELECTORS:
            el = page.soup.select_one(sel)
            txt = page.text(el)
            if txt and 'Delivery' not in txt:
                specs['location'] = txt
                break
        return specs

    def spec_location(self, page: Page, specs: Dict[str, Any]) -> str:
        return specs.get('location') or self.default_location


class CanadaDrivesAdapter(NextDataAdapter):
    name = 'Canada Drives'
    hostname = 'canadadrives.ca'
    listing_path = re.compile(r'/(used-cars|vehicles)/[\w-]+-\d+')

    fuel_selectors = ('[class*="fuel"]',)
    page_props_keys = ('vehicle', 'listing')
    price_keys = ('price', 'salePrice')
    odometer_keys = ('odometer', 'kilometres')
