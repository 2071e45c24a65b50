"""Capability contract every site adapter implements.

An adapter knows one marketplace: which paths are listing pages, how the
site flags an electric vehicle, and where it keeps listing data. Data is
read in two stages. `try_structured` reads whatever machine-readable block
the site embeds; `try_dom_heuristics` walks ordered selector lists when
that block is missing. `extract_data` composes the two and never raises.
"""
from typing import Dict, Any, Optional, Sequence, NamedTuple, Pattern
import logging
import re

from ..catalog import find_vehicle_match, is_likely_ev
from ..models import Listing
from ..page import Page
from ..utils.schema_normalizer import parse_int, parse_leading_int, parse_year, parse_vin, clean_text
from .utils import find_jsonld_node, jsonld_text, jsonld_value, first_offer, clean_photos, photo_list

logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r'^(\d{4})\s+([\w-]+)\s+(.+)', re.S)


class TitleParts(NamedTuple):
    year: int
    make: str
    model: str
    trim: str


EMPTY_TITLE = TitleParts(0, '', '', '')


def parse_title(title: str) -> TitleParts:
    """Split "2023 Chevrolet Bolt EUV LT" into year, make, model and trim.

    The catalog anchors the model when it knows the make; otherwise the
    first two words after the make are taken as the model. Titles without
    a leading year give empty parts rather than an error.
    """
    m = _TITLE_RE.match(clean_text(title))
    if not m:
        return EMPTY_TITLE

    year = int(m.group(1))
    make = m.group(2)
    rest = m.group(3).strip()

    match = find_vehicle_match(make, rest)
    if match and match.model:
        idx = rest.lower().find(match.model.lower())
        trim = rest[idx + len(match.model):].strip() if idx >= 0 else ''
        return TitleParts(year, match.make, match.model, trim)

    words = rest.split(' ')
    return TitleParts(year, make, ' '.join(words[:2]), ' '.join(words[2:]))


class SiteAdapter:
    """Base adapter; subclasses fill in the class attributes and DOM fallback."""

    name: str = ''
    hostname: str = ''
    listing_path: Optional[Pattern] = None

    fuel_selectors: Sequence[str] = ()
    ev_text_selectors: Sequence[str] = ('h1',)
    title_selectors: Sequence[str] = ('h1',)
    jsonld_types: Sequence[str] = ('car', 'vehicle')

    default_dealer: str = ''
    default_location: str = ''

    @property
    def source(self) -> str:
        return self.hostname

    def matches_host(self, hostname: str) -> bool:
        return bool(self.hostname) and self.hostname in (hostname or '').lower()

    def is_listing_page(self, page: Page) -> bool:
        if self.listing_path is None:
            return False
        return bool(self.listing_path.search(page.path))

    def fuel_type(self, page: Page) -> str:
        return page.text(page.select_first(self.fuel_selectors)).lower()

    def is_ev_listing(self, page: Page) -> bool:
        """Site fuel-type element first; keyword heuristic over the title otherwise."""
        try:
            if 'electric' in self.fuel_type(page):
                return True
            text = ' '.join(page.first_text([sel]) for sel in self.ev_text_selectors)
            return is_likely_ev(text)
        except Exception:
            logger.exception('%s EV check failed for %s', self.name, page.url)
            return False

    def extract_data(self, page: Page) -> Optional[Listing]:
        try:
            listing = self.try_structured(page)
            if listing is not None:
                return listing
            return self.try_dom_heuristics(page)
        except Exception:
            logger.exception('%s parser error for %s', self.name, page.url)
            return None

    def try_structured(self, page: Page) -> Optional[Listing]:
        node = find_jsonld_node(page.soup, self.jsonld_types)
        if node is None:
            return None
        return self.listing_from_jsonld(page, node)

    def try_dom_heuristics(self, page: Page) -> Optional[Listing]:
        raise NotImplementedError()

    def parse_title(self, title: str) -> TitleParts:
        return parse_title(title)

    def page_title(self, page: Page) -> str:
        return page.first_text(self.title_selectors)

    def price_from(self, page: Page, selectors: Sequence[str]) -> int:
        el = page.select_first(selectors)
        if el is None:
            return 0
        return parse_int(page.text(el) or el.get('content'))

    def listing_from_jsonld(self, page: Page, node: Dict[str, Any]) -> Listing:
        """Map a schema.org Car/Vehicle node onto a listing.

        The `name` is split by the title parser; explicit brand, model and
        model-date fields fill whatever the title could not provide.
        """
        parts = self.parse_title(jsonld_text(node.get('name')))
        offers = first_offer(node)
        seller = node.get('seller') if isinstance(node.get('seller'), dict) else {}
        address = seller.get('address') if isinstance(seller.get('address'), dict) else {}

        year = parts.year or parse_year(node.get('vehicleModelDate') or node.get('modelDate')) or 0
        make = parts.make or jsonld_text(node.get('brand') or node.get('manufacturer'))
        model = parts.model or jsonld_text(node.get('model'))

        return Listing(
            year=year,
            make=make,
            model=model,
            trim=parts.trim,
            price=parse_leading_int(offers.get('price') or node.get('price')),
            odometer=parse_leading_int(jsonld_value(node.get('mileageFromOdometer'))),
            dealer=jsonld_text(seller.get('name')) or self.default_dealer,
            location=jsonld_text(address.get('addressLocality')) or self.default_location,
            photos=clean_photos(photo_list(node.get('image')), page.url),
            vin=parse_vin(node.get('vehicleIdentificationNumber')),
            color=jsonld_text(node.get('color')),
            url=page.url,
            source=self.source,
        )

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.hostname}>'
