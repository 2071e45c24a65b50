"""Site adapters, one per supported marketplace.

Each adapter implements the `SiteAdapter` contract: `is_listing_page`,
`is_ev_listing` and `extract_data` over a loaded `Page`.
"""
from .base import SiteAdapter, TitleParts, parse_title

from .autotrader import AutoTraderAdapter
from .kijiji import KijijiAdapter
from .next_data import NextDataAdapter, ClutchAdapter, CanadaDrivesAdapter
from .cargurus import CarGurusAdapter

from .all_adapters import ALL_ADAPTERS

__all__ = [
    "SiteAdapter",
    "TitleParts",
    "parse_title",
    # marketplaces
    "AutoTraderAdapter",
    "KijijiAdapter",
    "NextDataAdapter",
    "ClutchAdapter",
    "CarGurusAdapter",
    "CanadaDrivesAdapter",
    # registry
    "ALL_ADAPTERS",
]
