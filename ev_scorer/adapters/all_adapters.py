"""Aggregator for the supported marketplace adapters.

The engine picks the first adapter whose hostname is contained in the
page's hostname, so this list is the dispatch order.
"""
from .autotrader import AutoTraderAdapter
from .kijiji import KijijiAdapter
from .next_data import ClutchAdapter, CanadaDrivesAdapter
from .cargurus import CarGurusAdapter


ALL_ADAPTERS = [
    AutoTraderAdapter,
    KijijiAdapter,
    ClutchAdapter,
    CarGurusAdapter,
    CanadaDrivesAdapter,
]

__all__ = ["ALL_ADAPTERS"]
