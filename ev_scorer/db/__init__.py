from .base import ListingStore
from .memory_store import MemoryListingStore

__all__ = ['ListingStore', 'MemoryListingStore']
