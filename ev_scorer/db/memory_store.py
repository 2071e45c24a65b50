"""In-process listing store, used by tests and one-off CLI runs."""
from typing import Any, Dict, List, Optional
import copy

from ..models import Listing
from .base import ListingStore


class MemoryListingStore(ListingStore):

    def __init__(self, cars: Optional[List[Listing]] = None):
        self._cars: List[Listing] = [copy.deepcopy(c) for c in (cars or [])]
        self._meta: Dict[str, Dict[str, Any]] = {}

    def get_cars(self) -> List[Listing]:
        return [copy.deepcopy(c) for c in self._cars]

    def get_car(self, car_id: Any) -> Optional[Listing]:
        for car in self._cars:
            if car.id == car_id:
                return copy.deepcopy(car)
        return None

    def find_by_url(self, url: str) -> Optional[Listing]:
        for car in self._cars:
            if car.url == url:
                return copy.deepcopy(car)
        return None

    def _insert(self, listing: Listing) -> None:
        self._cars.append(copy.deepcopy(listing))

    def _replace(self, listing: Listing) -> None:
        for i, car in enumerate(self._cars):
            if car.id == listing.id:
                self._cars[i] = copy.deepcopy(listing)
                return

    def _delete(self, car_id: Any) -> bool:
        before = len(self._cars)
        self._cars = [c for c in self._cars if c.id != car_id]
        return len(self._cars) != before

    def _replace_all(self, cars: List[Listing], weights: Dict[str, float]) -> None:
        self._cars = [copy.deepcopy(c) for c in cars]
        self._meta['weights'] = dict(weights)

    def _read_meta(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._meta.get(key)
        return dict(value) if value is not None else None

    def _write_meta(self, key: str, value: Dict[str, Any]) -> None:
        self._meta[key] = dict(value)

    def _clear(self) -> None:
        self._cars = []
        self._meta = {}
