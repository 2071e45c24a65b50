"""Collection store contract shared by the in-memory and MongoDB stores.

The store owns everything that happens to a listing after extraction:
identity, the added-at stamp, price history, the star flag and the
scoring defaults. `url` is unique within a collection.
"""
from typing import Any, Dict, List, Mapping, Optional
from datetime import datetime, timezone
import logging
import time

from ..config import default_settings, default_weights
from ..errors import DuplicateListingError, ListingNotFoundError
from ..exchange import build_export, parse_import
from ..models import Listing

logger = logging.getLogger(__name__)


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ListingStore:
    """Base class; subclasses provide the storage primitives."""

    # -- primitives -------------------------------------------------------

    def get_cars(self) -> List[Listing]:
        raise NotImplementedError()

    def get_car(self, car_id: Any) -> Optional[Listing]:
        raise NotImplementedError()

    def find_by_url(self, url: str) -> Optional[Listing]:
        raise NotImplementedError()

    def _insert(self, listing: Listing) -> None:
        raise NotImplementedError()

    def _replace(self, listing: Listing) -> None:
        raise NotImplementedError()

    def _delete(self, car_id: Any) -> bool:
        raise NotImplementedError()

    def _replace_all(self, cars: List[Listing], weights: Dict[str, float]) -> None:
        raise NotImplementedError()

    def _read_meta(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError()

    def _write_meta(self, key: str, value: Dict[str, Any]) -> None:
        raise NotImplementedError()

    def _clear(self) -> None:
        raise NotImplementedError()

    # -- listings ---------------------------------------------------------

    def is_url_saved(self, url: str) -> bool:
        return bool(url) and self.find_by_url(url) is not None

    def _new_id(self) -> int:
        new_id = int(time.time() * 1000)
        while self.get_car(new_id) is not None:
            new_id += 1
        return new_id

    def put(self, listing: Listing) -> Listing:
        """Save a new listing and return it with its store-assigned identity."""
        if listing.url and self.is_url_saved(listing.url):
            raise DuplicateListingError(listing.url)

        car = listing.with_defaults()
        car.id = listing.id if listing.id is not None and self.get_car(listing.id) is None else self._new_id()
        car.added_at = _now_iso()
        car.price_history = list(listing.price_history) or [{'price': listing.price, 'date': _today()}]
        car.starred = bool(listing.starred)
        self._insert(car)
        logger.info('Saved listing %s: %s', car.id, car.url)
        return car

    def update(self, car_id: Any, fields: Mapping[str, Any]) -> Listing:
        """Apply partial document fields; a price change is recorded in the history."""
        old = self.get_car(car_id)
        if old is None:
            raise ListingNotFoundError(f'Car not found: {car_id}')

        doc = old.to_dict()
        changes = dict(fields)
        changes.pop('id', None)

        new_url = changes.get('url')
        if new_url and new_url != old.url:
            other = self.find_by_url(new_url)
            if other is not None and other.id != old.id:
                raise DuplicateListingError(new_url)

        new_price = changes.get('price')
        if new_price and new_price != old.price:
            history = [dict(h) for h in (old.price_history or [])]
            today = _today()
            entry = next((h for h in history if h.get('date') == today), None)
            if entry is not None:
                entry['price'] = new_price
            else:
                history.append({'price': new_price, 'date': today})
            changes['priceHistory'] = history

        doc.update(changes)
        updated = Listing.from_dict(doc)
        updated.id = old.id
        self._replace(updated)
        return updated

    def remove(self, car_id: Any) -> bool:
        removed = self._delete(car_id)
        if removed:
            logger.info('Removed listing %s', car_id)
        return removed

    def toggle_star(self, car_id: Any) -> Listing:
        car = self.get_car(car_id)
        if car is None:
            raise ListingNotFoundError(f'Car not found: {car_id}')
        return self.update(car_id, {'starred': not car.starred})

    # -- weights & settings ----------------------------------------------

    def get_weights(self) -> Dict[str, float]:
        weights = self._read_meta('weights')
        return dict(weights) if weights else default_weights()

    def save_weights(self, weights: Mapping[str, float]) -> Dict[str, float]:
        value = dict(weights)
        self._write_meta('weights', value)
        return value

    def get_settings(self) -> Dict[str, Any]:
        settings = default_settings()
        settings.update(self._read_meta('settings') or {})
        return settings

    def save_settings(self, settings: Mapping[str, Any]) -> Dict[str, Any]:
        updated = self.get_settings()
        updated.update(settings)
        self._write_meta('settings', updated)
        return updated

    def get_mode(self) -> Optional[str]:
        return self.get_settings().get('mode')

    # -- backup -----------------------------------------------------------

    def export_data(self) -> Dict[str, Any]:
        return build_export(self.get_cars(), self.get_weights())

    def import_data(self, doc: Any) -> int:
        """Replace cars and weights with an export document's contents.

        The document is validated first; an invalid one leaves the store
        untouched.
        """
        cars, weights = parse_import(doc)
        seen = set()
        unique: List[Listing] = []
        for car in cars:
            if car.url and car.url in seen:
                logger.warning('Dropping duplicate url on import: %s', car.url)
                continue
            seen.add(car.url)
            unique.append(car)

        used_ids = {car.id for car in unique if car.id is not None}
        next_id = int(time.time() * 1000)
        for car in unique:
            if car.id is None:
                while next_id in used_ids:
                    next_id += 1
                car.id = next_id
                used_ids.add(next_id)
        self._replace_all(unique, weights)
        logger.info('Imported %d listings', len(unique))
        return len(unique)

    def clear_all(self) -> None:
        self._clear()
