"""Typed-message front end to the listing store.

Every collection operation goes through `MessageService.handle()`, which
takes a dict with a `type` key and returns a plain dict result. Store
errors come back as `{"success": False, "error": ...}`; the service
itself never raises for bad input.

Example usage:
    service = MessageService(MemoryListingStore())
    service.handle({'type': 'SAVE_CAR', 'car': listing.to_dict()})
    service.handle({'type': 'GET_SCORES'})
"""
from typing import Any, Callable, Dict, List, Mapping, Optional
import logging

from .db.base import ListingStore
from .errors import EVScorerError
from .models import Listing
from .scoring import rank

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]

UNKNOWN_TYPE = {'error': 'Unknown message type'}


class MessageService:
    """Dispatches collection messages to a `ListingStore`.

    Listeners registered with `subscribe()` receive change events
    (`CAR_ADDED`, `CAR_UPDATED`, `CAR_DELETED`, `WEIGHTS_UPDATED`,
    `SETTINGS_UPDATED`, `DATA_IMPORTED`) after the store has been written.
    """

    def __init__(self, store: ListingStore):
        self.store = store
        self._listeners: List[Listener] = []
        self._handlers: Dict[str, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
            'SAVE_CAR': self._save_car,
            'UPDATE_CAR': self._update_car,
            'DELETE_CAR': self._delete_car,
            'GET_CARS': self._get_cars,
            'CHECK_URL': self._check_url,
            'GET_WEIGHTS': self._get_weights,
            'SAVE_WEIGHTS': self._save_weights,
            'EXPORT_DATA': self._export_data,
            'IMPORT_DATA': self._import_data,
            'GET_SETTINGS': self._get_settings,
            'SAVE_SETTINGS': self._save_settings,
            'GET_SCORES': self._get_scores,
        }

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self, event: Dict[str, Any]) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception('Listener failed for %s', event.get('type'))

    def handle(self, message: Any) -> Dict[str, Any]:
        if not isinstance(message, Mapping):
            return dict(UNKNOWN_TYPE)
        handler = self._handlers.get(message.get('type'))
        if handler is None:
            logger.debug('Unknown message type: %r', message.get('type'))
            return dict(UNKNOWN_TYPE)
        try:
            return handler(message)
        except (EVScorerError, TypeError, ValueError) as e:
            logger.warning('%s failed: %s', message.get('type'), e)
            return {'success': False, 'error': str(e)}

    # -- listings ---------------------------------------------------------

    def _save_car(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        car = message.get('car')
        if isinstance(car, Listing):
            listing = car
        elif isinstance(car, Mapping):
            listing = Listing.from_dict(dict(car))
        else:
            return {'success': False, 'error': 'Invalid car data'}
        saved = self.store.put(listing)
        self._notify({'type': 'CAR_ADDED', 'car': saved.to_dict()})
        return {'success': True, 'car': saved.to_dict()}

    def _update_car(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        updates = message.get('updates') or {}
        if not isinstance(updates, Mapping):
            return {'success': False, 'error': 'Invalid updates'}
        car = self.store.update(message.get('carId'), updates)
        self._notify({'type': 'CAR_UPDATED', 'car': car.to_dict()})
        return {'success': True, 'car': car.to_dict()}

    def _delete_car(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        car_id = message.get('carId')
        removed = self.store.remove(car_id)
        if removed:
            self._notify({'type': 'CAR_DELETED', 'carId': car_id})
        return {'success': True, 'removed': removed}

    def _get_cars(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        return {'cars': [car.to_dict() for car in self.store.get_cars()]}

    def _check_url(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        return {'saved': self.store.is_url_saved(message.get('url') or '')}

    # -- weights, settings ------------------------------------------------

    def _get_weights(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        return {'weights': self.store.get_weights()}

    def _save_weights(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        weights = message.get('weights')
        if not isinstance(weights, Mapping):
            return {'success': False, 'error': 'Invalid weights'}
        saved = self.store.save_weights(weights)
        self._notify({'type': 'WEIGHTS_UPDATED', 'weights': saved})
        return {'success': True}

    def _get_settings(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        return {'settings': self.store.get_settings()}

    def _save_settings(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        settings = message.get('settings')
        if not isinstance(settings, Mapping):
            return {'success': False, 'error': 'Invalid settings'}
        updated = self.store.save_settings(settings)
        self._notify({'type': 'SETTINGS_UPDATED', 'settings': updated})
        return {'success': True, 'settings': updated}

    # -- backup, scores ---------------------------------------------------

    def _export_data(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        return self.store.export_data()

    def _import_data(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        count = self.store.import_data(message.get('data'))
        self._notify({'type': 'DATA_IMPORTED'})
        return {'success': True, 'count': count}

    def _get_scores(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        weights = message.get('weights')
        if not isinstance(weights, Mapping):
            weights = self.store.get_weights()
        ranked = rank(self.store.get_cars(), weights)
        return {
            'scores': [
                {'id': car.id, 'url': car.url, 'title': car.title, 'score': value}
                for car, value in ranked
            ],
        }

    def mode_source(self) -> Optional[str]:
        """Active mode from the stored settings, for `ExtractionEngine(mode_source=...)`."""
        return self.store.get_mode()
