"""MongoDB-backed listing collection.

Connection settings come from the `MONGO_URI`, `MONGO_DB`,
`MONGO_COLLECTION` and `MONGO_META_COLLECTION` environment variables.
Listings are stored as their document form (`Listing.to_dict()`) with a
unique index on `url`; weights and settings live in a small meta
collection keyed by name.
"""
from typing import Any, Dict, List, Optional
import logging
import os
import time
from functools import wraps

from pymongo import MongoClient, ASCENDING
from pymongo.errors import AutoReconnect, DuplicateKeyError, PyMongoError, ServerSelectionTimeoutError
from pymongo.write_concern import WriteConcern

from ..errors import DuplicateListingError
from ..models import Listing
from .base import ListingStore

logger = logging.getLogger(__name__)

# Configuration via environment
MONGO_URI = os.environ.get('MONGO_URI', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('MONGO_DB', 'evscorer')
COLLECTION = os.environ.get('MONGO_COLLECTION', 'listings')
META_COLLECTION = os.environ.get('MONGO_META_COLLECTION', 'meta')
# Write concern: w=1 by default, can be 'majority' or integer
MONGO_W = os.environ.get('MONGO_WRITE_CONCERN', '1')
# connection timeouts (seconds)
MONGO_SERVER_SELECTION_TIMEOUT = int(os.environ.get('MONGO_SERVER_SELECTION_TIMEOUT', '5'))

_client: Optional[MongoClient] = None


def _write_concern() -> WriteConcern:
    w: Any = int(MONGO_W) if MONGO_W.isdigit() else MONGO_W
    return WriteConcern(w=w)


def _with_retries(retries: int = 3, backoff: float = 0.2):
    """Retry transient connection failures; other errors propagate at once."""
    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            last_exc = None
            for attempt in range(1, retries + 1):
                try:
                    return fn(*args, **kwargs)
                except (AutoReconnect, ServerSelectionTimeoutError) as e:
                    last_exc = e
                    logger.warning('MongoDB call %s failed (attempt %d/%d): %s', fn.__name__, attempt, retries, e)
                    time.sleep(backoff * attempt)
            raise last_exc

        return wrapper

    return deco


def get_client() -> MongoClient:
    """Return a cached `MongoClient` configured with sensible timeouts."""
    global _client
    if _client is None:
        _client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=int(MONGO_SERVER_SELECTION_TIMEOUT * 1000))
    return _client


def get_collection(name: str = COLLECTION):
    return get_client()[DB_NAME].get_collection(name, write_concern=_write_concern())


def ensure_indexes(coll=None):
    """Create the unique `url` index and an `id` lookup index."""
    coll = coll if coll is not None else get_collection()
    try:
        # listings captured without a url (empty string) stay outside the unique index
        coll.create_index(
            [('url', ASCENDING)], unique=True, name='uniq_url',
            partialFilterExpression={'url': {'$gt': ''}},
        )
        coll.create_index([('id', ASCENDING)], name='car_id')
    except PyMongoError as e:
        logger.warning('Could not create indexes on %s: %s', getattr(coll, 'name', coll), e)


def close_client():
    global _client
    if _client:
        try:
            _client.close()
        finally:
            _client = None


def _scalar_id(car_id: Any) -> bool:
    """Ids are plain values; anything else could carry query operators."""
    return isinstance(car_id, (int, float, str)) and not isinstance(car_id, bool)


def _to_listing(doc: Optional[Dict[str, Any]]) -> Optional[Listing]:
    if doc is None:
        return None
    return Listing.from_dict(doc)


class MongoListingStore(ListingStore):
    """Listing store over two MongoDB collections.

    Collections may be injected (tests pass in-memory fakes); otherwise
    they are opened from the environment configuration.
    """

    def __init__(self, collection=None, meta_collection=None, create_indexes: bool = True):
        self.collection = collection if collection is not None else get_collection(COLLECTION)
        self.meta = meta_collection if meta_collection is not None else get_collection(META_COLLECTION)
        if create_indexes:
            ensure_indexes(self.collection)

    @_with_retries(retries=3, backoff=0.3)
    def get_cars(self) -> List[Listing]:
        return [Listing.from_dict(doc) for doc in self.collection.find({}, {'_id': 0})]

    @_with_retries(retries=3, backoff=0.3)
    def get_car(self, car_id: Any) -> Optional[Listing]:
        if not _scalar_id(car_id):
            return None
        return _to_listing(self.collection.find_one({'id': car_id}, {'_id': 0}))

    @_with_retries(retries=3, backoff=0.3)
    def find_by_url(self, url: str) -> Optional[Listing]:
        if not isinstance(url, str):
            return None
        return _to_listing(self.collection.find_one({'url': url}, {'_id': 0}))

    def _insert(self, listing: Listing) -> None:
        # insert_one adds `_id` to the dict it is given
        doc = listing.to_dict()
        try:
            self.collection.insert_one(dict(doc))
        except DuplicateKeyError as e:
            raise DuplicateListingError(listing.url) from e

    def _replace(self, listing: Listing) -> None:
        try:
            self.collection.replace_one({'id': listing.id}, listing.to_dict())
        except DuplicateKeyError as e:
            raise DuplicateListingError(listing.url) from e

    def _delete(self, car_id: Any) -> bool:
        if not _scalar_id(car_id):
            return False
        res = self.collection.delete_one({'id': car_id})
        return res.deleted_count > 0

    def _replace_all(self, cars: List[Listing], weights: Dict[str, float]) -> None:
        previous = list(self.collection.find({}, {'_id': 0}))
        self.collection.delete_many({})
        try:
            if cars:
                self.collection.insert_many([car.to_dict() for car in cars])
        except PyMongoError:
            logger.error('Import failed, restoring %d previous listings', len(previous))
            self.collection.delete_many({})
            if previous:
                self.collection.insert_many(previous)
            raise
        self._write_meta('weights', weights)

    @_with_retries(retries=3, backoff=0.3)
    def _read_meta(self, key: str) -> Optional[Dict[str, Any]]:
        doc = self.meta.find_one({'_id': key})
        return dict(doc['value']) if doc and doc.get('value') is not None else None

    def _write_meta(self, key: str, value: Dict[str, Any]) -> None:
        self.meta.replace_one({'_id': key}, {'_id': key, 'value': dict(value)}, upsert=True)

    def _clear(self) -> None:
        self.collection.delete_many({})
        self.meta.delete_many({})
