"""Collection store behaviour, run against the in-memory store and the
Mongo store over an in-process fake collection."""
from datetime import datetime, timezone
from types import SimpleNamespace
import copy
import itertools

import pytest
from pymongo.errors import BulkWriteError, DuplicateKeyError

from ev_scorer.config import default_weights, default_settings
from ev_scorer.db.memory_store import MemoryListingStore
from ev_scorer.db.mongo_store import MongoListingStore
from ev_scorer.errors import DuplicateListingError, InvalidImportError, ListingNotFoundError
from ev_scorer.models import Listing


class FakeCollection:
    """The handful of pymongo Collection calls the store makes."""

    _oids = itertools.count(1)

    def __init__(self):
        self.docs = []
        self.indexes = []

    @staticmethod
    def _matches(doc, flt):
        for key, want in flt.items():
            if isinstance(want, dict) and '$ne' in want:
                if doc.get(key) == want['$ne']:
                    return False
            elif doc.get(key) != want:
                return False
        return True

    @staticmethod
    def _project(doc, projection):
        out = copy.deepcopy(doc)
        if projection and projection.get('_id') == 0:
            out.pop('_id', None)
        return out

    def _url_index(self):
        for keys, opts in self.indexes:
            if keys == [('url', 1)] and opts.get('unique'):
                return opts
        return None

    def _check_unique(self, doc, ignore=None):
        opts = self._url_index()
        if opts is None:
            return
        # same coverage rules as a real unique index
        if opts.get('partialFilterExpression'):
            if not isinstance(doc.get('url'), str) or doc['url'] <= '':
                return
        elif opts.get('sparse') and 'url' not in doc:
            return
        for other in self.docs:
            if other is not ignore and other.get('url') == doc.get('url'):
                raise DuplicateKeyError('E11000 duplicate key error: url')

    def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return kwargs.get('name')

    def find(self, flt=None, projection=None):
        return [self._project(d, projection) for d in self.docs if self._matches(d, flt or {})]

    def find_one(self, flt=None, projection=None):
        found = self.find(flt, projection)
        return found[0] if found else None

    def insert_one(self, doc):
        self._check_unique(doc)
        doc['_id'] = next(self._oids)
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc['_id'])

    def insert_many(self, docs):
        # ordered insert: earlier documents stay written when one fails
        for n, doc in enumerate(docs):
            try:
                self.insert_one(doc)
            except DuplicateKeyError as e:
                raise BulkWriteError({'nInserted': n, 'writeErrors': [{'index': n, 'code': 11000, 'errmsg': str(e)}]})

    def replace_one(self, flt, doc, upsert=False):
        for i, existing in enumerate(self.docs):
            if self._matches(existing, flt):
                self._check_unique(doc, ignore=existing)
                new = copy.deepcopy(doc)
                new.setdefault('_id', existing.get('_id'))
                self.docs[i] = new
                return SimpleNamespace(matched_count=1)
        if upsert:
            self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(matched_count=0)

    def delete_one(self, flt):
        for i, existing in enumerate(self.docs):
            if self._matches(existing, flt):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def delete_many(self, flt):
        before = len(self.docs)
        self.docs = [d for d in self.docs if not self._matches(d, flt)]
        return SimpleNamespace(deleted_count=before - len(self.docs))


@pytest.fixture(params=['memory', 'mongo'])
def store(request):
    if request.param == 'memory':
        return MemoryListingStore()
    return MongoListingStore(collection=FakeCollection(), meta_collection=FakeCollection())


def _today():
    return datetime.now(timezone.utc).date().isoformat()


def test_put_assigns_identity_and_defaults(store):
    saved = store.put(Listing(url='https://www.clutch.ca/vehicles/1', make='Kia', price=30000,
                              range=0, length=-1, trim_level=0, distance=0, damage=-2))
    assert saved.id is not None
    assert saved.added_at
    assert saved.starred is False
    assert saved.price_history == [{'price': 30000, 'date': _today()}]
    assert (saved.range, saved.length, saved.trim_level, saved.distance, saved.damage) == (400, 170, 2, 5, 0)
    assert saved.heat_pump is True
    assert saved.remote_start is None
    assert store.get_car(saved.id) == saved
    assert store.get_cars() == [saved]


def test_put_rejects_duplicate_url(store):
    store.put(Listing(url='https://www.kijiji.ca/v-cars-trucks/x/1701234567'))
    with pytest.raises(DuplicateListingError) as exc:
        store.put(Listing(url='https://www.kijiji.ca/v-cars-trucks/x/1701234567', price=1))
    assert exc.value.url == 'https://www.kijiji.ca/v-cars-trucks/x/1701234567'
    assert len(store.get_cars()) == 1


def test_ids_are_unique(store):
    ids = {store.put(Listing(url=f'https://example.ca/{i}')).id for i in range(5)}
    assert len(ids) == 5


def test_is_url_saved(store):
    store.put(Listing(url='https://example.ca/1'))
    assert store.is_url_saved('https://example.ca/1') is True
    assert store.is_url_saved('https://example.ca/2') is False
    assert store.is_url_saved('') is False


def test_update_tracks_price_changes(store):
    car = store.put(Listing(url='https://example.ca/1', price=30000,
                            price_history=[{'price': 32000, 'date': '2024-01-05'}]))
    updated = store.update(car.id, {'price': 29500, 'damage': 2})
    assert updated.price == 29500
    assert updated.damage == 2
    assert updated.price_history == [
        {'price': 32000, 'date': '2024-01-05'},
        {'price': 29500, 'date': _today()},
    ]
    again = store.update(car.id, {'price': 29000})
    assert again.price_history[-1] == {'price': 29000, 'date': _today()}
    assert len(again.price_history) == 2
    assert store.get_car(car.id).price == 29000


def test_update_without_price_change_keeps_history(store):
    car = store.put(Listing(url='https://example.ca/1', price=30000))
    updated = store.update(car.id, {'price': 30000, 'remoteStart': 'App'})
    assert updated.price_history == car.price_history
    assert updated.remote_start == 'App'


def test_update_unknown_id(store):
    with pytest.raises(ListingNotFoundError):
        store.update(12345, {'price': 1})


def test_update_to_taken_url_fails(store):
    store.put(Listing(url='https://example.ca/1'))
    other = store.put(Listing(url='https://example.ca/2'))
    with pytest.raises(DuplicateListingError):
        store.update(other.id, {'url': 'https://example.ca/1'})


def test_remove_and_toggle_star(store):
    car = store.put(Listing(url='https://example.ca/1'))
    assert store.toggle_star(car.id).starred is True
    assert store.toggle_star(car.id).starred is False
    assert store.remove(car.id) is True
    assert store.remove(car.id) is False
    assert store.get_cars() == []


def test_weights_and_settings(store):
    assert store.get_weights() == default_weights()
    store.save_weights({'price': 50, 'odo': 10})
    assert store.get_weights() == {'price': 50, 'odo': 10}

    assert store.get_settings() == default_settings()
    updated = store.save_settings({'mode': 'ev'})
    assert updated['mode'] == 'ev'
    assert updated['autoDetect'] is True
    assert store.get_mode() == 'ev'


def test_export_then_import_restores_collection(store):
    store.put(Listing(url='https://example.ca/1', make='Tesla', price=41000))
    store.save_weights({'price': 1})
    doc = store.export_data()
    assert doc['version'] == '1.0.0'
    assert len(doc['cars']) == 1

    store.clear_all()
    assert store.get_cars() == []
    assert store.import_data(doc) == 1
    cars = store.get_cars()
    assert cars[0].make == 'Tesla' and cars[0].price == 41000
    assert store.get_weights() == {'price': 1}


def test_import_without_weights_uses_defaults(store):
    store.save_weights({'price': 1})
    assert store.import_data({'cars': [{'url': 'https://example.ca/9', 'price': '25,000'}]}) == 1
    car = store.get_cars()[0]
    assert car.price == 25000
    assert car.id is not None
    assert store.get_weights() == default_weights()


def test_import_drops_duplicate_urls(store):
    doc = {'cars': [{'url': 'https://example.ca/1', 'id': 1}, {'url': 'https://example.ca/1', 'id': 2}]}
    assert store.import_data(doc) == 1


def test_invalid_import_leaves_store_untouched(store):
    store.put(Listing(url='https://example.ca/1'))
    with pytest.raises(InvalidImportError):
        store.import_data({})
    with pytest.raises(InvalidImportError):
        store.import_data({'cars': 'nope'})
    assert len(store.get_cars()) == 1


def test_mongo_store_creates_url_index():
    coll = FakeCollection()
    MongoListingStore(collection=coll, meta_collection=FakeCollection())
    names = [kw.get('name') for _, kw in coll.indexes]
    assert 'uniq_url' in names


def test_mongo_store_maps_duplicate_key_error():
    store = MongoListingStore(collection=FakeCollection(), meta_collection=FakeCollection())
    listing = Listing(url='https://example.ca/1', id=1)
    store._insert(listing)
    with pytest.raises(DuplicateListingError):
        store._insert(Listing(url='https://example.ca/1', id=2))


def test_import_keeps_listings_without_url(store):
    store.put(Listing(url='https://example.ca/1'))
    assert store.import_data({'cars': [{'make': 'Kia'}, {'make': 'Tesla'}]}) == 2
    assert sorted(car.make for car in store.get_cars()) == ['Kia', 'Tesla']


def test_sparse_url_index_still_covers_empty_urls():
    coll = FakeCollection()
    coll.create_index([('url', 1)], unique=True, sparse=True, name='uniq_url')
    coll.insert_one({'id': 1, 'url': ''})
    with pytest.raises(DuplicateKeyError):
        coll.insert_one({'id': 2, 'url': ''})


class FailingInsertCollection(FakeCollection):
    fail_next_insert_many = False

    def insert_many(self, docs):
        if self.fail_next_insert_many:
            self.fail_next_insert_many = False
            raise BulkWriteError({'nInserted': 0, 'writeErrors': [{'index': 0, 'code': 11000}]})
        return super().insert_many(docs)


def test_mongo_import_failure_restores_previous_listings():
    coll = FailingInsertCollection()
    store = MongoListingStore(collection=coll, meta_collection=FakeCollection())
    kept = store.put(Listing(url='https://example.ca/1', make='Polestar'))
    store.save_weights({'price': 1})

    coll.fail_next_insert_many = True
    with pytest.raises(BulkWriteError):
        store.import_data({'cars': [{'url': 'https://example.ca/2', 'make': 'Kia'}]})

    assert store.get_cars() == [kept]
    assert store.get_weights() == {'price': 1}


def test_mongo_store_ignores_operator_ids():
    store = MongoListingStore(collection=FakeCollection(), meta_collection=FakeCollection())
    store.put(Listing(url='https://example.ca/1'))
    assert store.get_car({'$ne': None}) is None
    assert store.remove({'$ne': None}) is False
    assert store.is_url_saved({'$ne': None}) is False
    with pytest.raises(ListingNotFoundError):
        store.update({'$ne': None}, {'price': 1})
    assert len(store.get_cars()) == 1
