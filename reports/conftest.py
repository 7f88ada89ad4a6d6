import datetime
import itertools

import pytest


UTC = datetime.timezone.utc

_OPS = {
    '==': lambda a, b: a == b,
    '<': lambda a, b: a < b,
    '<=': lambda a, b: a <= b,
    '>': lambda a, b: a > b,
    '>=': lambda a, b: a >= b,
}


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeWatch:
    def __init__(self, query, callback):
        self.query = query
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        self.active = False


class FakeQuery:
    """Just enough of a Firestore query: where/order_by/limit/get/on_snapshot."""

    def __init__(self, collection, filters=(), order=None, limit=None):
        self.collection = collection
        self.filters = filters
        self.order = order
        self._limit = limit

    def where(self, filter):
        return FakeQuery(self.collection, self.filters + (filter,), self.order, self._limit)

    def order_by(self, field, direction='ASCENDING'):
        return FakeQuery(self.collection, self.filters, (field, direction), self._limit)

    def limit(self, count):
        return FakeQuery(self.collection, self.filters, self.order, count)

    def _matches(self, data, flt):
        if flt.field_path not in data:
            return False
        try:
            return _OPS[flt.op_string](data[flt.field_path], flt.value)
        except TypeError:
            return False

    def get(self):
        db = self.collection.db
        fields = tuple(f.field_path for f in self.filters)
        db.queries.append((self.collection.name, fields))
        for name in fields:
            if (self.collection.name, name) in db.failing_fields:
                raise RuntimeError(f'no index for {name}')
        if not fields and self.collection.name in db.failing_collections:
            raise RuntimeError(f'cannot read {self.collection.name}')

        items = [
            (doc_id, data) for doc_id, data in self.collection.docs.items()
            if all(self._matches(data, f) for f in self.filters)
        ]
        if self.order:
            field, direction = self.order
            items = [item for item in items if field in item[1]]
            items.sort(key=lambda item: item[1][field], reverse=direction == 'DESCENDING')
        if self._limit is not None:
            items = items[:self._limit]
        return [FakeSnapshot(doc_id, data) for doc_id, data in items]

    stream = get

    def on_snapshot(self, callback):
        watch = FakeWatch(self, callback)
        self.collection.db.watches.append(watch)
        callback(self.get(), [], None)
        return watch


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id

    def get(self):
        db = self.collection.db
        db.lookups.append((self.collection.name, self.id))
        if self.collection.name in db.failing_collections:
            raise RuntimeError(f'cannot read {self.collection.name}/{self.id}')
        return FakeSnapshot(self.id, self.collection.docs.get(self.id))


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.docs = {}
        super().__init__(self)

    def document(self, doc_id):
        return FakeDocumentRef(self, doc_id)


class FakeFirestore:
    def __init__(self):
        self._collections = {}
        self._ids = itertools.count(1)
        self.queries = []
        self.lookups = []
        self.watches = []
        self.failing_fields = set()
        self.failing_collections = set()

    def collection(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection(self, name)
        return self._collections[name]

    def add(self, name, data, doc_id=None):
        doc_id = doc_id or f'doc{next(self._ids)}'
        self.collection(name).docs[doc_id] = data
        return doc_id

    def notify(self):
        """Redeliver every active listener's current result, like a change would."""
        for watch in self.watches:
            if watch.active:
                watch.callback(watch.query.get(), [], None)


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def at():
    """Build an aware UTC datetime: at(2025, 10, 4, 15) -> 2025-10-04T15:00Z."""
    def build(*args):
        return datetime.datetime(*args, tzinfo=UTC)
    return build
