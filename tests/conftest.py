"""
Shared pytest fixtures: an in-memory stand-in for the async MongoDB driver.

The collection double supports the small query surface the CRUD modules
use (equality filters, sort/skip/limit, unique indexes) and raises the real
``pymongo.errors.DuplicateKeyError`` on unique index violations.
"""

import copy

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError


class InsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeCursor:
    def __init__(self, documents):
        self._documents = documents

    def sort(self, keys):
        for key, direction in reversed(keys):
            self._documents.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def skip(self, count):
        self._documents = self._documents[count:]
        return self

    def limit(self, count):
        if count:
            self._documents = self._documents[:count]
        return self

    async def to_list(self, length=None):
        return self._documents if length is None else self._documents[:length]


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.documents = []
        self.indexes = {}

    def _matches(self, document, query):
        return all(document.get(k) == v for k, v in query.items())

    def _check_unique(self, record):
        for name, (keys, unique) in self.indexes.items():
            if not unique:
                continue
            values = tuple(record.get(k) for k in keys)
            for other in self.documents:
                if other["_id"] == record["_id"]:
                    continue
                if tuple(other.get(k) for k in keys) == values:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: test.{self.name} "
                        f"index: {name} dup key",
                        code=11000,
                        details={
                            "errmsg": f"E11000 duplicate key error collection: "
                            f"test.{self.name} index: {name} dup key",
                            "keyValue": dict(zip(keys, values)),
                        },
                    )

    async def create_index(self, keys, unique=False, name=None):
        self.indexes[name] = ([k for k, _ in keys], unique)
        return name

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        record = copy.deepcopy(document)
        self._check_unique(record)
        self.documents.append(record)
        return InsertResult(record["_id"])

    async def replace_one(self, query, replacement):
        for i, document in enumerate(self.documents):
            if self._matches(document, query):
                record = copy.deepcopy(replacement)
                record["_id"] = document["_id"]
                self._check_unique(record)
                self.documents[i] = record
                return

    async def find_one(self, query, projection=None):
        for document in self.documents:
            if self._matches(document, query):
                if projection:
                    return {k: document[k] for k in projection if k in document}
                return copy.deepcopy(document)
        return None

    def find(self, query=None):
        return FakeCursor(
            [copy.deepcopy(d) for d in self.documents if self._matches(d, query or {})]
        )

    async def count_documents(self, query):
        return sum(1 for d in self.documents if self._matches(d, query))


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


class FakeClient:
    def __init__(self):
        self.databases = {}
        self.closed = False

    def __getitem__(self, name):
        if name not in self.databases:
            self.databases[name] = FakeDatabase()
        return self.databases[name]

    async def close(self):
        self.closed = True


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def event_data():
    """Return a function building a valid event payload with overrides."""

    def _event_data(**overrides):
        data = {
            "title": "React Conf 2023",
            "description": "The annual React conference.",
            "overview": "Two days of talks about React.",
            "image": "/images/event1.png",
            "venue": "Moscone Center",
            "location": "San Francisco, CA",
            "date": "2023-10-15",
            "time": "09:00 AM",
            "mode": "offline",
            "audience": "Frontend developers",
            "agenda": ["Keynote", "Workshops"],
            "organizer": "Meta",
            "tags": ["react", "javascript"],
        }
        data.update(overrides)
        return data

    return _event_data
