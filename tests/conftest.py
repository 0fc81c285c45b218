"""Shared fixtures: an in-memory stand-in for a Motor collection."""

import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

import pytest
from bson import ObjectId
from pymongo import ReturnDocument

from mongorepo.repository import Entity, MongoRepository

_MISSING = object()

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def epoch_ms(milliseconds: int) -> datetime:
    return EPOCH + timedelta(milliseconds=milliseconds)


class SampleEntity(Entity):
    date_property: datetime
    number_property: int
    string_property: str
    boolean_property: bool
    optional_date_property: datetime | None = None
    optional_number_property: int | None = None
    optional_string_property: str | None = None
    optional_boolean_property: bool | None = None


class FakeCursor:
    def __init__(self, documents: list[dict[str, Any]]):
        self._documents = documents

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        if length is None:
            return list(self._documents)
        return list(self._documents[:length])


class FakeCollection:
    """
    Async collection double covering the calls MongoRepository makes.

    Every call is recorded in ``calls``; setting ``fail_with`` makes every
    call raise that exception. ``store_reversed`` stores batch inserts in
    reverse order to show results never depend on storage order.
    """

    def __init__(self, name: str = "test-collection"):
        self.name = name
        self.documents: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self.fail_with: Exception | None = None
        self.store_reversed = False
        self.insert_many_options: dict[str, Any] = {}

    def _record(self, call: str) -> None:
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    # Matching -----------------------------------------------------------

    @staticmethod
    def _matches(document: dict[str, Any], predicate: dict[str, Any]) -> bool:
        for key, condition in predicate.items():
            value = document.get(key, _MISSING)
            if condition is None:
                if value is not _MISSING and value is not None:
                    return False
            elif isinstance(condition, dict):
                if "$eq" in condition and value != condition["$eq"]:
                    return False
                if "$in" in condition and value not in condition["$in"]:
                    return False
            elif value != condition:
                return False
        return True

    def _matching(self, predicate: dict[str, Any]) -> list[dict[str, Any]]:
        return [document for document in self.documents if self._matches(document, predicate)]

    @staticmethod
    def _apply(document: dict[str, Any], update: dict[str, Any]) -> None:
        document.update(update.get("$set", {}))
        for key in update.get("$unset", {}):
            document.pop(key, None)

    # Collection API ----------------------------------------------------

    def find(self, predicate: dict[str, Any] | None = None, projection: dict[str, Any] | None = None) -> FakeCursor:
        self._record("find")
        documents = [copy.deepcopy(d) for d in self._matching(predicate or {})]
        if projection:
            documents = [{key: d[key] for key in projection if key in d} for d in documents]
        return FakeCursor(documents)

    async def find_one(self, predicate: dict[str, Any]) -> dict[str, Any] | None:
        self._record("find_one")
        matches = self._matching(predicate)
        return copy.deepcopy(matches[0]) if matches else None

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        self._record("insert_one")
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def insert_many(self, documents: list[dict[str, Any]], ordered: bool = True) -> SimpleNamespace:
        self._record("insert_many")
        self.insert_many_options = {"ordered": ordered}
        for document in documents:
            document.setdefault("_id", ObjectId())

        stored = [copy.deepcopy(d) for d in documents]
        if self.store_reversed:
            stored.reverse()
        self.documents.extend(stored)
        return SimpleNamespace(inserted_ids=[d["_id"] for d in documents])

    async def find_one_and_update(
        self,
        predicate: dict[str, Any],
        update: dict[str, Any],
        return_document: ReturnDocument = ReturnDocument.BEFORE,
    ) -> dict[str, Any] | None:
        self._record("find_one_and_update")
        matches = self._matching(predicate)
        if not matches:
            return None

        before = copy.deepcopy(matches[0])
        self._apply(matches[0], update)
        return copy.deepcopy(matches[0]) if return_document == ReturnDocument.AFTER else before

    async def update_many(self, predicate: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        self._record("update_many")
        matches = self._matching(predicate)
        for document in matches:
            self._apply(document, update)
        return SimpleNamespace(matched_count=len(matches), modified_count=len(matches))

    async def delete_one(self, predicate: dict[str, Any]) -> SimpleNamespace:
        self._record("delete_one")
        matches = self._matching(predicate)
        if matches:
            self.documents.remove(matches[0])
        return SimpleNamespace(deleted_count=1 if matches else 0)

    async def delete_many(self, predicate: dict[str, Any]) -> SimpleNamespace:
        self._record("delete_many")
        matches = self._matching(predicate)
        for document in matches:
            self.documents.remove(document)
        return SimpleNamespace(deleted_count=len(matches))

    async def count_documents(self, predicate: dict[str, Any]) -> int:
        self._record("count_documents")
        return len(self._matching(predicate))


SEED_PROPERTIES = [
    {"stringProperty": "AAA", "numberProperty": 123, "dateProperty": epoch_ms(10), "booleanProperty": True},
    {"stringProperty": "AAA", "numberProperty": 234, "dateProperty": epoch_ms(20), "booleanProperty": False},
    {"stringProperty": "BBB", "numberProperty": 234, "dateProperty": epoch_ms(30), "booleanProperty": True},
    {"stringProperty": "CCC", "numberProperty": 345, "dateProperty": epoch_ms(30), "booleanProperty": False},
    {"stringProperty": "EEE", "numberProperty": 456, "dateProperty": epoch_ms(40), "booleanProperty": True},
    {"stringProperty": "FFF", "numberProperty": 567, "dateProperty": epoch_ms(50), "booleanProperty": False},
]


@pytest.fixture
def collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def repository(collection: FakeCollection) -> MongoRepository[SampleEntity]:
    return MongoRepository(collection, entity_type=SampleEntity)


@pytest.fixture
def seeded(collection: FakeCollection) -> list[dict[str, Any]]:
    """Store the six seed documents directly, bypassing the repository."""
    created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    documents = [
        {"_id": ObjectId(), "createdAt": created_at, "updatedAt": created_at, **properties}
        for properties in SEED_PROPERTIES
    ]
    collection.documents.extend(copy.deepcopy(documents))
    return documents
