"""Tests for document/entity conversion."""

from datetime import datetime, timezone

import pytest
from bson import ObjectId
from pydantic import ValidationError

from conftest import SampleEntity, epoch_ms
from mongorepo.repository import CLEAR, KEEP, Entity
from mongorepo.repository.documents import build_document, document_to_entity, utc_now

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_utc_now_is_aware_with_millisecond_precision() -> None:
    now = utc_now()
    assert now.tzinfo is not None
    assert now.microsecond % 1000 == 0


def test_build_document_stamps_timestamps_and_strips_identity() -> None:
    document = build_document(
        {"id": "abc", "_id": "def", "createdAt": epoch_ms(1), "name": "x", "gone": None, "kept": KEEP, "cleared": CLEAR},
        NOW,
    )
    assert document == {"name": "x", "createdAt": NOW, "updatedAt": NOW}


def test_document_to_entity_renames_id() -> None:
    object_id = ObjectId()
    document = {
        "_id": object_id,
        "createdAt": NOW,
        "updatedAt": NOW,
        "stringProperty": "AAA",
        "numberProperty": 1,
        "dateProperty": epoch_ms(10),
        "booleanProperty": True,
    }

    entity = document_to_entity(document, SampleEntity)

    assert entity.id == str(object_id)
    assert entity.string_property == "AAA"
    assert "_id" not in entity.as_dict()
    assert "optionalStringProperty" not in entity.as_dict()


def test_plain_entity_keeps_undeclared_fields() -> None:
    entity = document_to_entity({"_id": ObjectId(), "createdAt": NOW, "updatedAt": NOW, "color": "red"}, Entity)
    assert entity.as_dict()["color"] == "red"


def test_entities_are_frozen() -> None:
    entity = document_to_entity({"_id": ObjectId(), "createdAt": NOW, "updatedAt": NOW}, Entity)
    with pytest.raises(ValidationError):
        entity.id = "other"


def test_same_record_compares_ids() -> None:
    object_id = ObjectId()
    older = document_to_entity({"_id": object_id, "createdAt": NOW, "updatedAt": NOW, "v": 1}, Entity)
    newer = document_to_entity({"_id": object_id, "createdAt": NOW, "updatedAt": NOW, "v": 2}, Entity)
    assert older.same_record(newer)
    assert older != newer
