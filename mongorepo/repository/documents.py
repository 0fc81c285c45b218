"""Document <-> entity conversion."""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from .filters import DOCUMENT_ID_FIELD, ID_FIELD
from .identifiers import decode_identifier
from .models import KEEP, E, Properties, is_clear
from .updates import CREATED_AT_FIELD, UPDATED_AT_FIELD


def utc_now() -> datetime:
    """Current UTC time at BSON date precision (milliseconds)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def build_document(properties: Properties, now: datetime) -> dict[str, Any]:
    """
    Prepare a properties bag for insertion.

    Identity fields are stripped, timestamps are stamped over anything the
    caller supplied, and empty values (None/CLEAR/KEEP) are left out so the
    field is simply absent.
    """
    document = {
        key: value
        for key, value in properties.items()
        if key not in (ID_FIELD, DOCUMENT_ID_FIELD)
        and value is not KEEP
        and not is_clear(value)
    }
    document[CREATED_AT_FIELD] = now
    document[UPDATED_AT_FIELD] = now
    return document


def document_to_entity(document: Mapping[str, Any], entity_type: type[E]) -> E:
    fields = {key: value for key, value in document.items() if key != DOCUMENT_ID_FIELD}
    fields[ID_FIELD] = decode_identifier(document[DOCUMENT_ID_FIELD])
    return entity_type.model_validate(fields)


def documents_to_entities(documents: Iterable[Mapping[str, Any]], entity_type: type[E]) -> list[E]:
    return [document_to_entity(document, entity_type) for document in documents]
