"""Translation of ids and entity filters into MongoDB predicates."""

from collections.abc import Sequence
from typing import Any

from .exceptions import OperationNotSupportedError
from .identifiers import encode_identifier, encode_identifiers, is_valid_identifier
from .models import CLEAR, EntityFilter

ID_FIELD = "id"
DOCUMENT_ID_FIELD = "_id"


def from_identifier(identifier: str) -> dict[str, Any]:
    return {DOCUMENT_ID_FIELD: encode_identifier(identifier)}


def from_identifiers(identifiers: Sequence[str]) -> dict[str, Any]:
    return {DOCUMENT_ID_FIELD: {"$in": encode_identifiers(identifiers)}}


def from_entity_filter(entity_filter: EntityFilter) -> dict[str, Any]:
    """
    Build a conjunctive equality predicate from a field -> value mapping.

    A falsy value (None, CLEAR, False, 0, "") matches documents where the
    field is missing or null, so {"flag": False} also finds records that
    never set the flag. An ``id``
    entry is matched against ``_id``; a malformed id matches nothing.
    """
    predicate: dict[str, Any] = {}

    for field, value in entity_filter.items():
        if field == ID_FIELD:
            predicate[DOCUMENT_ID_FIELD] = _identifier_clause(value)
        elif not value or value is CLEAR:
            predicate[field] = None
        else:
            predicate[field] = {"$eq": value}

    return predicate


def from_query(query: Any) -> dict[str, Any]:
    raise OperationNotSupportedError(
        "Structured queries are not supported; use an equality filter.",
        operation="query",
    )


def _identifier_clause(value: Any) -> dict[str, Any]:
    # Every stored document has a well-formed _id, so None/CLEAR match nothing too
    if not is_valid_identifier(value):
        return {"$in": []}
    return {"$eq": encode_identifier(value)}
