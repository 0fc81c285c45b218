"""Resolution of partial updates into $set / $unset documents."""

from datetime import datetime
from typing import Any

from .models import KEEP, Properties, is_clear

CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"

PROTECTED_FIELDS = frozenset({"id", "_id", CREATED_AT_FIELD, UPDATED_AT_FIELD})

# $unset ignores the value; an empty string is the conventional placeholder
UNSET_MARKER = ""


def strip_protected_fields(properties: Properties) -> dict[str, Any]:
    """Drop identity/timestamp fields and KEEP entries from a properties bag."""
    return {
        key: value
        for key, value in properties.items()
        if key not in PROTECTED_FIELDS and value is not KEEP
    }


def resolve_set(properties: Properties, now: datetime) -> dict[str, Any]:
    fields = {
        key: value
        for key, value in strip_protected_fields(properties).items()
        if not is_clear(value)
    }
    fields[UPDATED_AT_FIELD] = now
    return fields


def resolve_unset(properties: Properties) -> dict[str, str]:
    return {
        key: UNSET_MARKER
        for key, value in strip_protected_fields(properties).items()
        if is_clear(value)
    }


def resolve_update(properties: Properties, now: datetime) -> dict[str, dict[str, Any]]:
    """
    Build the update document for a partial update.

    Every non-protected key lands in exactly one of ``$set`` or ``$unset``.
    ``$set`` always carries the refreshed ``updatedAt``; ``$unset`` is left
    out when nothing is cleared.
    """
    update: dict[str, dict[str, Any]] = {"$set": resolve_set(properties, now)}

    to_unset = resolve_unset(properties)
    if to_unset:
        update["$unset"] = to_unset

    return update
