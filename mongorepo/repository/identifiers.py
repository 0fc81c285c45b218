"""Conversion between external string identifiers and BSON ObjectIds."""

from collections.abc import Iterable
from typing import Any

from bson import ObjectId


def is_valid_identifier(candidate: Any) -> bool:
    """Return True if candidate is a 24-character hex ObjectId string."""
    return isinstance(candidate, str) and ObjectId.is_valid(candidate)


def encode_identifier(identifier: str) -> ObjectId:
    """Convert an identifier to an ObjectId.

    Raises bson.errors.InvalidId for malformed input; guard with
    is_valid_identifier first.
    """
    return ObjectId(identifier)


def encode_identifiers(identifiers: Iterable[str]) -> list[ObjectId]:
    return [encode_identifier(identifier) for identifier in identifiers]


def decode_identifier(object_id: ObjectId) -> str:
    return str(object_id)


def filter_valid_identifiers(candidates: Iterable[Any]) -> list[str]:
    """Drop candidates that can never match a document, preserving order."""
    return [candidate for candidate in candidates if is_valid_identifier(candidate)]
