"""Entity base model, partial-update markers and selector variants."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Entity(BaseModel):
    """
    Identified record returned by repositories.

    Field names are snake_case in Python and camelCase in documents
    (``created_at`` <-> ``createdAt``). Fields a subclass does not declare
    are kept as extras, so a plain ``Entity`` can carry any document.
    Instances are frozen snapshots.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
    )

    id: str
    created_at: datetime
    updated_at: datetime

    def as_dict(self) -> dict[str, Any]:
        """Return the document-named fields present on this record."""
        return self.model_dump(by_alias=True, exclude_unset=True)

    def same_record(self, other: Entity) -> bool:
        """Two entities are the same record iff their ids match."""
        return self.id == other.id


E = TypeVar("E", bound=Entity)

Properties = Mapping[str, Any]
EntityFilter = Mapping[str, Any]


class FieldAction(Enum):
    """Explicit per-field intent inside a partial update."""

    KEEP = "keep"
    CLEAR = "clear"

    def __repr__(self) -> str:
        return f"<{self.name}>"


KEEP = FieldAction.KEEP
CLEAR = FieldAction.CLEAR


def is_clear(value: Any) -> bool:
    """True for values that mean "remove this field"."""
    return value is None or value is CLEAR


@dataclass(frozen=True)
class ById:
    id: str


@dataclass(frozen=True)
class ByIds:
    ids: Sequence[str]


@dataclass(frozen=True)
class ByFilter:
    filter: EntityFilter


@dataclass(frozen=True)
class ByQuery:
    """Structured query (ranges, boolean logic). Not supported by MongoRepository."""

    query: Any


Selector = Union[ById, ByIds, ByFilter, ByQuery]
