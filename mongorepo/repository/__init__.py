"""Generic MongoDB repository."""

from .events import EntityEvent, EntityEvents
from .exceptions import EntityNotFoundError, OperationNotSupportedError, RepositoryError
from .identifiers import is_valid_identifier
from .models import CLEAR, KEEP, ByFilter, ById, ByIds, ByQuery, Entity, FieldAction, Selector
from .repository import MongoRepository, create_repository

__all__ = [
    "MongoRepository",
    "create_repository",
    "Entity",
    "FieldAction",
    "KEEP",
    "CLEAR",
    "ById",
    "ByIds",
    "ByFilter",
    "ByQuery",
    "Selector",
    "EntityEvent",
    "EntityEvents",
    "is_valid_identifier",
    "RepositoryError",
    "EntityNotFoundError",
    "OperationNotSupportedError",
]
