"""MongoDB-backed generic repository."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from itertools import zip_longest
from typing import Any, Generic, TypeVar

import logfire
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument

from mongorepo.config import RepositoryConfig, Settings, get_settings
from mongorepo.connection import get_collection

from . import filters
from .documents import build_document, document_to_entity, documents_to_entities, utc_now
from .events import EntityEvent, EntityEvents, Listener
from .exceptions import EntityNotFoundError, OperationNotSupportedError, RepositoryError
from .identifiers import decode_identifier, filter_valid_identifiers, is_valid_identifier
from .models import (
    ByFilter,
    ById,
    ByIds,
    ByQuery,
    E,
    Entity,
    EntityFilter,
    Properties,
    Selector,
)
from .updates import resolve_update

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MongoRepository(Generic[E]):
    """
    CRUD repository for one MongoDB collection.

    Malformed identifiers never raise: reads return nothing, deletes are
    no-ops and updates report the entity as not found, all without a store
    round trip. Any other failure from the driver is re-raised as
    RepositoryError.

    Bulk paths issue two store calls without a transaction. update_by_ids
    updates then re-reads, so a record deleted in between is missing from
    the result.
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        entity_type: type[E] = Entity,
        events: EntityEvents | None = None,
        config: RepositoryConfig | None = None,
    ):
        self.collection = collection
        self.entity_type = entity_type
        self.events = events or EntityEvents()
        self.config = config or RepositoryConfig()

        logger.info(
            f"Initialized MongoRepository (entity={entity_type.__name__}, "
            f"collection={self.collection_name})"
        )

    @property
    def collection_name(self) -> str:
        return getattr(self.collection, "name", type(self.collection).__name__)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_created(self, listener: Listener) -> Callable[[], bool]:
        return self.events.on_created(listener)

    def on_updated(self, listener: Listener) -> Callable[[], bool]:
        return self.events.on_updated(listener)

    def on_deleted(self, listener: Listener) -> Callable[[], bool]:
        """Subscribe to deletes. Listeners receive the ids of the removed records, not entities."""
        return self.events.on_deleted(listener)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(self, properties: Properties | Sequence[Properties]) -> E | list[E]:
        """Create one entity from a mapping, or many from a sequence of mappings."""
        if isinstance(properties, Mapping):
            return await self.create_one(properties)
        return await self.create_many(list(properties))

    async def create_one(self, properties: Properties) -> E:
        async def run() -> E:
            document = build_document(properties, utc_now())
            result = await self.collection.insert_one(document)
            return self._to_entity({**document, "_id": result.inserted_id})

        entity = await self._execute("create_one", run)
        self._emit(EntityEvent.CREATED, [entity])
        return entity

    async def create_many(self, properties: Sequence[Properties]) -> list[E]:
        async def run() -> list[E]:
            if not properties:
                return []

            now = utc_now()
            documents = [build_document(entity_properties, now) for entity_properties in properties]

            # ordered=True keeps inserted_ids aligned with the input order
            result = await self.collection.insert_many(documents, ordered=True)

            entities = []
            for document, inserted_id in zip_longest(documents, result.inserted_ids):
                if document is None or inserted_id is None:
                    raise RepositoryError(
                        f"Inserted {len(result.inserted_ids)} documents but expected {len(documents)}",
                        operation="create_many",
                    )
                entities.append(self._to_entity({**document, "_id": inserted_id}))
            return entities

        entities = await self._execute("create_many", run)
        self._emit(EntityEvent.CREATED, entities)
        return entities

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update(self, selector: Selector, properties: Properties) -> E | list[E]:
        if isinstance(selector, ById):
            return await self.update_by_id(selector.id, properties)
        if isinstance(selector, ByIds):
            return await self.update_by_ids(selector.ids, properties)
        if isinstance(selector, ByFilter):
            return await self.update_by_filter(selector.filter, properties)
        if isinstance(selector, ByQuery):
            raise OperationNotSupportedError("Update by query is not supported", operation="update")
        raise TypeError(f"Unsupported selector: {selector!r}")

    async def update_by_id(self, entity_id: str, properties: Properties) -> E:
        async def run() -> E:
            if not is_valid_identifier(entity_id):
                raise EntityNotFoundError(str(entity_id), operation="update_by_id")

            predicate = filters.from_identifier(entity_id)
            update = resolve_update(properties, utc_now())
            self._log_predicate("update_by_id", predicate, update)

            document = await self.collection.find_one_and_update(
                predicate,
                update,
                return_document=ReturnDocument.AFTER,
            )

            if document is None:
                raise EntityNotFoundError(entity_id, operation="update_by_id")

            return self._to_entity(document)

        entity = await self._execute("update_by_id", run)
        self._emit(EntityEvent.UPDATED, [entity])
        return entity

    async def update_by_ids(self, entity_ids: Sequence[str], properties: Properties) -> list[E]:
        async def run() -> list[E]:
            valid_ids = filter_valid_identifiers(entity_ids)
            if not valid_ids:
                return []

            predicate = filters.from_identifiers(valid_ids)
            update = resolve_update(properties, utc_now())
            self._log_predicate("update_by_ids", predicate, update)

            await self.collection.update_many(predicate, update)

            return self._to_entities(await self._find(predicate))

        entities = await self._execute("update_by_ids", run)
        self._emit(EntityEvent.UPDATED, entities)
        return entities

    async def update_by_filter(self, entity_filter: EntityFilter, properties: Properties) -> list[E]:
        raise OperationNotSupportedError("Update by filter is not supported", operation="update_by_filter")

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(self, selector: Selector) -> None:
        if isinstance(selector, ById):
            return await self.delete_by_id(selector.id)
        if isinstance(selector, ByIds):
            return await self.delete_by_ids(selector.ids)
        if isinstance(selector, ByFilter):
            return await self.delete_by_filter(selector.filter)
        if isinstance(selector, ByQuery):
            raise OperationNotSupportedError("Delete by query is not supported", operation="delete")
        raise TypeError(f"Unsupported selector: {selector!r}")

    async def delete_by_id(self, entity_id: str) -> None:
        async def run() -> list[str]:
            if not is_valid_identifier(entity_id):
                return []

            result = await self.collection.delete_one(filters.from_identifier(entity_id))
            return [entity_id] if result.deleted_count else []

        deleted_ids = await self._execute("delete_by_id", run)
        self._emit(EntityEvent.DELETED, deleted_ids)

    async def delete_by_ids(self, entity_ids: Sequence[str]) -> None:
        async def run() -> list[str]:
            valid_ids = filter_valid_identifiers(entity_ids)
            if not valid_ids:
                return []

            return await self._delete_many(filters.from_identifiers(valid_ids))

        deleted_ids = await self._execute("delete_by_ids", run)
        self._emit(EntityEvent.DELETED, deleted_ids)

    async def delete_by_filter(self, entity_filter: EntityFilter) -> None:
        async def run() -> list[str]:
            predicate = filters.from_entity_filter(entity_filter)
            self._log_predicate("delete_by_filter", predicate)
            return await self._delete_many(predicate)

        deleted_ids = await self._execute("delete_by_filter", run)
        self._emit(EntityEvent.DELETED, deleted_ids)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self, selector: Selector | None = None) -> E | list[E] | None:
        if selector is None:
            return await self.get_all()
        if isinstance(selector, ById):
            return await self.get_by_id(selector.id)
        if isinstance(selector, ByIds):
            return await self.get_by_ids(selector.ids)
        if isinstance(selector, ByFilter):
            return await self.get_by_filter(selector.filter)
        if isinstance(selector, ByQuery):
            return await self.get_by_query(selector.query)
        raise TypeError(f"Unsupported selector: {selector!r}")

    async def get_all(self) -> list[E]:
        async def run() -> list[E]:
            return self._to_entities(await self._find({}))

        return await self._execute("get_all", run)

    async def get_by_id(self, entity_id: str) -> E | None:
        async def run() -> E | None:
            if not is_valid_identifier(entity_id):
                return None

            document = await self.collection.find_one(filters.from_identifier(entity_id))
            if document is None:
                return None

            return self._to_entity(document)

        return await self._execute("get_by_id", run)

    async def get_by_ids(self, entity_ids: Sequence[str]) -> list[E]:
        async def run() -> list[E]:
            valid_ids = filter_valid_identifiers(entity_ids)
            if not valid_ids:
                return []

            return self._to_entities(await self._find(filters.from_identifiers(valid_ids)))

        return await self._execute("get_by_ids", run)

    async def get_by_filter(self, entity_filter: EntityFilter) -> list[E]:
        async def run() -> list[E]:
            predicate = filters.from_entity_filter(entity_filter)
            self._log_predicate("get_by_filter", predicate)
            return self._to_entities(await self._find(predicate))

        return await self._execute("get_by_filter", run)

    async def get_by_query(self, query: Any) -> list[E]:
        async def run() -> list[E]:
            return self._to_entities(await self._find(filters.from_query(query)))

        return await self._execute("get_by_query", run)

    # ------------------------------------------------------------------
    # Count
    # ------------------------------------------------------------------

    async def count(self, selector: ByFilter | ByQuery | None = None) -> int:
        if selector is None:
            return await self.count_all()
        if isinstance(selector, ByFilter):
            return await self.count_by_filter(selector.filter)
        if isinstance(selector, ByQuery):
            raise OperationNotSupportedError("Count by query is not supported", operation="count")
        raise TypeError(f"Unsupported selector: {selector!r}")

    async def count_all(self) -> int:
        async def run() -> int:
            return await self.collection.count_documents({})

        return await self._execute("count_all", run)

    async def count_by_filter(self, entity_filter: EntityFilter) -> int:
        async def run() -> int:
            predicate = filters.from_entity_filter(entity_filter)
            self._log_predicate("count_by_filter", predicate)
            return await self.collection.count_documents(predicate)

        return await self._execute("count_by_filter", run)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _execute(self, operation: str, callback: Callable[[], Awaitable[T]]) -> T:
        """Run a store operation, normalizing unexpected failures to RepositoryError."""
        with logfire.span(
            "repository.{operation}",
            operation=operation,
            collection=self.collection_name,
        ):
            try:
                return await callback()
            except RepositoryError:
                raise
            except Exception as e:
                logger.error(f"{operation} failed on collection {self.collection_name}: {e}")
                raise RepositoryError(
                    f"Repository operation {operation} failed: {e}",
                    operation=operation,
                ) from e

    async def _delete_many(self, predicate: Mapping[str, Any]) -> list[str]:
        """Delete every match, returning the ids of the documents that were removed.

        Matching ids are only read when deleted-listeners are registered.
        """
        matched_ids: list[str] = []
        if self._should_emit(EntityEvent.DELETED):
            documents = await self._find(predicate, {"_id": 1})
            matched_ids = [decode_identifier(document["_id"]) for document in documents]

        result = await self.collection.delete_many(predicate)
        return matched_ids if result.deleted_count else []

    async def _find(
        self,
        predicate: Mapping[str, Any],
        projection: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        return await self.collection.find(predicate, projection).to_list(length=None)

    def _to_entity(self, document: Mapping[str, Any]) -> E:
        return document_to_entity(document, self.entity_type)

    def _to_entities(self, documents: list[dict[str, Any]]) -> list[E]:
        return documents_to_entities(documents, self.entity_type)

    def _should_emit(self, event: EntityEvent) -> bool:
        return self.config.emit_events and self.events.has_listeners(event)

    def _emit(self, event: EntityEvent, payload: list[Any]) -> None:
        if payload and self._should_emit(event):
            self.events.emit(event, payload)

    def _log_predicate(self, operation: str, predicate: Mapping[str, Any], update: Mapping[str, Any] | None = None) -> None:
        if self.config.log_operations:
            logger.debug(f"{operation} on {self.collection_name}: predicate={predicate} update={update}")


def create_repository(
    collection_name: str,
    entity_type: type[E] = Entity,
    events: EntityEvents | None = None,
    settings: Settings | None = None,
) -> MongoRepository[E]:
    """Create a MongoRepository bound to a collection of the initialized client."""
    settings = settings or get_settings()
    return MongoRepository(
        get_collection(collection_name),
        entity_type=entity_type,
        events=events,
        config=settings.repository,
    )
