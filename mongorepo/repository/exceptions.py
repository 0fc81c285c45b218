"""Repository exceptions."""


class RepositoryError(Exception):
    """Base repository exception. Every store failure surfaces as this kind."""

    def __init__(self, message: str = "Repository operation failed", operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class EntityNotFoundError(RepositoryError):
    """Update targeted an entity that does not exist."""

    def __init__(self, entity_id: str, operation: str | None = None):
        super().__init__(
            f"Could not update entity. Could not find an entity with id {entity_id}.",
            operation=operation,
        )
        self.entity_id = entity_id


class OperationNotSupportedError(RepositoryError):
    """Capability not implemented by this repository."""

    pass
