"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the local store.
This allows us to:
1. Keep everything on-device in SQLite in the app
2. Use in-memory storage for testing
3. Keep repositories decoupled from the storage implementation

The interface is intentionally simple - we're not building a full ORM.
Entities are stored whole, keyed by their kind and local id, with the
few columns the repositories filter on kept alongside.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional, TypeVar
from uuid import UUID

from app_finance.models.audit import AuditEvent
from app_finance.models.finance import ENTITY_TYPES, SyncStatus, SyncTrackedModel


T = TypeVar("T", bound=SyncTrackedModel)


def kind_of(model: type[SyncTrackedModel]) -> str:
    """Storage kind name of an entity class."""
    for kind, cls in ENTITY_TYPES.items():
        if issubclass(model, cls):
            return kind
    raise TypeError(f"Not a persisted entity type: {model.__name__}")


class LocalStore(ABC):
    """
    Abstract interface for the local object store.

    Returned entities are copies: changing one has no effect until it is
    passed back to ``save``.
    """

    @abstractmethod
    async def insert(self, entity: SyncTrackedModel) -> SyncTrackedModel:
        """
        Store a new entity.

        Raises:
            DuplicateError: If an entity of the same kind and id exists
        """
        pass

    @abstractmethod
    async def save(self, entity: SyncTrackedModel) -> SyncTrackedModel:
        """Insert or replace an entity."""
        pass

    @abstractmethod
    async def get(self, model: type[T], entity_id: str) -> Optional[T]:
        """
        Retrieve an entity by its local id.

        Returns:
            The entity if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_by_server_id(self, model: type[T], server_id: str) -> Optional[T]:
        pass

    @abstractmethod
    async def delete(self, model: type[SyncTrackedModel], entity_id: str) -> bool:
        """
        Remove an entity for good.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    async def list_entities(
        self,
        model: type[T],
        user_id: Optional[str] = None,
        sync_statuses: Optional[Iterable[SyncStatus]] = None,
    ) -> list[T]:
        """
        List entities of one kind.

        Args:
            model: Entity class to list
            user_id: Only this user's records
            sync_statuses: Only records in one of these states

        Returns:
            Matching entities in insertion order
        """
        pass

    @abstractmethod
    async def count(
        self,
        model: type[SyncTrackedModel],
        user_id: Optional[str] = None,
        sync_statuses: Optional[Iterable[SyncStatus]] = None,
    ) -> int:
        pass

    @abstractmethod
    async def get_meta(self, key: str) -> Optional[str]:
        """Small key/value settings kept with the data (e.g. last sync time)."""
        pass

    @abstractmethod
    async def set_meta(self, key: str, value: str) -> None:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one sync pass).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
