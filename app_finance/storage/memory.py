"""
In-memory storage.

Used by the tests and as a scratch store. Entities are deep-copied on the
way in and out so callers see the same semantics as with SQLite.
"""

from typing import Iterable, Optional
from uuid import UUID

from app_finance.models.audit import AuditEvent
from app_finance.models.finance import SyncStatus, SyncTrackedModel, entity_kind
from app_finance.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LocalStore,
    T,
    kind_of,
)


class InMemoryStore(LocalStore):
    """Dict-backed LocalStore."""

    def __init__(self):
        # kind -> {id: entity}; dicts keep insertion order
        self._data: dict[str, dict[str, SyncTrackedModel]] = {}
        self._meta: dict[str, str] = {}

    def _bucket(self, kind: str) -> dict[str, SyncTrackedModel]:
        return self._data.setdefault(kind, {})

    async def insert(self, entity: SyncTrackedModel) -> SyncTrackedModel:
        bucket = self._bucket(entity_kind(entity))
        if entity.id in bucket:
            raise DuplicateError(f"{entity_kind(entity)} {entity.id} already exists")
        bucket[entity.id] = entity.model_copy(deep=True)
        return entity

    async def save(self, entity: SyncTrackedModel) -> SyncTrackedModel:
        self._bucket(entity_kind(entity))[entity.id] = entity.model_copy(deep=True)
        return entity

    async def get(self, model: type[T], entity_id: str) -> Optional[T]:
        found = self._bucket(kind_of(model)).get(entity_id)
        return found.model_copy(deep=True) if found is not None else None

    async def find_by_server_id(self, model: type[T], server_id: str) -> Optional[T]:
        for entity in self._bucket(kind_of(model)).values():
            if entity.server_id == server_id:
                return entity.model_copy(deep=True)
        return None

    async def delete(self, model: type[SyncTrackedModel], entity_id: str) -> bool:
        return self._bucket(kind_of(model)).pop(entity_id, None) is not None

    def _matching(
        self,
        model: type[SyncTrackedModel],
        user_id: Optional[str],
        sync_statuses: Optional[Iterable[SyncStatus]],
    ) -> list[SyncTrackedModel]:
        statuses = set(sync_statuses) if sync_statuses is not None else None
        return [
            entity for entity in self._bucket(kind_of(model)).values()
            if (user_id is None or entity.user_id == user_id)
            and (statuses is None or entity.sync_status in statuses)
        ]

    async def list_entities(
        self,
        model: type[T],
        user_id: Optional[str] = None,
        sync_statuses: Optional[Iterable[SyncStatus]] = None,
    ) -> list[T]:
        return [e.model_copy(deep=True) for e in self._matching(model, user_id, sync_statuses)]

    async def count(
        self,
        model: type[SyncTrackedModel],
        user_id: Optional[str] = None,
        sync_statuses: Optional[Iterable[SyncStatus]] = None,
    ) -> int:
        return len(self._matching(model, user_id, sync_statuses))

    async def get_meta(self, key: str) -> Optional[str]:
        return self._meta.get(key)

    async def set_meta(self, key: str, value: str) -> None:
        self._meta[key] = value


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
