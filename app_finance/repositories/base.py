"""
Local-first repository base.

Every write lands in the local store first with a ``pending`` sync status;
the SyncManager pushes it to the server later. Deleting a record that the
server has never seen removes it at once. Deleting one that the server
knows only marks it ``pending_delete`` so the next sync can delete it
remotely.
"""

from typing import Any, Generic, Optional

from app_finance.audit.logger import AuditLogger
from app_finance.models.finance import SyncStatus, utcnow
from app_finance.storage.interface import LocalStore, NotFoundError, T, kind_of


PENDING_STATES = (SyncStatus.PENDING, SyncStatus.PENDING_DELETE)

# Fields the sync layer owns; edits through a repository never touch them.
_PROTECTED_FIELDS = {
    "id", "server_id", "user_id", "created_at", "updated_at",
    "sync_status", "last_sync_attempt", "sync_error",
}


class BaseRepository(Generic[T]):
    """Shared CRUD over one entity type."""

    model: type[T]

    def __init__(
        self,
        store: LocalStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()

    @property
    def kind(self) -> str:
        return kind_of(self.model)

    async def get(self, entity_id: str) -> Optional[T]:
        """Look up by local id, falling back to the server id."""
        found = await self._store.get(self.model, entity_id)
        if found is None:
            found = await self._store.find_by_server_id(self.model, entity_id)
        return found

    async def require(self, entity_id: str) -> T:
        entity = await self.get(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.kind} {entity_id} not found")
        return entity

    async def _create(self, entity: T, label: str) -> T:
        await self._store.insert(entity)
        await self._audit.log_entity_created(self.kind, entity.id, label)
        return entity

    async def _apply(self, entity: T, changes: dict[str, Any]) -> T:
        """
        Apply field changes, re-validating the whole entity.

        Validation runs on the merged values, so changing two related
        fields at once (e.g. total and paid installments) is never
        rejected half-way.
        """
        unknown = set(changes) - set(self.model.model_fields)
        if unknown:
            raise ValueError(f"Unknown {self.kind} fields: {', '.join(sorted(unknown))}")
        protected = set(changes) & _PROTECTED_FIELDS
        if protected:
            raise ValueError(f"Cannot edit sync fields: {', '.join(sorted(protected))}")

        data = entity.model_dump()
        data.update(changes)
        updated = self.model.model_validate(data)
        updated.mark_as_modified()
        await self._store.save(updated)
        await self._audit.log_entity_updated(self.kind, updated.id, sorted(changes))
        return updated

    async def update(self, entity_id: str, **changes: Any) -> T:
        """
        Update fields of a record and mark it for sync.

        Raises:
            NotFoundError: If the record doesn't exist
            ValueError: If a field is unknown or a value is invalid
        """
        entity = await self.require(entity_id)
        return await self._apply(entity, changes)

    async def delete(self, entity_id: str) -> bool:
        """
        Delete a record.

        Returns True for a soft delete (the server still has to be told),
        False when the record was removed right away.
        """
        entity = await self.require(entity_id)
        if entity.server_id is not None:
            entity.mark_for_deletion()
            await self._store.save(entity)
            soft = True
        else:
            await self._store.delete(self.model, entity.id)
            soft = False
        await self._audit.log_entity_deleted(self.kind, entity.id, soft)
        return soft

    async def pending(self, user_id: Optional[str] = None) -> list[T]:
        """Records waiting to be pushed (pending or pending_delete)."""
        return await self._store.list_entities(
            self.model, user_id=user_id, sync_statuses=PENDING_STATES
        )

    async def pending_count(self, user_id: Optional[str] = None) -> int:
        return await self._store.count(
            self.model, user_id=user_id, sync_statuses=PENDING_STATES
        )

    async def _reorder(self, ordered_ids: list[str]) -> list[T]:
        """Set display_order to each record's position. Local only."""
        reordered = []
        for index, entity_id in enumerate(ordered_ids):
            entity = await self.require(entity_id)
            if entity.display_order != index:
                entity.display_order = index
                entity.updated_at = utcnow()
                await self._store.save(entity)
            reordered.append(entity)
        return reordered
