"""
SQLite Storage Implementation

The on-device store. Each entity is kept whole as its pydantic JSON in an
``entities`` table, next to the columns the repositories filter on:

    entities(kind, id, user_id, server_id, sync_status, updated_at, payload)
    meta(key, value)
    audit_events(event_id, timestamp, event_type, ..., details_json)

Schema creation is idempotent and runs when the store is constructed.
A connection is opened per operation and always closed. Operations run
in a worker thread via asyncio.to_thread.
"""

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Union
from uuid import UUID

from app_finance.models.audit import AuditEvent, AuditEventType, AuditSeverity
from app_finance.models.finance import SyncStatus, SyncTrackedModel, entity_kind
from app_finance.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LocalStore,
    StorageError,
    T,
    kind_of,
)


AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _connect(path: Path) -> sqlite3.Connection:
    """
    Open a SQLite connection.

    The caller is responsible for closing the connection.
    """
    try:
        return sqlite3.connect(str(path))
    except sqlite3.Error as e:
        raise StorageError(f"Could not open database at {path}: {e}")


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS entities (
            kind         TEXT NOT NULL,
            id           TEXT NOT NULL,
            user_id      TEXT NOT NULL,
            server_id    TEXT,
            sync_status  TEXT NOT NULL,
            updated_at   TEXT NOT NULL,
            payload      TEXT NOT NULL,  -- pydantic JSON of the entity
            PRIMARY KEY (kind, id)
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS meta (
            key    TEXT PRIMARY KEY,
            value  TEXT NOT NULL
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS audit_events (
            seq             INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id        TEXT NOT NULL UNIQUE,
            timestamp       TEXT NOT NULL,
            event_type      TEXT NOT NULL,
            severity        TEXT NOT NULL,
            entity_type     TEXT,
            entity_id       TEXT,
            correlation_id  TEXT,
            description     TEXT NOT NULL,
            details_json    TEXT,
            error_message   TEXT,
            is_user_action  TEXT NOT NULL
        );
        """
    )

    conn.execute("CREATE INDEX IF NOT EXISTS idx_entities_user ON entities(kind, user_id);")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_entities_server ON entities(kind, server_id);")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_entities_status ON entities(kind, sync_status);")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_correlation ON audit_events(correlation_id);")
    conn.commit()


def init_database(path: Union[str, Path]) -> Path:
    """Create the database file and schema if needed. Returns the resolved path."""
    db_path = Path(path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = _connect(db_path)
    try:
        _create_schema_if_needed(conn)
    except sqlite3.Error as e:
        raise StorageError(f"Failed to create schema: {e}")
    finally:
        conn.close()
    return db_path


def _row_values(entity: SyncTrackedModel) -> tuple:
    return (
        entity_kind(entity),
        entity.id,
        entity.user_id,
        entity.server_id,
        entity.sync_status.value,
        entity.updated_at.isoformat(),
        entity.model_dump_json(),
    )


class SQLiteStore(LocalStore):
    """LocalStore backed by a SQLite file."""

    def __init__(self, path: Union[str, Path]):
        self._path = init_database(path)

    @property
    def path(self) -> Path:
        return self._path

    def _run(self, sql: str, params: tuple = (), commit: bool = False) -> list[tuple]:
        conn = _connect(self._path)
        try:
            cur = conn.execute(sql, params)
            rows = cur.fetchall()
            if commit:
                conn.commit()
            return rows
        except sqlite3.IntegrityError as e:
            raise DuplicateError(str(e))
        except sqlite3.Error as e:
            raise StorageError(f"SQLite operation failed: {e}")
        finally:
            conn.close()

    async def _execute(self, sql: str, params: tuple = (), commit: bool = False) -> list[tuple]:
        return await asyncio.to_thread(self._run, sql, params, commit)

    async def insert(self, entity: SyncTrackedModel) -> SyncTrackedModel:
        await self._execute(
            "INSERT INTO entities (kind, id, user_id, server_id, sync_status, updated_at, payload) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            _row_values(entity),
            commit=True,
        )
        return entity

    async def save(self, entity: SyncTrackedModel) -> SyncTrackedModel:
        await self._execute(
            "INSERT INTO entities "
            "(kind, id, user_id, server_id, sync_status, updated_at, payload) "
            "VALUES (?, ?, ?, ?, ?, ?, ?) "
            # upsert keeps the rowid, so listing order survives updates
            "ON CONFLICT(kind, id) DO UPDATE SET "
            "user_id = excluded.user_id, server_id = excluded.server_id, "
            "sync_status = excluded.sync_status, updated_at = excluded.updated_at, "
            "payload = excluded.payload",
            _row_values(entity),
            commit=True,
        )
        return entity

    async def get(self, model: type[T], entity_id: str) -> Optional[T]:
        rows = await self._execute(
            "SELECT payload FROM entities WHERE kind = ? AND id = ?",
            (kind_of(model), entity_id),
        )
        return model.model_validate_json(rows[0][0]) if rows else None

    async def find_by_server_id(self, model: type[T], server_id: str) -> Optional[T]:
        rows = await self._execute(
            "SELECT payload FROM entities WHERE kind = ? AND server_id = ? LIMIT 1",
            (kind_of(model), server_id),
        )
        return model.model_validate_json(rows[0][0]) if rows else None

    async def delete(self, model: type[SyncTrackedModel], entity_id: str) -> bool:
        return await asyncio.to_thread(self._delete_row, kind_of(model), entity_id)

    def _delete_row(self, kind: str, entity_id: str) -> bool:
        conn = _connect(self._path)
        try:
            cur = conn.execute(
                "DELETE FROM entities WHERE kind = ? AND id = ?",
                (kind, entity_id),
            )
            conn.commit()
            return cur.rowcount > 0
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete {entity_id}: {e}")
        finally:
            conn.close()

    def _where(
        self,
        model: type[SyncTrackedModel],
        user_id: Optional[str],
        sync_statuses: Optional[Iterable[SyncStatus]],
    ) -> tuple[str, tuple]:
        clauses = ["kind = ?"]
        params: list = [kind_of(model)]
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if sync_statuses is not None:
            statuses = [s.value for s in sync_statuses]
            if not statuses:
                clauses.append("0")
            else:
                clauses.append(f"sync_status IN ({', '.join('?' for _ in statuses)})")
                params.extend(statuses)
        return " AND ".join(clauses), tuple(params)

    async def list_entities(
        self,
        model: type[T],
        user_id: Optional[str] = None,
        sync_statuses: Optional[Iterable[SyncStatus]] = None,
    ) -> list[T]:
        where, params = self._where(model, user_id, sync_statuses)
        rows = await self._execute(
            f"SELECT payload FROM entities WHERE {where} ORDER BY rowid",
            params,
        )
        return [model.model_validate_json(row[0]) for row in rows]

    async def count(
        self,
        model: type[SyncTrackedModel],
        user_id: Optional[str] = None,
        sync_statuses: Optional[Iterable[SyncStatus]] = None,
    ) -> int:
        where, params = self._where(model, user_id, sync_statuses)
        rows = await self._execute(f"SELECT COUNT(*) FROM entities WHERE {where}", params)
        return int(rows[0][0])

    async def get_meta(self, key: str) -> Optional[str]:
        rows = await self._execute("SELECT value FROM meta WHERE key = ?", (key,))
        return rows[0][0] if rows else None

    async def set_meta(self, key: str, value: str) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
            (key, value),
            commit=True,
        )


class SQLiteAuditStorage(AuditStorageInterface):
    """Audit events in the same SQLite file as the data."""

    def __init__(self, path: Union[str, Path]):
        self._path = init_database(path)

    def _query(self, sql: str, params: tuple = ()) -> list[AuditEvent]:
        conn = _connect(self._path)
        try:
            rows = conn.execute(
                f"SELECT {', '.join(AUDIT_COLUMNS)} FROM audit_events {sql}",
                params,
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read audit events: {e}")
        finally:
            conn.close()
        return [self._row_to_event(row) for row in rows]

    async def append_event(self, event: AuditEvent) -> bool:
        return await asyncio.to_thread(self._append, event)

    def _append(self, event: AuditEvent) -> bool:
        conn = _connect(self._path)
        try:
            conn.execute(
                f"INSERT INTO audit_events ({', '.join(AUDIT_COLUMNS)}) "
                f"VALUES ({', '.join('?' for _ in AUDIT_COLUMNS)})",
                tuple(event.to_row()),
            )
            conn.commit()
            return True
        except sqlite3.Error as e:
            raise StorageError(f"Failed to append audit event: {e}")
        finally:
            conn.close()

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return await asyncio.to_thread(
            self._query,
            "WHERE correlation_id = ? ORDER BY seq",
            (str(correlation_id),),
        )

    async def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        return await asyncio.to_thread(
            self._query,
            "WHERE entity_type = ? AND entity_id = ? ORDER BY seq",
            (entity_type, entity_id),
        )

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return await asyncio.to_thread(self._query, "ORDER BY seq DESC LIMIT ?", (limit,))

    def _row_to_event(self, row: tuple) -> AuditEvent:
        """Convert a database row back to an AuditEvent."""
        data = dict(zip(AUDIT_COLUMNS, row))
        return AuditEvent(
            event_id=UUID(data["event_id"]),
            timestamp=data["timestamp"],
            event_type=AuditEventType(data["event_type"]),
            severity=AuditSeverity(data["severity"]),
            entity_type=data["entity_type"] or None,
            entity_id=data["entity_id"] or None,
            correlation_id=UUID(data["correlation_id"]) if data["correlation_id"] else None,
            description=data["description"],
            details=json.loads(data["details_json"]) if data["details_json"] else {},
            error_message=data["error_message"] or None,
            is_user_action=data["is_user_action"] == "True",
        )
