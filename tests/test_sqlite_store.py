"""Tests for the SQLite store and audit storage, on a temporary file."""

import threading
from datetime import date
from decimal import Decimal

import pytest

from app_finance.models.audit import AuditEventBuilder
from app_finance.models.finance import (
    Category,
    CreditCard,
    SyncStatus,
    Transaction,
    TransactionType,
)
from app_finance.audit import create_correlation_id
import app_finance.storage.sqlite_store as sqlite_module
from app_finance.storage import DuplicateError, SQLiteAuditStorage, SQLiteStore


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteStore:
    return SQLiteStore(tmp_path / "data" / "finance.sqlite3")


def category(name="Lazer", user_id="USER-1", **extra) -> Category:
    return Category(user_id=user_id, name=name, color_hex="#FFD93D", **extra)


class TestSQLiteStore:
    """Tests for entity persistence."""

    async def test_insert_and_get(self, sqlite_store):
        """Test a round trip through the payload column."""
        tx = Transaction(
            user_id="USER-1",
            type=TransactionType.EXPENSE,
            amount=Decimal("12.34"),
            date=date(2025, 3, 10),
            description="Padaria",
            installments=2,
        )
        await sqlite_store.insert(tx)
        loaded = await sqlite_store.get(Transaction, tx.id)
        assert loaded == tx
        assert loaded.amount == Decimal("12.34")

    async def test_insert_duplicate(self, sqlite_store):
        """Test that a second insert of the same id fails."""
        item = category()
        await sqlite_store.insert(item)
        with pytest.raises(DuplicateError):
            await sqlite_store.insert(item)

    async def test_kinds_are_separate(self, sqlite_store):
        """Test that the same id under another kind is not found."""
        item = category()
        await sqlite_store.insert(item)
        assert await sqlite_store.get(CreditCard, item.id) is None

    async def test_save_upserts_and_keeps_order(self, sqlite_store):
        """Test that updating a row keeps its listing position."""
        first, second = category("A"), category("B")
        await sqlite_store.insert(first)
        await sqlite_store.insert(second)
        first.mark_as_synced("SRV-A")
        await sqlite_store.save(first)
        listed = await sqlite_store.list_entities(Category)
        assert [c.name for c in listed] == ["A", "B"]
        assert listed[0].sync_status is SyncStatus.SYNCED

    async def test_find_by_server_id(self, sqlite_store):
        """Test the server id lookup."""
        item = category()
        item.mark_as_synced("SRV-1")
        await sqlite_store.save(item)
        assert (await sqlite_store.find_by_server_id(Category, "SRV-1")).id == item.id
        assert await sqlite_store.find_by_server_id(Category, "SRV-2") is None

    async def test_filters_and_count(self, sqlite_store):
        """Test user and status filters."""
        synced = category("A")
        synced.mark_as_synced("SRV-A")
        await sqlite_store.insert(synced)
        await sqlite_store.insert(category("B"))
        await sqlite_store.insert(category("C", user_id="USER-2"))

        assert await sqlite_store.count(Category) == 3
        assert await sqlite_store.count(Category, user_id="USER-1") == 2
        pending = await sqlite_store.list_entities(
            Category, user_id="USER-1", sync_statuses=[SyncStatus.PENDING]
        )
        assert [c.name for c in pending] == ["B"]
        assert await sqlite_store.count(Category, sync_statuses=[]) == 0

    async def test_delete(self, sqlite_store):
        """Test hard deletes."""
        item = category()
        await sqlite_store.insert(item)
        assert await sqlite_store.delete(Category, item.id) is True
        assert await sqlite_store.delete(Category, item.id) is False

    async def test_meta(self, sqlite_store):
        """Test the key/value table."""
        assert await sqlite_store.get_meta("last_sync_at") is None
        await sqlite_store.set_meta("last_sync_at", "2025-03-10T12:00:00+00:00")
        await sqlite_store.set_meta("last_sync_at", "2025-03-11T12:00:00+00:00")
        assert await sqlite_store.get_meta("last_sync_at") == "2025-03-11T12:00:00+00:00"

    async def test_data_survives_reopen(self, tmp_path):
        """Test that a new store on the same file sees the data."""
        path = tmp_path / "finance.sqlite3"
        item = category()
        await SQLiteStore(path).insert(item)
        assert await SQLiteStore(path).get(Category, item.id) == item

    async def test_runs_in_worker_thread(self, sqlite_store, monkeypatch):
        """Test that SQLite work happens outside the event loop thread."""
        threads = []
        connect = sqlite_module._connect

        def recording_connect(path):
            threads.append(threading.get_ident())
            return connect(path)

        monkeypatch.setattr(sqlite_module, "_connect", recording_connect)
        item = category()
        await sqlite_store.insert(item)
        await sqlite_store.get(Category, item.id)
        await sqlite_store.delete(Category, item.id)

        assert len(threads) == 3
        assert threading.get_ident() not in threads


class TestSQLiteAuditStorage:
    """Tests for the audit trail table."""

    async def test_append_and_query(self, tmp_path):
        """Test appending and reading events back."""
        storage = SQLiteAuditStorage(tmp_path / "finance.sqlite3")
        correlation_id = create_correlation_id()
        await storage.append_event(AuditEventBuilder.sync_started(correlation_id, 2))
        await storage.append_event(
            AuditEventBuilder.push_failed("transaction", "TX-1", "HTTP 500", correlation_id)
        )
        await storage.append_event(AuditEventBuilder.entity_created("category", "C-1", "Pets"))

        by_correlation = await storage.get_events_by_correlation_id(correlation_id)
        assert len(by_correlation) == 2
        assert by_correlation[0].details == {"pending": 2}

        by_entity = await storage.get_events_by_entity("transaction", "TX-1")
        assert by_entity[0].error_message == "HTTP 500"

        recent = await storage.get_recent_events(limit=1)
        assert recent[0].entity_id == "C-1"
        assert recent[0].is_user_action is True
