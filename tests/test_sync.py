"""
Tests for the sync manager.

The resource APIs are replaced by in-process fakes that record what was
pushed and serve a fixed server state for the pull.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import Awaitable, Callable, Optional

import pytest

from app_finance.models.api import (
    CategoryDTO,
    CategoryResponse,
    CreditCardResponse,
    FixedBillResponse,
    TransactionResponse,
)
from app_finance.models.audit import AuditEventType
from app_finance.models.finance import (
    Bank,
    CardBrand,
    CardType,
    Category,
    CreditCard,
    FixedBill,
    FixedBillCategory,
    SyncStatus,
    Transaction,
    TransactionType,
)
from app_finance.models.month import MonthRef
from app_finance.services.api import HTTPStatusError, NetworkError
from app_finance.sync import SyncError, SyncManager


class FakeResourceAPI:
    """Records pushes; ``rows`` is what the server lists."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.created: list[tuple] = []
        self.updated: list = []
        self.deleted: list[str] = []
        self.fail_on: set[str] = set()
        self.list_error: Optional[Exception] = None
        self.before_list: Optional[Callable[[], Awaitable[None]]] = None

    def _maybe_fail(self, entity) -> None:
        if entity.id in self.fail_on:
            raise HTTPStatusError(500, "boom")

    def response_for(self, entity):
        return SimpleNamespace(id=f"SRV-{entity.id}")

    async def get_all(self):
        if self.before_list is not None:
            await self.before_list()
        if self.list_error is not None:
            raise self.list_error
        return list(self.rows)

    async def create(self, entity, **kwargs):
        self._maybe_fail(entity)
        self.created.append((entity, kwargs))
        return self.response_for(entity)

    async def update(self, entity):
        self._maybe_fail(entity)
        self.updated.append(entity)

    async def delete(self, server_id: str) -> None:
        self.deleted.append(server_id)


class FakeTransactionsAPI(FakeResourceAPI):
    def __init__(self, rows=None):
        super().__init__(rows)
        self.months: list[MonthRef] = []
        self.category_updates: list[tuple[str, str]] = []
        self.ai_category: Optional[CategoryDTO] = None

    def response_for(self, tx: Transaction) -> TransactionResponse:
        return TransactionResponse(
            id=f"SRV-{tx.id}",
            type=tx.type.value,
            amount=float(tx.amount),
            date=tx.date.isoformat(),
            description=tx.description,
            category=self.ai_category,
            ai_confidence=0.9 if self.ai_category else None,
            needs_user_review=False if self.ai_category else None,
        )

    async def get_by_month(self, month):
        self.months.append(month)
        return await self.get_all()

    async def update_category(self, transaction_id: str, category_id: str):
        self.category_updates.append((transaction_id, category_id))


@pytest.fixture
def apis():
    return SimpleNamespace(
        categories=FakeResourceAPI(),
        cards=FakeResourceAPI(),
        transactions=FakeTransactionsAPI(),
        bills=FakeResourceAPI(),
    )


@pytest.fixture
def manager(store, apis, audit_logger) -> SyncManager:
    return SyncManager(
        store, apis.categories, apis.cards, apis.transactions, apis.bills,
        audit_logger=audit_logger,
    )


MARCH = MonthRef(2025, 3)


def category(name="Lazer", color="#FFD93D", **extra) -> Category:
    return Category(user_id="USER-1", name=name, color_hex=color, **extra)


def expense(description="Padaria", amount="10.00", **extra) -> Transaction:
    return Transaction(
        user_id="USER-1", type=TransactionType.EXPENSE, amount=Decimal(amount),
        date=date(2025, 3, 10), description=description, **extra,
    )


async def synced(store, entity, server_id):
    entity.mark_as_synced(server_id)
    await store.insert(entity)
    return entity


class TestPush:
    """Tests for pushing local changes."""

    async def test_pending_entity_is_created(self, manager, store, apis, user_id):
        """Test that a new category gets its server id."""
        pets = category("Pets")
        await store.insert(pets)

        report = await manager.sync_all(user_id, MARCH)

        stored = await store.get(Category, pets.id)
        assert stored.sync_status is SyncStatus.SYNCED
        assert stored.server_id == f"SRV-{pets.id}"
        assert report.pushed == 1
        assert await manager.pending_changes_count(user_id) == 0

    async def test_synced_entity_with_edit_is_updated(self, manager, store, apis, user_id):
        """Test that an edited synced record is sent as an update."""
        bill = FixedBill(user_id=user_id, name="Internet", amount=Decimal("100"), due_day=20)
        bill.mark_as_synced("SRV-B")
        bill.mark_as_modified()
        await store.insert(bill)

        await manager.sync_all(user_id, MARCH)

        assert [b.id for b in apis.bills.updated] == [bill.id]
        assert apis.bills.created == []
        assert (await store.get(FixedBill, bill.id)).sync_status is SyncStatus.SYNCED

    async def test_pending_delete_is_deleted_remotely(self, manager, store, apis, user_id):
        """Test that a soft-deleted record is deleted on the server, then locally."""
        old = await synced(store, category("Velha"), "SRV-OLD")
        old.mark_for_deletion()
        await store.save(old)

        report = await manager.sync_all(user_id, MARCH)

        assert apis.categories.deleted == ["SRV-OLD"]
        assert await store.get(Category, old.id) is None
        assert report.deleted == 1

    async def test_push_failure_is_recorded_and_pass_goes_on(
        self, manager, store, apis, user_id, audit_storage
    ):
        """Test that one failing entity does not stop the others."""
        bad, good = category("Ruim"), category("Boa")
        await store.insert(bad)
        await store.insert(good)
        apis.categories.fail_on.add(bad.id)

        report = await manager.sync_all(user_id, MARCH)

        stored_bad = await store.get(Category, bad.id)
        assert stored_bad.sync_status is SyncStatus.PENDING
        assert "boom" in stored_bad.sync_error
        assert (await store.get(Category, good.id)).sync_status is SyncStatus.SYNCED
        assert report.has_failures
        assert report.pushed == 1
        push_failed = [e for e in audit_storage.events if e.event_type is AuditEventType.PUSH_FAILED]
        assert push_failed[0].entity_id == bad.id

    async def test_transaction_refs_resolved_to_server_ids(self, manager, store, apis, user_id):
        """Test that categories are pushed first and referenced by server id."""
        food = category("Alimentação")
        await store.insert(food)
        card = await synced(store, CreditCard(user_id=user_id, card_name="Roxinho"), "SRV-CARD")
        tx = expense(category_id=food.id, credit_card_id=card.id)
        await store.insert(tx)

        await manager.sync_all(user_id, MARCH)

        _, kwargs = apis.transactions.created[0]
        assert kwargs == {
            "category_server_id": f"SRV-{food.id}",
            "card_server_id": "SRV-CARD",
        }
        stored = await store.get(Transaction, tx.id)
        assert stored.category_id == food.id

    async def test_server_categorization_mapped_back(self, manager, store, apis, user_id):
        """Test that the backend's AI category lands as the local category id."""
        food = await synced(store, category("Alimentação"), "SRV-FOOD")
        tx = expense()
        await store.insert(tx)
        apis.transactions.ai_category = CategoryDTO(
            id="SRV-FOOD", name="Alimentação", color_hex="#FF6B6B"
        )

        await manager.sync_all(user_id, MARCH)

        stored = await store.get(Transaction, tx.id)
        assert stored.category_id == food.id
        assert stored.ai_confidence == 0.9
        assert stored.needs_user_review is False

    async def test_transaction_category_change_pushed(self, manager, store, apis, user_id):
        """Test that a recategorized transaction is patched by server ids."""
        food = await synced(store, category("Alimentação"), "SRV-FOOD")
        tx = expense(category_id=food.id)
        tx.mark_as_synced("SRV-TX")
        tx.mark_as_modified()
        await store.insert(tx)

        await manager.sync_all(user_id, MARCH)

        assert apis.transactions.category_updates == [("SRV-TX", "SRV-FOOD")]


class TestPull:
    """Tests for pulling the server state."""

    async def test_seeded_default_merged_by_name(self, manager, store, apis, user_id):
        """Test that a local default becomes the server's category instead of a twin."""
        default = category("Alimentação", sync_status=SyncStatus.SYNCED, display_order=0)
        await store.insert(default)
        apis.categories.rows = [
            CategoryResponse(id="SRV-FOOD", name="alimentacao", color_hex="#FF0000"),
        ]

        await manager.sync_all(user_id, MARCH)

        stored = await store.list_entities(Category, user_id=user_id)
        assert len(stored) == 1
        assert stored[0].server_id == "SRV-FOOD"
        assert stored[0].color_hex == "#FF0000"
        assert stored[0].name == "Alimentação"

    async def test_new_server_category_goes_last(self, manager, store, apis, user_id):
        """Test that pulled categories are appended to the local order."""
        await synced(store, category("Lazer", display_order=4), "SRV-1")
        apis.categories.rows = [
            CategoryResponse(id="SRV-1", name="Lazer", color_hex="#FFD93D"),
            CategoryResponse(id="SRV-2", name="Pets", color_hex="#14B8A6"),
        ]

        report = await manager.sync_all(user_id, MARCH)

        pets = await store.find_by_server_id(Category, "SRV-2")
        assert pets.display_order == 5
        assert pets.sync_status is SyncStatus.SYNCED
        assert report.pulled == 1

    async def test_synced_entity_refreshed(self, manager, store, apis, user_id):
        """Test that server changes overwrite a synced record."""
        local = await synced(store, category("Lazer", color="#111111", display_order=3), "SRV-1")
        apis.categories.rows = [CategoryResponse(id="SRV-1", name="Lazer", color_hex="#222222")]

        report = await manager.sync_all(user_id, MARCH)

        stored = await store.get(Category, local.id)
        assert stored.color_hex == "#222222"
        assert stored.display_order == 3
        assert report.pulled == 1

    async def test_pending_edit_not_overwritten(self, manager, store, apis, user_id):
        """Test that a local edit waiting for push wins over the server."""
        local = category("Lazer local")
        local.mark_as_synced("SRV-1")
        local.mark_as_modified()
        await store.insert(local)
        apis.categories.fail_on.add(local.id)
        apis.categories.rows = [CategoryResponse(id="SRV-1", name="Lazer", color_hex="#222222")]

        await manager.sync_all(user_id, MARCH)

        assert (await store.get(Category, local.id)).name == "Lazer local"

    async def test_invalid_server_row_skipped(self, manager, store, apis, user_id):
        """Test that a row that fails validation is reported, not stored."""
        apis.categories.rows = [
            CategoryResponse(id="SRV-BAD", name="Ruim", color_hex="red"),
            CategoryResponse(id="SRV-OK", name="Boa", color_hex="#14B8A6"),
        ]

        report = await manager.sync_all(user_id, MARCH)

        assert await store.find_by_server_id(Category, "SRV-BAD") is None
        assert await store.find_by_server_id(Category, "SRV-OK") is not None
        assert report.failures == ["invalid server row Ruim"]

    async def test_cards_map_unknown_enums(self, manager, store, apis, user_id):
        """Test enum fallbacks for unknown brand and type."""
        apis.cards.rows = [CreditCardResponse(
            id="SRV-C", card_name="Roxinho", brand="Diners", card_type="Infinite",
            bank="Nubank", payment_day=10, closing_day=3, limit_amount=5000.0,
        )]

        await manager.sync_all(user_id, MARCH)

        card = await store.find_by_server_id(CreditCard, "SRV-C")
        assert card.brand is CardBrand.OTHER
        assert card.card_type is CardType.STANDARD
        assert card.bank is Bank.NUBANK
        assert card.limit_amount == Decimal("5000.00")

    async def test_bills_map_category(self, manager, store, apis, user_id):
        """Test that pt-BR category names from the server map onto the enum."""
        apis.bills.rows = [FixedBillResponse(
            id="SRV-B", name="Aluguel", amount=1500.0, due_day=5, category="Moradia",
        )]

        await manager.sync_all(user_id, MARCH)

        bill = await store.find_by_server_id(FixedBill, "SRV-B")
        assert bill.category is FixedBillCategory.HOUSING
        assert bill.amount == Decimal("1500.00")

    async def test_transactions_pulled_for_month(self, manager, store, apis, user_id):
        """Test the month filter and category id mapping."""
        food = await synced(store, category("Alimentação"), "SRV-FOOD")
        apis.transactions.rows = [TransactionResponse(
            id="SRV-TX", type="expense", amount=42.5, date="2025-03-02T10:00:00Z",
            description="Restaurante", category_id="SRV-FOOD",
        )]

        await manager.sync_all(user_id, MARCH)

        assert apis.transactions.months == [MARCH]
        tx = await store.find_by_server_id(Transaction, "SRV-TX")
        assert tx.category_id == food.id
        assert tx.date == date(2025, 3, 2)
        assert tx.amount == Decimal("42.50")

    async def test_unsynced_duplicate_not_pulled(self, manager, store, apis, user_id):
        """Test that a server row matching an unpushed local one is skipped."""
        local = expense("Padaria", "10.00")
        await store.insert(local)
        apis.transactions.fail_on.add(local.id)
        apis.transactions.rows = [TransactionResponse(
            id="SRV-TX", type="expense", amount=10.0, date="2025-03-10",
            description="Padaria",
        )]

        await manager.sync_all(user_id, MARCH)

        assert await store.count(Transaction, user_id=user_id) == 1


class TestSyncPass:
    """Tests for the pass as a whole."""

    async def test_offline_skips(self, store, apis, audit_logger, user_id):
        """Test that nothing is sent without connectivity."""
        await store.insert(category("Pets"))
        manager = SyncManager(
            store, apis.categories, apis.cards, apis.transactions, apis.bills,
            is_online=lambda: False, audit_logger=audit_logger,
        )

        report = await manager.sync_all(user_id, MARCH)

        assert report.skipped == "offline"
        assert apis.categories.created == []

    async def test_reentrant_pass_skipped(self, manager, apis, user_id):
        """Test that a pass started while one runs is a no-op."""
        inner_reports = []

        async def sync_again():
            inner_reports.append(await manager.sync_all(user_id, MARCH))

        apis.categories.before_list = sync_again

        report = await manager.sync_all(user_id, MARCH)

        assert report.skipped is None
        assert inner_reports[0].skipped == "already_syncing"
        assert not manager.is_syncing

    async def test_list_failure_aborts(self, manager, apis, user_id, audit_storage):
        """Test that a failed pull raises SyncError and resets the guard."""
        apis.cards.list_error = NetworkError("offline")

        with pytest.raises(SyncError):
            await manager.sync_all(user_id, MARCH)

        assert not manager.is_syncing
        assert await manager.last_sync_at() is None
        assert any(e.event_type is AuditEventType.SYNC_FAILED for e in audit_storage.events)

    async def test_success_records_last_sync(self, manager, user_id, audit_storage):
        """Test the last sync timestamp and the completion audit."""
        await manager.sync_all(user_id, MARCH)

        assert await manager.last_sync_at() is not None
        completed = [e for e in audit_storage.events if e.event_type is AuditEventType.SYNC_COMPLETED]
        assert completed[0].details == {"pushed": 0, "pulled": 0, "deleted": 0, "failures": 0}

    async def test_pending_changes_count(self, manager, store, user_id):
        """Test counting across entity kinds."""
        await store.insert(category("Pets"))
        await store.insert(expense())
        await synced(store, category("Lazer"), "SRV-1")
        assert await manager.pending_changes_count(user_id) == 2
