"""
Tests for the local-first repositories.

Every repository writes to an InMemoryStore; the audit trail goes to an
InMemoryAuditStorage so the tests can check what was recorded.
"""

from datetime import date
from decimal import Decimal

import pytest

from app_finance.models.audit import AuditEventType
from app_finance.models.finance import (
    FixedBillCategory,
    SyncStatus,
    TransactionType,
)
from app_finance.models.month import MonthRef
from app_finance.repositories import (
    CategoryRepository,
    CreditCardRepository,
    FixedBillRepository,
    TransactionRepository,
)
from app_finance.repositories.category import DEFAULT_CATEGORIES
from app_finance.storage import NotFoundError


@pytest.fixture
def categories(store, audit_logger) -> CategoryRepository:
    return CategoryRepository(store, audit_logger)


@pytest.fixture
def transactions(store, audit_logger) -> TransactionRepository:
    return TransactionRepository(store, audit_logger)


@pytest.fixture
def cards(store, audit_logger) -> CreditCardRepository:
    return CreditCardRepository(store, audit_logger)


@pytest.fixture
def bills(store, audit_logger) -> FixedBillRepository:
    return FixedBillRepository(store, audit_logger)


async def add_expense(repo, user_id, description="Mercado", on=date(2025, 3, 10), **extra):
    return await repo.create(
        user_id=user_id,
        type=TransactionType.EXPENSE,
        amount=Decimal("50.00"),
        date=on,
        description=description,
        **extra,
    )


class TestBaseRepository:
    """Tests for the shared create/update/delete rules."""

    async def test_create_is_pending_and_audited(self, transactions, user_id, audit_storage):
        """Test that a new record waits for sync and is audited."""
        tx = await add_expense(transactions, user_id)
        assert tx.sync_status is SyncStatus.PENDING
        assert await transactions.pending_count(user_id) == 1
        event_types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.ENTITY_CREATED in event_types

    async def test_get_by_server_id(self, transactions, store, user_id):
        """Test that lookups fall back to the server id."""
        tx = await add_expense(transactions, user_id)
        tx.mark_as_synced("SRV-9")
        await store.save(tx)
        found = await transactions.get("SRV-9")
        assert found.id == tx.id

    async def test_require_missing(self, transactions):
        """Test that a missing record raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await transactions.require("nope")

    async def test_update_revalidates(self, transactions, user_id):
        """Test that invalid values are rejected."""
        tx = await add_expense(transactions, user_id)
        with pytest.raises(ValueError):
            await transactions.update(tx.id, amount=Decimal("-1"))

    async def test_update_rejects_unknown_and_sync_fields(self, transactions, user_id):
        """Test that only editable fields can change."""
        tx = await add_expense(transactions, user_id)
        with pytest.raises(ValueError, match="Unknown"):
            await transactions.update(tx.id, colour="red")
        with pytest.raises(ValueError, match="sync fields"):
            await transactions.update(tx.id, server_id="X")

    async def test_update_synced_goes_back_to_pending(self, transactions, store, user_id):
        """Test that editing a synced record queues it again."""
        tx = await add_expense(transactions, user_id)
        tx.mark_as_synced("SRV-1")
        await store.save(tx)
        updated = await transactions.update(tx.id, notes="dividido")
        assert updated.sync_status is SyncStatus.PENDING
        assert updated.notes == "dividido"

    async def test_delete_unsynced_removes_at_once(self, transactions, store, user_id):
        """Test that a record the server never saw is removed."""
        tx = await add_expense(transactions, user_id)
        assert await transactions.delete(tx.id) is False
        assert await transactions.get(tx.id) is None

    async def test_delete_synced_is_soft(self, transactions, store, user_id):
        """Test that a synced record is kept for the server delete."""
        tx = await add_expense(transactions, user_id)
        tx.mark_as_synced("SRV-1")
        await store.save(tx)
        assert await transactions.delete(tx.id) is True
        stored = await store.get(type(tx), tx.id)
        assert stored.sync_status is SyncStatus.PENDING_DELETE
        assert await transactions.list_all(user_id) == []
        assert await transactions.pending_count(user_id) == 1


class TestCategoryRepository:
    """Tests for categories."""

    async def test_seed_defaults_once(self, categories, user_id, audit_storage):
        """Test that defaults are seeded only for a user without categories."""
        seeded = await categories.seed_defaults_if_needed(user_id)
        assert len(seeded) == len(DEFAULT_CATEGORIES)
        assert all(c.sync_status is SyncStatus.SYNCED for c in seeded)
        assert await categories.seed_defaults_if_needed(user_id) == []
        assert await categories.pending_count(user_id) == 0
        seeded_events = [
            e for e in audit_storage.events
            if e.event_type is AuditEventType.DEFAULTS_SEEDED
        ]
        assert len(seeded_events) == 1

    async def test_create_appends_to_order(self, categories, user_id):
        """Test that new categories go last."""
        await categories.seed_defaults_if_needed(user_id)
        created = await categories.create(user_id, "Pets", "#14B8A6", "pawprint.fill")
        assert created.display_order == len(DEFAULT_CATEGORIES)
        active = await categories.list_active(user_id)
        assert active[-1].name == "Pets"

    async def test_find_by_name_is_case_insensitive(self, categories, user_id):
        """Test name lookups."""
        await categories.create(user_id, "Pets", "#14B8A6")
        assert (await categories.find_by_name(user_id, "  pets ")).name == "Pets"
        assert await categories.find_by_name(user_id, "Viagem") is None

    async def test_inactive_hidden_from_active_list(self, categories, user_id):
        """Test that deactivated categories stay in list_all only."""
        pets = await categories.create(user_id, "Pets", "#14B8A6")
        await categories.update(pets.id, is_active=False)
        assert await categories.list_active(user_id) == []
        assert [c.name for c in await categories.list_all(user_id)] == ["Pets"]

    async def test_reorder_is_local_only(self, categories, user_id, store):
        """Test that reordering does not queue a sync."""
        a = await categories.create(user_id, "A", "#111111")
        b = await categories.create(user_id, "B", "#222222")
        for c in (a, b):
            c.mark_as_synced(f"SRV-{c.name}")
            await store.save(c)
        await categories.reorder([b.id, a.id])
        assert [c.name for c in await categories.list_active(user_id)] == ["B", "A"]
        assert await categories.pending_count(user_id) == 0

    async def test_user_isolation(self, categories):
        """Test that users never see each other's categories."""
        await categories.create("USER-A", "Pets", "#14B8A6")
        assert await categories.list_active("USER-B") == []


class TestTransactionRepository:
    """Tests for transactions."""

    async def test_by_month_newest_first(self, transactions, user_id):
        """Test month filtering and order."""
        await add_expense(transactions, user_id, "Antigo", on=date(2025, 2, 28))
        await add_expense(transactions, user_id, "Primeiro", on=date(2025, 3, 1))
        await add_expense(transactions, user_id, "Ultimo", on=date(2025, 3, 20))
        march = await transactions.by_month(user_id, "2025-03")
        assert [t.description for t in march] == ["Ultimo", "Primeiro"]
        assert len(await transactions.by_month(user_id, MonthRef(2025, 2))) == 1

    async def test_card_and_installment_filters(self, transactions, user_id):
        """Test the card and installment listings."""
        await add_expense(transactions, user_id, "Dinheiro")
        await add_expense(transactions, user_id, "Cartao", credit_card_id="CARD-1")
        await add_expense(
            transactions, user_id, "Parcelado", credit_card_id="CARD-1", installments=3
        )
        assert len(await transactions.by_card(user_id, "CARD-1")) == 2
        assert len(await transactions.card_transactions(user_id)) == 2
        assert [t.description for t in await transactions.installment_transactions(user_id)] == [
            "Parcelado"
        ]

    async def test_update_category_clears_review(self, transactions, store, user_id):
        """Test that confirming a category clears the review flag."""
        tx = await add_expense(transactions, user_id)
        tx.needs_user_review = True
        await store.save(tx)
        updated = await transactions.update_category(tx.id, "CAT-1")
        assert updated.category_id == "CAT-1"
        assert updated.needs_user_review is False


class TestCreditCardRepository:
    """Tests for credit cards."""

    async def test_create_orders_cards(self, cards, user_id):
        """Test that new cards go last."""
        first = await cards.create(user_id, "Roxinho", closing_day=3, payment_day=10)
        second = await cards.create(user_id, "Laranjinha", closing_day=20, payment_day=28)
        assert (first.display_order, second.display_order) == (0, 1)

    async def test_delete_deactivates(self, cards, user_id):
        """Test that cards are deactivated, never removed."""
        card = await cards.create(user_id, "Roxinho", closing_day=3, payment_day=10)
        assert await cards.delete(card.id) is True
        assert await cards.list_active(user_id) == []
        kept = await cards.list_all(user_id)
        assert kept[0].is_active is False
        assert kept[0].sync_status is SyncStatus.PENDING


class TestFixedBillRepository:
    """Tests for fixed bills."""

    async def test_list_by_due_day(self, bills, user_id):
        """Test ordering by due day."""
        await bills.create(user_id, "Internet", Decimal("100"), 20)
        await bills.create(user_id, "Aluguel", Decimal("1500"), 5, FixedBillCategory.HOUSING)
        assert [b.name for b in await bills.list_bills(user_id)] == ["Aluguel", "Internet"]

    async def test_toggle_active_and_total(self, bills, user_id):
        """Test that paused bills leave the monthly total."""
        internet = await bills.create(user_id, "Internet", Decimal("100"), 20)
        await bills.create(user_id, "Aluguel", Decimal("1500"), 5)
        await bills.toggle_active(internet.id)
        assert await bills.total_monthly_amount(user_id) == Decimal("1500")
        assert len(await bills.list_bills(user_id, active_only=True)) == 1

    async def test_mark_installment_paid(self, bills, user_id):
        """Test paying installments up to the total."""
        bill = await bills.create(
            user_id, "Carro", Decimal("900"), 10, FixedBillCategory.FINANCING,
            total_installments=2, paid_installments=1,
        )
        bill = await bills.mark_installment_paid(bill.id)
        assert bill.paid_installments == 2
        with pytest.raises(ValueError, match="already paid"):
            await bills.mark_installment_paid(bill.id)

    async def test_mark_installment_paid_without_installments(self, bills, user_id):
        """Test a bill without installments."""
        bill = await bills.create(user_id, "Internet", Decimal("100"), 20)
        with pytest.raises(ValueError, match="no installments"):
            await bills.mark_installment_paid(bill.id)

    async def test_due_soon(self, bills, user_id):
        """Test the due-soon listing."""
        await bills.create(user_id, "Internet", Decimal("100"), 12)
        await bills.create(user_id, "Aluguel", Decimal("1500"), 25)
        due = await bills.due_soon(user_id, today=date(2025, 3, 10), soon_days=7)
        assert [b.name for b in due] == ["Internet"]

    async def test_by_category(self, bills, user_id):
        """Test grouping by category."""
        await bills.create(user_id, "Aluguel", Decimal("1500"), 5, FixedBillCategory.HOUSING)
        await bills.create(user_id, "Condominio", Decimal("500"), 5, FixedBillCategory.HOUSING)
        grouped = await bills.by_category(user_id)
        assert len(grouped[FixedBillCategory.HOUSING]) == 2
