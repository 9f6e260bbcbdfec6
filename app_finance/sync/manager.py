"""
Sync Manager

Moves local changes to the backend and server changes to the device in
one pass.

Order matters: categories first (transactions point at them), then
credit cards, transactions and fixed bills. For each kind the pending
local changes are pushed before the server list is pulled, so a pull
never overwrites an edit that has not reached the server yet.

DESIGN DECISION: A failure to push ONE entity is recorded on that entity
(``sync_error``) and the pass goes on. A failure to pull a whole list
aborts the pass with a SyncError: the next pass will retry everything.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import ValidationError

from app_finance.audit.logger import AuditLogger, create_correlation_id
from app_finance.models.api import (
    CategoryResponse,
    CreditCardResponse,
    FixedBillResponse,
    TransactionResponse,
    from_amount,
    parse_api_date,
)
from app_finance.models.finance import (
    Bank,
    CardBrand,
    CardType,
    Category,
    CreditCard,
    FixedBill,
    FixedBillCategory,
    SyncStatus,
    SyncTrackedModel,
    Transaction,
    TransactionType,
    fold,
    utcnow,
)
from app_finance.models.month import MonthRef
from app_finance.repositories.base import PENDING_STATES
from app_finance.services.api.client import APIError
from app_finance.services.api.resources import (
    CategoriesAPI,
    CreditCardsAPI,
    FixedBillsAPI,
    TransactionsAPI,
)
from app_finance.storage.interface import LocalStore, StorageError, kind_of


logger = structlog.get_logger(__name__)

LAST_SYNC_KEY = "last_sync_at"

E = TypeVar("E", bound=Enum)


class SyncError(Exception):
    """A sync pass could not complete."""
    pass


@dataclass
class SyncReport:
    """What a sync pass did."""

    pushed: int = 0
    pulled: int = 0
    deleted: int = 0
    failures: list[str] = field(default_factory=list)
    skipped: Optional[str] = None

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def to_dict(self) -> dict:
        return {
            "pushed": self.pushed,
            "pulled": self.pulled,
            "deleted": self.deleted,
            "failures": len(self.failures),
        }


def _enum_or(enum_cls: type[E], value: Optional[str], default: E) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        return default


class SyncManager:
    """
    Push/pull between the local store and the backend.

    Usage:
        sync = SyncManager(store, categories, cards, transactions, bills,
                           is_online=monitor.is_connected)
        report = await sync.sync_all(user_id)
    """

    def __init__(
        self,
        store: LocalStore,
        categories_api: CategoriesAPI,
        credit_cards_api: CreditCardsAPI,
        transactions_api: TransactionsAPI,
        fixed_bills_api: FixedBillsAPI,
        is_online: Optional[Callable[[], bool]] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._categories_api = categories_api
        self._cards_api = credit_cards_api
        self._transactions_api = transactions_api
        self._bills_api = fixed_bills_api
        self._is_online = is_online
        self._audit = audit_logger or AuditLogger()
        self._is_syncing = False

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    async def last_sync_at(self) -> Optional[datetime]:
        value = await self._store.get_meta(LAST_SYNC_KEY)
        return datetime.fromisoformat(value) if value else None

    async def pending_changes_count(self, user_id: Optional[str] = None) -> int:
        """Entities of every kind waiting to be pushed."""
        total = 0
        for model in (Category, CreditCard, Transaction, FixedBill):
            total += await self._store.count(
                model, user_id=user_id, sync_statuses=PENDING_STATES
            )
        return total

    async def sync_all(self, user_id: str, month: Optional[MonthRef] = None) -> SyncReport:
        """
        Run one sync pass for ``user_id``.

        Transactions are pulled for ``month`` (the current month by
        default). A pass already running, or no connectivity, makes this
        a no-op that returns a report with ``skipped`` set.

        Raises:
            SyncError: If a server list could not be fetched or the local
                store failed
        """
        if self._is_syncing:
            logger.info("sync_already_running")
            await self._audit.log_sync_skipped("already_syncing")
            return SyncReport(skipped="already_syncing")

        if self._is_online is not None and not self._is_online():
            await self._audit.log_sync_skipped("offline")
            return SyncReport(skipped="offline")

        self._is_syncing = True
        correlation_id = create_correlation_id()
        report = SyncReport()
        try:
            await self._audit.log_sync_started(
                correlation_id, await self.pending_changes_count(user_id)
            )

            await self._push_categories(user_id, report, correlation_id)
            await self._pull_categories(user_id, report)

            await self._push_cards(user_id, report, correlation_id)
            await self._pull_cards(user_id, report)

            await self._push_transactions(user_id, report, correlation_id)
            await self._pull_transactions(user_id, month or MonthRef.current(), report)

            await self._push_bills(user_id, report, correlation_id)
            await self._pull_bills(user_id, report)

            await self._store.set_meta(LAST_SYNC_KEY, utcnow().isoformat())
        except (APIError, StorageError) as e:
            await self._audit.log_sync_failed(str(e), correlation_id)
            raise SyncError(f"Sync failed: {e}") from e
        finally:
            self._is_syncing = False

        await self._audit.log_sync_completed(report.to_dict(), correlation_id)
        return report

    # =========================================================================
    # PUSH
    # =========================================================================

    async def _push(
        self,
        model: type[SyncTrackedModel],
        user_id: str,
        report: SyncReport,
        correlation_id: UUID,
        create: Callable[[Any], Awaitable[Any]],
        update: Callable[[Any], Awaitable[Any]],
        delete: Callable[[str], Awaitable[None]],
        after_create: Optional[Callable[[Any, Any], Awaitable[None]]] = None,
    ) -> None:
        kind = kind_of(model)
        pending = await self._store.list_entities(
            model, user_id=user_id, sync_statuses=PENDING_STATES
        )
        for entity in pending:
            try:
                if entity.sync_status is SyncStatus.PENDING_DELETE:
                    if entity.server_id is not None:
                        await delete(entity.server_id)
                    await self._store.delete(model, entity.id)
                    report.deleted += 1
                    continue

                if entity.server_id is None:
                    response = await create(entity)
                    entity.mark_as_synced(response.id)
                    if after_create is not None:
                        await after_create(entity, response)
                else:
                    await update(entity)
                    entity.mark_as_synced(entity.server_id)
                await self._store.save(entity)
                report.pushed += 1
            except APIError as e:
                logger.warning("sync_push_failed", kind=kind, entity_id=entity.id, error=str(e))
                entity.mark_sync_failed(str(e))
                await self._store.save(entity)
                report.failures.append(f"{kind} {entity.id}: {e}")
                await self._audit.log_push_failed(kind, entity.id, str(e), correlation_id)

    async def _push_categories(self, user_id, report, correlation_id) -> None:
        await self._push(
            Category, user_id, report, correlation_id,
            create=self._categories_api.create,
            update=self._categories_api.update,
            delete=self._categories_api.delete,
        )

    async def _push_cards(self, user_id, report, correlation_id) -> None:
        await self._push(
            CreditCard, user_id, report, correlation_id,
            create=self._cards_api.create,
            update=self._cards_api.update,
            delete=self._cards_api.delete,
        )

    async def _push_bills(self, user_id, report, correlation_id) -> None:
        await self._push(
            FixedBill, user_id, report, correlation_id,
            create=self._bills_api.create,
            update=self._bills_api.update,
            delete=self._bills_api.delete,
        )

    async def _server_id(
        self, model: type[SyncTrackedModel], reference: Optional[str]
    ) -> Optional[str]:
        """Resolve a local (or already server) id to the server id, if synced."""
        if reference is None:
            return None
        entity = await self._store.get(model, reference)
        if entity is None:
            entity = await self._store.find_by_server_id(model, reference)
        return entity.server_id if entity is not None else None

    async def _local_id(
        self, model: type[SyncTrackedModel], server_id: Optional[str]
    ) -> Optional[str]:
        """Map a server id back to the local id. Unknown ids are kept as is."""
        if server_id is None:
            return None
        entity = await self._store.find_by_server_id(model, server_id)
        return entity.id if entity is not None else server_id

    async def _push_transactions(self, user_id, report, correlation_id) -> None:
        async def create(tx: Transaction):
            return await self._transactions_api.create(
                tx,
                category_server_id=await self._server_id(Category, tx.category_id),
                card_server_id=await self._server_id(CreditCard, tx.credit_card_id),
            )

        async def after_create(tx: Transaction, response: TransactionResponse) -> None:
            # The backend may have categorized the purchase itself
            if response.ai_confidence is not None:
                tx.ai_confidence = response.ai_confidence
            if response.ai_justification is not None:
                tx.ai_justification = response.ai_justification
            if response.needs_user_review is not None:
                tx.needs_user_review = response.needs_user_review
            if response.category is not None and tx.category_id is None:
                tx.category_id = await self._local_id(Category, response.category.id)

        async def update(tx: Transaction):
            # Only the category of a transaction can change on the server
            category_server_id = await self._server_id(Category, tx.category_id)
            if category_server_id is not None:
                await self._transactions_api.update_category(tx.server_id, category_server_id)

        await self._push(
            Transaction, user_id, report, correlation_id,
            create=create,
            update=update,
            delete=self._transactions_api.delete,
            after_create=after_create,
        )

    # =========================================================================
    # PULL
    # =========================================================================

    async def _insert_pulled(
        self, build: Callable[[], SyncTrackedModel], label: str, report: SyncReport
    ) -> Optional[SyncTrackedModel]:
        """Insert a server row as a synced entity. Rows that fail validation are skipped."""
        try:
            entity = build()
        except ValidationError as e:
            logger.warning("sync_pull_row_invalid", label=label, error=str(e))
            report.failures.append(f"invalid server row {label}")
            return None
        await self._store.insert(entity)
        report.pulled += 1
        return entity

    async def _refresh(
        self, entity: SyncTrackedModel, values: dict[str, Any], report: SyncReport
    ) -> None:
        """Overwrite a synced entity with server values. Pending edits win."""
        if entity.sync_status is not SyncStatus.SYNCED:
            return
        try:
            refreshed = type(entity).model_validate({**entity.model_dump(), **values})
        except ValidationError as e:
            logger.warning("sync_pull_row_invalid", entity_id=entity.id, error=str(e))
            report.failures.append(f"invalid server row {entity.server_id}")
            return
        if refreshed != entity:
            await self._store.save(refreshed)
            report.pulled += 1

    async def _pull_categories(self, user_id: str, report: SyncReport) -> None:
        server_rows: list[CategoryResponse] = await self._categories_api.get_all()
        local = await self._store.list_entities(Category, user_id=user_id)
        by_server_id = {c.server_id: c for c in local if c.server_id}

        for row in server_rows:
            values = {
                "name": row.name,
                "color_hex": row.color_hex,
                "icon_name": row.icon_name,
                "is_active": row.is_active,
            }
            existing = by_server_id.get(row.id)
            if existing is not None:
                # display_order is local only and never comes from the server
                await self._refresh(existing, values, report)
                continue

            twin = next(
                (c for c in local if c.server_id is None and fold(c.name) == fold(row.name)),
                None,
            )
            if twin is not None:
                # A seeded default (or an offline twin) becomes the server's category
                twin.mark_as_synced(row.id)
                twin.color_hex = row.color_hex
                twin.icon_name = row.icon_name
                twin.is_active = row.is_active
                await self._store.save(twin)
                report.pulled += 1
                logger.debug("sync_category_merged", name=row.name)
                continue

            next_order = max((c.display_order for c in local), default=-1) + 1
            created = await self._insert_pulled(
                lambda: Category(
                    server_id=row.id,
                    user_id=row.user_id or user_id,
                    display_order=next_order,
                    sync_status=SyncStatus.SYNCED,
                    **values,
                ),
                row.name,
                report,
            )
            if created is not None:
                local.append(created)

    async def _pull_cards(self, user_id: str, report: SyncReport) -> None:
        server_rows: list[CreditCardResponse] = await self._cards_api.get_all()
        local = await self._store.list_entities(CreditCard, user_id=user_id)
        by_server_id = {c.server_id: c for c in local if c.server_id}

        for row in server_rows:
            values = {
                "card_name": row.card_name,
                "holder_name": row.holder_name,
                "last_four_digits": row.last_four_digits,
                "brand": _enum_or(CardBrand, row.brand, CardBrand.OTHER),
                "card_type": _enum_or(CardType, row.card_type, CardType.STANDARD),
                "bank": _enum_or(Bank, row.bank, Bank.OTHER),
                "payment_day": row.payment_day,
                "closing_day": row.closing_day,
                "limit_amount": from_amount(row.limit_amount),
                "is_active": row.is_active,
            }
            existing = by_server_id.get(row.id)
            if existing is not None:
                await self._refresh(existing, values, report)
                continue
            await self._insert_pulled(
                lambda: CreditCard(
                    server_id=row.id,
                    user_id=row.user_id or user_id,
                    display_order=row.display_order,
                    sync_status=SyncStatus.SYNCED,
                    **values,
                ),
                row.card_name,
                report,
            )

    async def _pull_transactions(self, user_id: str, month: MonthRef, report: SyncReport) -> None:
        server_rows: list[TransactionResponse] = await self._transactions_api.get_by_month(month)
        local = await self._store.list_entities(Transaction, user_id=user_id)
        by_server_id = {t.server_id: t for t in local if t.server_id}
        unsynced = [t for t in local if t.server_id is None]

        for row in server_rows:
            values = {
                "category_id": await self._local_id(Category, row.category_id),
                "ai_confidence": row.ai_confidence,
                "ai_justification": row.ai_justification,
                "needs_user_review": bool(row.needs_user_review),
            }
            existing = by_server_id.get(row.id)
            if existing is not None:
                await self._refresh(existing, values, report)
                continue

            amount = from_amount(row.amount)
            if any(t.description == row.description and t.amount == amount for t in unsynced):
                logger.debug("sync_transaction_duplicate_skipped", description=row.description)
                continue

            await self._insert_pulled(
                lambda: Transaction(
                    server_id=row.id,
                    user_id=row.user_id or user_id,
                    type=_enum_or(TransactionType, row.type, TransactionType.EXPENSE),
                    amount=amount,
                    date=parse_api_date(row.date),
                    description=row.description,
                    sync_status=SyncStatus.SYNCED,
                    **values,
                ),
                row.description,
                report,
            )

    async def _pull_bills(self, user_id: str, report: SyncReport) -> None:
        server_rows: list[FixedBillResponse] = await self._bills_api.get_all()
        local = await self._store.list_entities(FixedBill, user_id=user_id)
        by_server_id = {b.server_id: b for b in local if b.server_id}

        for row in server_rows:
            values = {
                "name": row.name,
                "amount": from_amount(row.amount),
                "due_day": row.due_day,
                "category": FixedBillCategory.from_api(row.category),
                "is_active": row.is_active,
                "notes": row.notes,
                "custom_category_name": row.custom_category_name,
                "custom_category_icon": row.custom_category_icon,
                "custom_category_color_hex": row.custom_category_color_hex,
                "total_installments": row.total_installments,
                "paid_installments": row.paid_installments,
            }
            existing = by_server_id.get(row.id)
            if existing is not None:
                await self._refresh(existing, values, report)
                continue
            await self._insert_pulled(
                lambda: FixedBill(
                    server_id=row.id,
                    user_id=row.user_id or user_id,
                    sync_status=SyncStatus.SYNCED,
                    **values,
                ),
                row.name,
                report,
            )
