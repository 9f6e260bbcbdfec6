"""
Main Orchestrator for App Finance

This module ties together all the components and defines the use cases
the app runs:
1. Add transaction (form -> validate -> optional custom category -> save locally)
2. Categories (seed defaults -> list -> edit)
3. Monthly summary (local data -> projected installments -> totals)
4. Category suggestion (server AI -> Gemini -> keywords)
5. Sync (push pending changes -> pull server state)

DESIGN DECISION: The orchestrator enforces the local-first boundary:
- Every write lands in the local store first and never waits for the network
- Nothing is saved from a form that did not pass validation
- Every step is audited
"""

from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional, Union

import httpx
from pydantic import ValidationError

from app_finance.agents import CategoryAgent
from app_finance.audit import AuditLogger
from app_finance.categorization import CategorizationService
from app_finance.config import Settings, get_settings
from app_finance.models.finance import Category, FixedBill, Transaction, TransactionType
from app_finance.models.month import MonthRef
from app_finance.models.suggestion import (
    CUSTOM_CATEGORY_COLOR,
    FixedBillSuggestion,
    TransactionSuggestion,
)
from app_finance.models.validation import ValidationResult
from app_finance.repositories import (
    CategoryRepository,
    CreditCardRepository,
    FixedBillRepository,
    TransactionRepository,
)
from app_finance.services.api import (
    ApiClient,
    AuthAPI,
    CategoriesAPI,
    CreditCardsAPI,
    FixedBillsAPI,
    TransactionsAPI,
)
from app_finance.services.session import SessionManager
from app_finance.storage import (
    InMemoryAuditStorage,
    InMemoryStore,
    LocalStore,
    SQLiteAuditStorage,
    SQLiteStore,
)
from app_finance.summary import MonthlySummary, MonthlySummaryCalculator
from app_finance.sync import SyncManager, SyncReport
from app_finance.utils.currency import parse_brl
from app_finance.validation import FormValidator


class FinanceApp:
    """
    Use cases of the finance app for the logged-in user.

    Every method except the session ones needs a logged-in user and
    raises NotLoggedInError otherwise.
    """

    def __init__(
        self,
        store: LocalStore,
        client: ApiClient,
        session: SessionManager,
        audit_logger: Optional[AuditLogger] = None,
        categorizer: Optional[CategorizationService] = None,
        validator: Optional[FormValidator] = None,
        is_online: Optional[Callable[[], bool]] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._audit = audit_logger or AuditLogger()
        self._client = client
        self.session = session

        self.categories = CategoryRepository(store, self._audit)
        self.transactions = TransactionRepository(store, self._audit)
        self.credit_cards = CreditCardRepository(store, self._audit)
        self.fixed_bills = FixedBillRepository(store, self._audit)

        fixed_bills_api = FixedBillsAPI(client)
        self.sync_manager = SyncManager(
            store,
            CategoriesAPI(client),
            CreditCardsAPI(client),
            TransactionsAPI(client),
            fixed_bills_api,
            is_online=is_online,
            audit_logger=self._audit,
        )
        self._categorizer = categorizer or CategorizationService(
            fixed_bills_api,
            CategoryAgent(self._settings.gemini),
            self._audit,
        )
        self._validator = validator or FormValidator(self._settings.app.min_password_length)
        self._calculator = MonthlySummaryCalculator(self._settings.app.due_soon_days)

    @property
    def validator(self) -> FormValidator:
        return self._validator

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(
        self,
        amount_text: str,
        description: str,
        type: TransactionType = TransactionType.EXPENSE,
        on: Optional[date] = None,
        category_id: Optional[str] = None,
        credit_card_id: Optional[str] = None,
        installments: Optional[int] = None,
        starting_installment: Optional[int] = None,
        custom_category_name: Optional[str] = None,
        custom_category_icon: Optional[str] = None,
        custom_category_color_hex: Optional[str] = None,
        location_name: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        city_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> tuple[ValidationResult, Optional[Transaction]]:
        """
        Validate the form and save the transaction locally.

        When ``custom_category_name`` is given, that category is reused if
        the user already has it (by name) or created first.

        Returns:
            (validation, transaction). The transaction is None when the
            form has errors; nothing is saved in that case.
        """
        user_id = self.session.require_user_id()
        validation = self._validator.validate_transaction(
            amount_text,
            description,
            installments=installments,
            starting_installment=starting_installment,
            credit_card_id=credit_card_id,
            use_custom_category=custom_category_name is not None,
            custom_category_name=custom_category_name,
        )
        if not validation.is_valid:
            return validation, None

        # No writes until the model itself is valid
        try:
            transaction = Transaction(
                user_id=user_id,
                type=type,
                amount=parse_brl(amount_text),
                date=on or date.today(),
                description=description.strip(),
                category_id=category_id,
                credit_card_id=credit_card_id,
                location_name=location_name,
                latitude=latitude,
                longitude=longitude,
                city_name=city_name,
                installments=installments,
                starting_installment=starting_installment,
                notes=notes,
            )
        except ValidationError as e:
            validation.issues.extend(self._validator.model_issues(e))
            return validation, None

        if custom_category_name is not None:
            category = await self.categories.find_by_name(user_id, custom_category_name)
            if category is None:
                category = await self.categories.create(
                    user_id,
                    custom_category_name.strip(),
                    custom_category_color_hex or CUSTOM_CATEGORY_COLOR,
                    custom_category_icon or "tag.fill",
                )
            transaction.category_id = category.id

        return validation, await self.transactions.add(transaction)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return await self.transactions.delete(transaction_id)

    async def set_transaction_category(self, transaction_id: str, category_id: str) -> Transaction:
        return await self.transactions.update_category(transaction_id, category_id)

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def get_categories(self) -> list[Category]:
        """The user's active categories, seeding the defaults on first use."""
        user_id = self.session.require_user_id()
        await self.categories.seed_defaults_if_needed(user_id)
        return await self.categories.list_active(user_id)

    async def update_category(self, category_id: str, **changes: Any) -> Category:
        """
        Edit a category locally; the next sync pushes it.

        Raises:
            NotFoundError: If the category doesn't exist
            ValueError: If a field is unknown or a value is invalid
        """
        self.session.require_user_id()
        return await self.categories.update(category_id, **changes)

    # =========================================================================
    # SUMMARY
    # =========================================================================

    async def monthly_summary(
        self,
        month: Optional[Union[MonthRef, str]] = None,
        today: Optional[date] = None,
    ) -> MonthlySummary:
        """Summary of ``month`` (default: the current one) from local data."""
        user_id = self.session.require_user_id()
        today = today or date.today()
        if month is None:
            month = MonthRef.current(today)
        elif isinstance(month, str):
            month = MonthRef.parse(month)

        return self._calculator.calculate(
            month,
            transactions=await self.transactions.list_all(user_id),
            categories=await self.categories.list_all(user_id),
            cards=await self.credit_cards.list_all(user_id),
            bills=await self.fixed_bills.list_bills(user_id),
            today=today,
        )

    # =========================================================================
    # SUGGESTIONS
    # =========================================================================

    async def suggest_category(
        self,
        description: str,
        amount: Optional[Decimal] = None,
    ) -> TransactionSuggestion:
        """Suggest one of the user's categories for a purchase description."""
        categories = await self.get_categories()
        return await self._categorizer.suggest_for_transaction(
            description,
            categories,
            float(amount) if amount is not None else None,
        )

    async def suggest_fixed_bill_category(
        self,
        bill_name: str,
        amount: Optional[Decimal] = None,
    ) -> FixedBillSuggestion:
        user_id = self.session.require_user_id()
        bills: list[FixedBill] = await self.fixed_bills.list_bills(user_id)
        return await self._categorizer.suggest_for_fixed_bill(
            bill_name,
            float(amount) if amount is not None else None,
            bills,
        )

    # =========================================================================
    # SYNC
    # =========================================================================

    async def sync(self, month: Optional[MonthRef] = None) -> SyncReport:
        """
        Run a sync pass.

        Raises:
            SyncError: If the pass could not complete
        """
        user_id = self.session.require_user_id()
        return await self.sync_manager.sync_all(user_id, month)

    async def pending_changes_count(self) -> int:
        return await self.sync_manager.pending_changes_count(self.session.require_user_id())


def create_finance_app(
    settings: Optional[Settings] = None,
    use_storage: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    is_online: Optional[Callable[[], bool]] = None,
) -> FinanceApp:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use. Global settings if not provided.
        use_storage: Whether to use the SQLite file from the settings.
                    Set to False for an in-memory store (tests, demos).
        transport: httpx transport override for the API client.
        is_online: Connectivity check; sync is skipped while it returns False.

    Returns:
        FinanceApp with the saved session (if any) restored
    """
    settings = settings or get_settings()

    if use_storage:
        database = settings.storage.database_file
        store: LocalStore = SQLiteStore(database)
        audit_logger = AuditLogger(SQLiteAuditStorage(database))
        session_path = settings.storage.session_file
    else:
        store = InMemoryStore()
        audit_logger = AuditLogger(InMemoryAuditStorage())
        session_path = None

    client = ApiClient(settings.api, transport=transport)
    session = SessionManager(AuthAPI(client), client, session_path, audit_logger)
    session.restore()

    return FinanceApp(
        store,
        client,
        session,
        audit_logger=audit_logger,
        is_online=is_online,
        settings=settings,
    )
