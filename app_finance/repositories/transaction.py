"""Transaction repository (local first)."""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

from app_finance.models.finance import SyncStatus, Transaction, TransactionType
from app_finance.models.month import MonthRef
from app_finance.repositories.base import BaseRepository


def _newest_first(transactions: list[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: (t.date, t.created_at), reverse=True)


class TransactionRepository(BaseRepository[Transaction]):
    model = Transaction

    async def _visible(self, user_id: str) -> list[Transaction]:
        transactions = await self._store.list_entities(Transaction, user_id=user_id)
        return [t for t in transactions if t.sync_status is not SyncStatus.PENDING_DELETE]

    async def list_all(self, user_id: str) -> list[Transaction]:
        """Every transaction of the user, newest first. Pending deletes are hidden."""
        return _newest_first(await self._visible(user_id))

    async def by_month(self, user_id: str, month: Union[MonthRef, str]) -> list[Transaction]:
        """
        Transactions dated in ``month`` (a MonthRef or 'YYYY-MM'), newest first.

        Records marked for deletion are left out.
        """
        if isinstance(month, str):
            month = MonthRef.parse(month)
        return _newest_first([t for t in await self._visible(user_id) if month.contains(t.date)])

    async def by_card(self, user_id: str, card_id: str) -> list[Transaction]:
        return _newest_first([
            t for t in await self._visible(user_id) if t.credit_card_id == card_id
        ])

    async def card_transactions(self, user_id: str) -> list[Transaction]:
        """Every purchase made with any credit card."""
        return _newest_first([
            t for t in await self._visible(user_id) if t.credit_card_id is not None
        ])

    async def installment_transactions(self, user_id: str) -> list[Transaction]:
        """Purchases split in more than one installment, for any month."""
        return _newest_first([
            t for t in await self._visible(user_id) if t.is_installment_purchase
        ])

    async def create(
        self,
        user_id: str,
        type: TransactionType,
        amount: Decimal,
        date: date,
        description: str,
        category_id: Optional[str] = None,
        credit_card_id: Optional[str] = None,
        location_name: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        city_name: Optional[str] = None,
        installments: Optional[int] = None,
        starting_installment: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        transaction = Transaction(
            user_id=user_id,
            type=type,
            amount=amount,
            date=date,
            description=description,
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
        return await self.add(transaction)

    async def add(self, transaction: Transaction) -> Transaction:
        """Store an already built transaction."""
        return await self._create(transaction, transaction.description)

    async def update_category(self, transaction_id: str, category_id: str) -> Transaction:
        """The user confirmed or corrected a category; no review needed any more."""
        return await self.update(
            transaction_id,
            category_id=category_id,
            needs_user_review=False,
        )
