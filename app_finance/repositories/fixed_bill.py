"""Fixed bill repository (local first)."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from app_finance.billing.installments import days_until, is_due_soon
from app_finance.models.finance import FixedBill, FixedBillCategory
from app_finance.repositories.base import BaseRepository


class FixedBillRepository(BaseRepository[FixedBill]):
    model = FixedBill

    async def list_bills(self, user_id: str, active_only: bool = False) -> list[FixedBill]:
        """The user's bills ordered by due day. Pending deletes are hidden."""
        bills = await self._store.list_entities(FixedBill, user_id=user_id)
        visible = [
            b for b in bills
            if not b.is_deleted and (b.is_active or not active_only)
        ]
        return sorted(visible, key=lambda b: (b.due_day, b.name))

    async def create(
        self,
        user_id: str,
        name: str,
        amount: Decimal,
        due_day: int,
        category: FixedBillCategory = FixedBillCategory.OTHER,
        notes: Optional[str] = None,
        custom_category_name: Optional[str] = None,
        custom_category_icon: Optional[str] = None,
        custom_category_color_hex: Optional[str] = None,
        total_installments: Optional[int] = None,
        paid_installments: Optional[int] = None,
    ) -> FixedBill:
        bill = FixedBill(
            user_id=user_id,
            name=name,
            amount=amount,
            due_day=due_day,
            category=category,
            notes=notes,
            custom_category_name=custom_category_name,
            custom_category_icon=custom_category_icon,
            custom_category_color_hex=custom_category_color_hex,
            total_installments=total_installments,
            paid_installments=paid_installments,
        )
        return await self._create(bill, name)

    async def toggle_active(self, bill_id: str) -> FixedBill:
        bill = await self.require(bill_id)
        return await self._apply(bill, {"is_active": not bill.is_active})

    async def mark_installment_paid(self, bill_id: str) -> FixedBill:
        """
        Count one more paid installment.

        Raises:
            ValueError: If the bill has no installments or all are paid
        """
        bill = await self.require(bill_id)
        if not bill.total_installments:
            raise ValueError(f"Bill '{bill.name}' has no installments")
        paid = bill.paid_installments or 0
        if paid >= bill.total_installments:
            raise ValueError(f"All installments of '{bill.name}' are already paid")
        return await self._apply(bill, {"paid_installments": paid + 1})

    async def total_monthly_amount(self, user_id: str) -> Decimal:
        bills = await self.list_bills(user_id, active_only=True)
        return sum((b.amount for b in bills), Decimal("0"))

    async def due_soon(self, user_id: str, today: date, soon_days: int = 7) -> list[FixedBill]:
        """Active bills due within ``soon_days`` days (today included)."""
        bills = await self.list_bills(user_id, active_only=True)
        return [b for b in bills if is_due_soon(days_until(b.due_day, today), soon_days)]

    async def by_category(self, user_id: str) -> dict[FixedBillCategory, list[FixedBill]]:
        grouped: dict[FixedBillCategory, list[FixedBill]] = defaultdict(list)
        for bill in await self.list_bills(user_id, active_only=True):
            grouped[bill.category].append(bill)
        return dict(grouped)
