"""
Monthly summary, computed from local data.

The month's numbers combine three sources:
1. Single payments: card purchases on their statement month, the rest
   on the month they are dated
2. The installment slice each split purchase bills in the month
3. Fixed bills active in the month

Fixed bills count as expense but stay out of the category pie, which
only splits transaction spending.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app_finance.billing.installments import (
    days_until,
    due_status_text,
    fixed_bill_installment,
    is_due_soon,
    is_fixed_bill_active_in,
    project_transaction,
)
from app_finance.models.finance import (
    Bank,
    CardType,
    Category,
    CreditCard,
    FixedBill,
    Transaction,
    TransactionType,
)
from app_finance.models.month import MonthRef


UNCATEGORIZED_ID = "uncategorized"
UNCATEGORIZED_NAME = "Sem categoria"
UNCATEGORIZED_COLOR = "#999999"
UNCATEGORIZED_ICON = "questionmark.circle"

ZERO = Decimal("0")


class MonthEntry(BaseModel):
    """A transaction as it counts in one month."""

    transaction: Transaction
    amount: Decimal = Field(..., description="Full amount, or the slice billed this month")
    installment_number: Optional[int] = None
    installment_total: Optional[int] = None

    @property
    def installment_label(self) -> Optional[str]:
        if self.installment_number is None:
            return None
        return f"{self.installment_number}/{self.installment_total}"

    @property
    def type(self) -> TransactionType:
        return self.transaction.type


class CategorySlice(BaseModel):
    category_id: str
    name: str
    color_hex: str
    icon_name: str
    total: Decimal
    percent: float


class CardSpending(BaseModel):
    card_id: str
    card_name: str
    last_four_digits: str
    bank: Bank
    card_type: CardType
    total_amount: Decimal
    payment_day: int
    days_until_payment: int
    payment_status_text: str
    is_payment_due_soon: bool


class FixedBillLine(BaseModel):
    bill: FixedBill
    current_installment: Optional[int] = None
    days_until_due: int
    due_status_text: str
    is_due_soon: bool

    @property
    def installment_label(self) -> Optional[str]:
        if self.current_installment is None:
            return None
        return f"{self.current_installment}/{self.bill.total_installments}"


class MonthlySummary(BaseModel):
    month: MonthRef
    total_income: Decimal = ZERO
    transaction_expense: Decimal = ZERO
    fixed_bills_total: Decimal = ZERO
    pie_by_category: list[CategorySlice] = Field(default_factory=list)
    card_spending: list[CardSpending] = Field(default_factory=list)
    fixed_bills: list[FixedBillLine] = Field(default_factory=list)
    entries: list[MonthEntry] = Field(default_factory=list)

    @property
    def total_expense(self) -> Decimal:
        return self.transaction_expense + self.fixed_bills_total

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense


def _find(items, reference: Optional[str]):
    """Look an entity up by local id or server id."""
    if reference is None:
        return None
    for item in items:
        if item.id == reference or item.server_id == reference:
            return item
    return None


class MonthlySummaryCalculator:
    """
    Builds a MonthlySummary from already loaded entities.

    Entities marked for deletion are ignored. ``today`` drives the
    payment and due-day status lines only.
    """

    def __init__(self, soon_days: int = 7):
        self._soon_days = soon_days

    def month_entries(
        self,
        month: MonthRef,
        transactions: list[Transaction],
        cards: list[CreditCard],
    ) -> list[MonthEntry]:
        """
        Everything that counts in ``month``, newest purchase first.

        Purchases on a known card count in their statement month, single
        payments included. Anything else counts in the month it is dated.
        """
        entries = []
        for tx in transactions:
            if tx.is_deleted:
                continue
            card = _find(cards, tx.credit_card_id)
            if card is None and not tx.is_installment_purchase:
                if month.contains(tx.date):
                    entries.append(MonthEntry(transaction=tx, amount=tx.amount))
                continue
            occurrence = project_transaction(tx, month, card)
            if occurrence is None:
                continue
            if tx.is_installment_purchase:
                entries.append(MonthEntry(
                    transaction=tx,
                    amount=occurrence.amount,
                    installment_number=occurrence.number,
                    installment_total=occurrence.total,
                ))
            else:
                entries.append(MonthEntry(transaction=tx, amount=occurrence.amount))
        return sorted(
            entries,
            key=lambda e: (e.transaction.date, e.transaction.created_at),
            reverse=True,
        )

    @staticmethod
    def pie_by_category(
        entries: list[MonthEntry],
        categories: list[Category],
    ) -> list[CategorySlice]:
        """Expense share per category, biggest first."""
        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for entry in entries:
            if entry.type is TransactionType.EXPENSE:
                totals[entry.transaction.category_id or UNCATEGORIZED_ID] += entry.amount

        grand_total = sum(totals.values(), ZERO)
        if grand_total <= 0:
            return []

        slices = []
        for category_id, total in totals.items():
            category = _find(categories, category_id)
            slices.append(CategorySlice(
                category_id=category.id if category else category_id,
                name=category.name if category else UNCATEGORIZED_NAME,
                color_hex=category.color_hex if category else UNCATEGORIZED_COLOR,
                icon_name=category.icon_name if category else UNCATEGORIZED_ICON,
                total=total,
                percent=round(float(total / grand_total * 100), 2),
            ))
        return sorted(slices, key=lambda s: s.total, reverse=True)

    def card_spending(
        self,
        entries: list[MonthEntry],
        cards: list[CreditCard],
        today: date,
    ) -> list[CardSpending]:
        """Card expenses in the month, biggest card first. Unknown cards are skipped."""
        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for entry in entries:
            card_id = entry.transaction.credit_card_id
            if entry.type is TransactionType.EXPENSE and card_id is not None:
                totals[card_id] += entry.amount

        spending = []
        for card_id, total in totals.items():
            card = _find(cards, card_id)
            if card is None:
                continue
            days = days_until(card.payment_day, today)
            spending.append(CardSpending(
                card_id=card.id,
                card_name=card.card_name,
                last_four_digits=card.last_four_digits,
                bank=card.bank,
                card_type=card.card_type,
                total_amount=total,
                payment_day=card.payment_day,
                days_until_payment=days,
                payment_status_text=due_status_text(days, card.payment_day, self._soon_days),
                is_payment_due_soon=is_due_soon(days, self._soon_days),
            ))
        return sorted(spending, key=lambda s: s.total_amount, reverse=True)

    def fixed_bill_lines(
        self,
        month: MonthRef,
        bills: list[FixedBill],
        today: date,
    ) -> list[FixedBillLine]:
        """Bills active in ``month``, by due day."""
        lines = []
        for bill in sorted(bills, key=lambda b: (b.due_day, b.name)):
            if not is_fixed_bill_active_in(bill, month):
                continue
            days = days_until(bill.due_day, today)
            lines.append(FixedBillLine(
                bill=bill,
                current_installment=fixed_bill_installment(bill, month),
                days_until_due=days,
                due_status_text=due_status_text(days, bill.due_day, self._soon_days),
                is_due_soon=is_due_soon(days, self._soon_days),
            ))
        return lines

    def calculate(
        self,
        month: MonthRef,
        transactions: list[Transaction],
        categories: list[Category],
        cards: list[CreditCard],
        bills: list[FixedBill],
        today: Optional[date] = None,
    ) -> MonthlySummary:
        today = today or date.today()
        entries = self.month_entries(month, transactions, cards)
        bill_lines = self.fixed_bill_lines(month, bills, today)

        income = sum((e.amount for e in entries if e.type is TransactionType.INCOME), ZERO)
        expense = sum((e.amount for e in entries if e.type is TransactionType.EXPENSE), ZERO)

        return MonthlySummary(
            month=month,
            total_income=income,
            transaction_expense=expense,
            fixed_bills_total=sum((line.bill.amount for line in bill_lines), ZERO),
            pie_by_category=self.pie_by_category(entries, categories),
            card_spending=self.card_spending(entries, cards, today),
            fixed_bills=bill_lines,
            entries=entries,
        )
