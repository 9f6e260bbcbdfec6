"""
Installment projection and due-date arithmetic.

A credit card purchase is billed on the statement of its billing month:
purchases made on or before the card's closing day land on the current
month's statement, later purchases roll to the next one. A purchase in
N installments then shows one slice per month, starting at its first
billing month.

Everything here is a pure function of its arguments. ``today`` is always
passed in so the results do not depend on the wall clock.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from app_finance.models.finance import CreditCard, FixedBill, Transaction
from app_finance.models.month import MonthRef


CENT = Decimal("0.01")


# =============================================================================
# CARD PURCHASES
# =============================================================================

def billing_month(purchase_date: date, closing_day: int) -> MonthRef:
    """
    First statement month of a purchase.

    The closing day is clamped to the length of the purchase month, so a
    card closing on the 31st closes on Feb 28/29 in February.
    """
    if not 1 <= closing_day <= 31:
        raise ValueError(f"Closing day must be between 1 and 31, got {closing_day}")
    month = MonthRef.from_date(purchase_date)
    effective_closing = min(closing_day, month.days_in_month)
    if purchase_date.day <= effective_closing:
        return month
    return month.add_months(1)


def installment_number(
    first_billing_month: MonthRef,
    display_month: MonthRef,
    starting_installment: int = 1,
    total_installments: int = 1,
) -> Optional[int]:
    """
    Installment shown in ``display_month``, or None if none is due there.

    ``starting_installment`` is the number billed in the first billing
    month (a purchase registered after some installments were already paid).
    """
    if starting_installment < 1:
        raise ValueError("Starting installment must be at least 1")
    if total_installments < 1:
        raise ValueError("Total installments must be at least 1")

    number = starting_installment + first_billing_month.months_until(display_month)
    if starting_installment <= number <= total_installments:
        return number
    return None


def split_installments(amount: Decimal, count: int) -> list[Decimal]:
    """
    Split ``amount`` into ``count`` cent-precise slices.

    Slices are equal except the first, which absorbs the rounding
    remainder, so the slices always add up to ``amount``.
    """
    if count < 1:
        raise ValueError("Installment count must be at least 1")
    total = Decimal(amount).quantize(CENT)
    base = (total / count).quantize(CENT, rounding=ROUND_DOWN)
    slices = [base] * count
    slices[0] = total - base * (count - 1)
    return slices


@dataclass(frozen=True)
class InstallmentOccurrence:
    """One slice of a purchase as it appears in a given month."""

    transaction_id: str
    number: int
    total: int
    amount: Decimal
    billing_month: MonthRef

    @property
    def label(self) -> str:
        """e.g. '3/10'."""
        return f"{self.number}/{self.total}"

    @property
    def is_last(self) -> bool:
        return self.number == self.total


def first_billing_month(
    transaction: Transaction,
    card: Optional[CreditCard] = None,
) -> MonthRef:
    """Card purchases follow the closing day; anything else bills in its own month."""
    if card is not None and transaction.credit_card_id is not None:
        return billing_month(transaction.date, card.closing_day)
    return MonthRef.from_date(transaction.date)


def project_transaction(
    transaction: Transaction,
    display_month: MonthRef,
    card: Optional[CreditCard] = None,
) -> Optional[InstallmentOccurrence]:
    """
    The slice of ``transaction`` billed in ``display_month``.

    A purchase without installments is a single 1/1 slice on its billing
    month. Returns None when the purchase has nothing due in that month.
    """
    first = first_billing_month(transaction, card)
    total = transaction.installment_count
    number = installment_number(first, display_month, transaction.first_installment, total)
    if number is None:
        return None

    slices = split_installments(transaction.amount, total)
    return InstallmentOccurrence(
        transaction_id=transaction.id,
        number=number,
        total=total,
        amount=slices[number - 1],
        billing_month=display_month,
    )


def billing_months(
    transaction: Transaction,
    card: Optional[CreditCard] = None,
) -> list[tuple[int, MonthRef]]:
    """Every (installment number, month) pair of a purchase, in order."""
    first = first_billing_month(transaction, card)
    start = transaction.first_installment
    return [
        (number, first.add_months(number - start))
        for number in range(start, transaction.installment_count + 1)
    ]


# =============================================================================
# FIXED BILL FINANCING
# =============================================================================

def _months_since_creation(bill: FixedBill, display_month: MonthRef) -> int:
    return MonthRef.from_date(bill.created_at.date()).months_until(display_month)


def fixed_bill_installment(bill: FixedBill, display_month: MonthRef) -> Optional[int]:
    """
    Installment of a financing due in ``display_month``.

    Installments already paid when the bill was added count first, so a
    bill added with 20 of 60 paid shows 21/60 in its creation month.
    Capped at the total; None for bills without installments.
    """
    if not bill.total_installments:
        return None
    current = (bill.paid_installments or 0) + _months_since_creation(bill, display_month) + 1
    return min(current, bill.total_installments)


def is_fixed_bill_active_in(bill: FixedBill, display_month: MonthRef) -> bool:
    """
    Whether the bill counts in ``display_month``.

    Bills without installments count every month while active. Financing
    stops counting once all installments are paid and does not count in
    months before its first installment.
    """
    if not bill.is_active or bill.is_deleted:
        return False
    if not bill.total_installments:
        return True
    # Earlier months count back from the paid installments; a month whose
    # installment number would be below 1 predates the financing and is hidden.
    current = (bill.paid_installments or 0) + _months_since_creation(bill, display_month) + 1
    return 1 <= current <= bill.total_installments


# =============================================================================
# DUE DATES
# =============================================================================

def next_due_date(due_day: int, today: date) -> date:
    """
    Next date a bill due on ``due_day`` falls due, today included.

    The day is clamped to the month length (day 31 in April is the 30th).
    """
    if not 1 <= due_day <= 31:
        raise ValueError(f"Due day must be between 1 and 31, got {due_day}")
    this_month = MonthRef.from_date(today)
    candidate = this_month.clamp_day(due_day)
    if candidate >= today:
        return candidate
    return this_month.add_months(1).clamp_day(due_day)


def days_until(due_day: int, today: date) -> int:
    return (next_due_date(due_day, today) - today).days


def due_status_text(days: int, due_day: int, soon_days: int = 7) -> str:
    """pt-BR status line shown next to a bill or card payment."""
    if days < 0:
        return "Vencida"
    if days == 0:
        return "Vence hoje"
    if days == 1:
        return "Vence amanhã"
    if days <= soon_days:
        return f"Vence em {days} dias"
    return f"Dia {due_day}"


def is_due_soon(days: int, soon_days: int = 7) -> bool:
    return 0 <= days <= soon_days


def month_window(display_month: MonthRef) -> tuple[date, date]:
    """Half-open [start, end) date range of a month."""
    return display_month.start_date, display_month.end_date + timedelta(days=1)
