"""
Tests for months, installment projection and due dates.

These are pure functions; every date is fixed so the tests never depend
on today.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from app_finance.billing.installments import (
    billing_month,
    billing_months,
    days_until,
    due_status_text,
    fixed_bill_installment,
    installment_number,
    is_due_soon,
    is_fixed_bill_active_in,
    next_due_date,
    project_transaction,
    split_installments,
)
from app_finance.models.finance import (
    CreditCard,
    FixedBill,
    FixedBillCategory,
    Transaction,
    TransactionType,
)
from app_finance.models.month import MonthRef


def purchase(amount="300.00", on=date(2025, 3, 10), card_id="CARD-1", **extra) -> Transaction:
    return Transaction(
        user_id="USER-1",
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        date=on,
        description="Geladeira",
        credit_card_id=card_id,
        **extra,
    )


def financing(paid=None, total=None, created=datetime(2025, 1, 15, tzinfo=timezone.utc), **extra) -> FixedBill:
    return FixedBill(
        user_id="USER-1",
        name="Carro",
        amount=Decimal("900.00"),
        due_day=10,
        category=FixedBillCategory.FINANCING,
        total_installments=total,
        paid_installments=paid,
        created_at=created,
        **extra,
    )


class TestMonthRef:
    """Tests for the month value object."""

    def test_parse_and_api_string(self):
        """Test the YYYY-MM representation."""
        month = MonthRef.parse("2025-03")
        assert month == MonthRef(2025, 3)
        assert month.api_string == "2025-03"
        assert str(month) == "2025-03"

    def test_parse_invalid(self):
        """Test that bad month strings raise ValueError."""
        with pytest.raises(ValueError, match="YYYY-MM"):
            MonthRef.parse("março")
        with pytest.raises(ValueError):
            MonthRef.parse("2025-13")

    def test_add_months_across_years(self):
        """Test month arithmetic over year boundaries."""
        assert MonthRef(2025, 1).add_months(-1) == MonthRef(2024, 12)
        assert MonthRef(2024, 11).add_months(3) == MonthRef(2025, 2)
        assert MonthRef(2024, 11).months_until(MonthRef(2025, 2)) == 3
        assert MonthRef(2025, 2).months_until(MonthRef(2024, 11)) == -3

    def test_ordering(self):
        """Test chronological ordering."""
        assert MonthRef(2024, 12) < MonthRef(2025, 1)

    def test_clamp_day(self):
        """Test day clamping to the month length."""
        assert MonthRef(2024, 2).clamp_day(31) == date(2024, 2, 29)
        assert MonthRef(2025, 2).clamp_day(31) == date(2025, 2, 28)
        assert MonthRef(2025, 4).end_date == date(2025, 4, 30)

    def test_display_string(self):
        """Test the pt-BR label."""
        assert MonthRef(2025, 3).display_string == "Março de 2025"

    def test_contains(self):
        """Test date membership."""
        assert MonthRef(2025, 3).contains(date(2025, 3, 31))
        assert not MonthRef(2025, 3).contains(date(2024, 3, 1))


class TestInstallments:
    """Tests for credit card installment projection."""

    def test_billing_month_before_and_after_closing(self):
        """Test that purchases after the closing day move to the next statement."""
        assert billing_month(date(2025, 3, 3), closing_day=3) == MonthRef(2025, 3)
        assert billing_month(date(2025, 3, 4), closing_day=3) == MonthRef(2025, 4)
        assert billing_month(date(2025, 12, 20), closing_day=10) == MonthRef(2026, 1)

    def test_billing_month_clamps_closing_day(self):
        """Test a card closing on the 31st in February."""
        assert billing_month(date(2025, 2, 28), closing_day=31) == MonthRef(2025, 2)

    def test_billing_month_invalid_closing_day(self):
        """Test that the closing day is validated."""
        with pytest.raises(ValueError):
            billing_month(date(2025, 3, 1), closing_day=0)

    def test_installment_number(self):
        """Test which installment falls in a month."""
        first = MonthRef(2025, 3)
        assert installment_number(first, MonthRef(2025, 3), 1, 3) == 1
        assert installment_number(first, MonthRef(2025, 5), 1, 3) == 3
        assert installment_number(first, MonthRef(2025, 6), 1, 3) is None
        assert installment_number(first, MonthRef(2025, 2), 1, 3) is None

    def test_installment_number_with_starting_installment(self):
        """Test purchases registered half-way through."""
        first = MonthRef(2025, 3)
        assert installment_number(first, MonthRef(2025, 3), 3, 10) == 3
        assert installment_number(first, MonthRef(2025, 10), 3, 10) == 10
        assert installment_number(first, MonthRef(2025, 11), 3, 10) is None

    def test_split_installments_sum_to_total(self):
        """Test that the first slice absorbs the rounding remainder."""
        slices = split_installments(Decimal("100.00"), 3)
        assert slices == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]
        assert sum(slices) == Decimal("100.00")

    def test_split_installments_invalid_count(self):
        """Test that at least one installment is required."""
        with pytest.raises(ValueError):
            split_installments(Decimal("10"), 0)

    def test_project_transaction_with_card(self):
        """Test that the card's closing day shifts the first slice."""
        card = CreditCard(user_id="USER-1", card_name="Roxinho", closing_day=5, payment_day=12)
        tx = purchase(installments=3)
        assert project_transaction(tx, MonthRef(2025, 3), card) is None
        occurrence = project_transaction(tx, MonthRef(2025, 4), card)
        assert occurrence.number == 1
        assert occurrence.amount == Decimal("100.00")
        assert occurrence.label == "1/3"
        last = project_transaction(tx, MonthRef(2025, 6), card)
        assert last.is_last

    def test_project_transaction_without_card(self):
        """Test that without a card the purchase bills in its own month."""
        tx = purchase(installments=3)
        assert project_transaction(tx, MonthRef(2025, 3)).number == 1

    def test_single_payment_is_one_of_one(self):
        """Test a purchase without installments."""
        tx = purchase(amount="59.90", card_id=None)
        occurrence = project_transaction(tx, MonthRef(2025, 3))
        assert occurrence.label == "1/1"
        assert occurrence.amount == Decimal("59.90")
        assert project_transaction(tx, MonthRef(2025, 4)) is None

    def test_billing_months(self):
        """Test the full schedule of a purchase."""
        tx = purchase(installments=4, starting_installment=3)
        assert billing_months(tx) == [(3, MonthRef(2025, 3)), (4, MonthRef(2025, 4))]


class TestFixedBillFinancing:
    """Tests for fixed bills paid in installments."""

    def test_paid_installments_count_first(self):
        """Test that a bill added with 20 of 60 paid shows 21/60."""
        bill = financing(paid=20, total=60)
        assert fixed_bill_installment(bill, MonthRef(2025, 1)) == 21
        assert fixed_bill_installment(bill, MonthRef(2025, 3)) == 23

    def test_installment_capped_at_total(self):
        """Test that the installment never exceeds the total."""
        bill = financing(paid=59, total=60)
        assert fixed_bill_installment(bill, MonthRef(2025, 6)) == 60

    def test_no_installments(self):
        """Test a plain recurring bill."""
        assert fixed_bill_installment(financing(), MonthRef(2025, 1)) is None
        assert is_fixed_bill_active_in(financing(), MonthRef(2030, 1))

    def test_active_until_last_installment(self):
        """Test that financing stops counting once paid off."""
        bill = financing(paid=59, total=60)
        assert is_fixed_bill_active_in(bill, MonthRef(2025, 1))
        assert not is_fixed_bill_active_in(bill, MonthRef(2025, 2))

    def test_not_active_before_creation(self):
        """Test months before the first installment."""
        bill = financing(paid=0, total=12)
        assert not is_fixed_bill_active_in(bill, MonthRef(2024, 12))

    def test_counts_back_before_creation(self):
        """Test that months before the bill was added show earlier installments."""
        bill = financing(paid=2, total=12)
        assert fixed_bill_installment(bill, MonthRef(2024, 12)) == 2
        assert is_fixed_bill_active_in(bill, MonthRef(2024, 11))
        assert not is_fixed_bill_active_in(bill, MonthRef(2024, 10))

    def test_inactive_bill(self):
        """Test that a paused bill never counts."""
        assert not is_fixed_bill_active_in(financing(is_active=False), MonthRef(2025, 1))


class TestDueDates:
    """Tests for due date helpers."""

    def test_next_due_date(self):
        """Test this month vs next month."""
        assert next_due_date(10, date(2025, 3, 5)) == date(2025, 3, 10)
        assert next_due_date(10, date(2025, 3, 10)) == date(2025, 3, 10)
        assert next_due_date(10, date(2025, 3, 12)) == date(2025, 4, 10)

    def test_next_due_date_clamps(self):
        """Test that day 31 in April is the 30th."""
        assert next_due_date(31, date(2025, 4, 5)) == date(2025, 4, 30)

    def test_next_due_date_invalid_day(self):
        """Test that the due day is validated."""
        with pytest.raises(ValueError):
            next_due_date(32, date(2025, 4, 5))

    def test_days_until(self):
        """Test day counting."""
        assert days_until(5, date(2025, 3, 5)) == 0
        assert days_until(6, date(2025, 3, 5)) == 1
        assert days_until(4, date(2025, 3, 5)) == 30

    @pytest.mark.parametrize("days,expected", [
        (-1, "Vencida"),
        (0, "Vence hoje"),
        (1, "Vence amanhã"),
        (3, "Vence em 3 dias"),
        (20, "Dia 25"),
    ])
    def test_due_status_text(self, days, expected):
        """Test the pt-BR status lines."""
        assert due_status_text(days, 25) == expected

    def test_is_due_soon(self):
        """Test the due-soon window."""
        assert is_due_soon(0)
        assert is_due_soon(7)
        assert not is_due_soon(8)
        assert not is_due_soon(-1)
