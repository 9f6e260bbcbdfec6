"""Installment projection and due-date helpers."""

from app_finance.billing.installments import (
    InstallmentOccurrence,
    billing_month,
    billing_months,
    days_until,
    due_status_text,
    first_billing_month,
    fixed_bill_installment,
    installment_number,
    is_due_soon,
    is_fixed_bill_active_in,
    month_window,
    next_due_date,
    project_transaction,
    split_installments,
)

__all__ = [
    "InstallmentOccurrence",
    "billing_month",
    "billing_months",
    "days_until",
    "due_status_text",
    "first_billing_month",
    "fixed_bill_installment",
    "installment_number",
    "is_due_soon",
    "is_fixed_bill_active_in",
    "month_window",
    "next_due_date",
    "project_transaction",
    "split_installments",
]
