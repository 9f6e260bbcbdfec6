"""Monthly summary computed from local data."""

from app_finance.summary.monthly import (
    UNCATEGORIZED_NAME,
    CardSpending,
    CategorySlice,
    FixedBillLine,
    MonthEntry,
    MonthlySummary,
    MonthlySummaryCalculator,
)

__all__ = [
    "CardSpending",
    "CategorySlice",
    "FixedBillLine",
    "MonthEntry",
    "MonthlySummary",
    "MonthlySummaryCalculator",
    "UNCATEGORIZED_NAME",
]
