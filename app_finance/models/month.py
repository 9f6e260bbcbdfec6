"""
Calendar month value object.

A MonthRef is the unit every monthly view works in: transactions are
listed per month, installments are projected onto months and the backend
takes months as "YYYY-MM" strings.
"""

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Optional


PT_BR_MONTHS = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]


@dataclass(frozen=True, order=True)
class MonthRef:
    """A (year, month) pair. Ordering is chronological."""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {self.month}")
        if self.year < 1:
            raise ValueError(f"Year must be positive, got {self.year}")

    @classmethod
    def from_date(cls, value: date) -> "MonthRef":
        return cls(value.year, value.month)

    @classmethod
    def current(cls, today: Optional[date] = None) -> "MonthRef":
        return cls.from_date(today or date.today())

    @classmethod
    def parse(cls, text: str) -> "MonthRef":
        """Parse the API representation ``YYYY-MM``."""
        try:
            year_str, month_str = text.strip().split("-")
            return cls(int(year_str), int(month_str))
        except ValueError:
            raise ValueError(f"Invalid month '{text}', expected YYYY-MM")

    def add_months(self, months: int) -> "MonthRef":
        index = self.year * 12 + (self.month - 1) + months
        return MonthRef(index // 12, index % 12 + 1)

    def months_until(self, other: "MonthRef") -> int:
        """Signed number of months from self to other."""
        return (other.year - self.year) * 12 + (other.month - self.month)

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def start_date(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end_date(self) -> date:
        return date(self.year, self.month, self.days_in_month)

    def clamp_day(self, day: int) -> date:
        """Date for ``day`` in this month, moved back to the last day if needed."""
        return date(self.year, self.month, max(1, min(day, self.days_in_month)))

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month == self.month

    @property
    def api_string(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def display_string(self) -> str:
        """pt-BR label, e.g. 'Março de 2025'."""
        name = PT_BR_MONTHS[self.month - 1]
        return f"{name.capitalize()} de {self.year}"

    def __str__(self) -> str:
        return self.api_string
