"""Local-first repositories over the LocalStore."""

from app_finance.repositories.base import BaseRepository
from app_finance.repositories.category import DEFAULT_CATEGORIES, CategoryRepository
from app_finance.repositories.credit_card import CreditCardRepository
from app_finance.repositories.fixed_bill import FixedBillRepository
from app_finance.repositories.transaction import TransactionRepository

__all__ = [
    "BaseRepository",
    "CategoryRepository",
    "CreditCardRepository",
    "DEFAULT_CATEGORIES",
    "FixedBillRepository",
    "TransactionRepository",
]
