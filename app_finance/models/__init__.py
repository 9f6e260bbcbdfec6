"""
Data Models Package

This package contains the Pydantic models used across App Finance.
Everything persisted locally or exchanged with the backend conforms to
these schemas.
"""

from app_finance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from app_finance.models.finance import (
    ENTITY_TYPES,
    Bank,
    CardBrand,
    CardType,
    Category,
    CreditCard,
    FixedBill,
    FixedBillCategory,
    SuggestionConfidence,
    SyncStatus,
    SyncTrackedModel,
    Transaction,
    TransactionType,
    User,
    UserSession,
    entity_kind,
    fold,
)
from app_finance.models.month import MonthRef
from app_finance.models.suggestion import (
    CUSTOM_CATEGORY_COLOR,
    FixedBillSuggestion,
    SuggestionSource,
    TransactionSuggestion,
)
from app_finance.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Finance models
    "ENTITY_TYPES",
    "Bank",
    "CardBrand",
    "CardType",
    "Category",
    "CreditCard",
    "FixedBill",
    "FixedBillCategory",
    "SuggestionConfidence",
    "SyncStatus",
    "SyncTrackedModel",
    "Transaction",
    "TransactionType",
    "User",
    "UserSession",
    "entity_kind",
    "fold",
    "MonthRef",
    # Suggestions
    "CUSTOM_CATEGORY_COLOR",
    "FixedBillSuggestion",
    "SuggestionSource",
    "TransactionSuggestion",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
