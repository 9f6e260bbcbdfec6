"""Category suggestions: backend AI, Gemini and keyword fallback."""

from app_finance.categorization.keywords import (
    FIXED_BILL_KEYWORDS,
    TELECOM_KEYWORDS,
    TRANSACTION_KEYWORDS,
    all_fixed_bill_suggestions,
    confidence_for_score,
    keyword_score,
    match_user_category,
    suggest_fixed_bill_category,
    suggest_transaction_category,
)
from app_finance.categorization.service import (
    CategorizationService,
    confidence_from_score,
    fixed_bill_suggestion_from_server,
)

__all__ = [
    "CategorizationService",
    "FIXED_BILL_KEYWORDS",
    "TELECOM_KEYWORDS",
    "TRANSACTION_KEYWORDS",
    "all_fixed_bill_suggestions",
    "confidence_for_score",
    "confidence_from_score",
    "fixed_bill_suggestion_from_server",
    "keyword_score",
    "match_user_category",
    "suggest_fixed_bill_category",
    "suggest_transaction_category",
]
