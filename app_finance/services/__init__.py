"""Services package."""

from app_finance.services.api import (
    APIError,
    ApiClient,
    AuthAPI,
    AuthError,
    CategoriesAPI,
    CreditCardsAPI,
    FixedBillsAPI,
    HTTPStatusError,
    NetworkError,
    SummaryAPI,
    TransactionsAPI,
    UnauthorizedError,
)
from app_finance.services.session import NotLoggedInError, SessionManager

__all__ = [
    # API
    "APIError",
    "ApiClient",
    "AuthAPI",
    "AuthError",
    "CategoriesAPI",
    "CreditCardsAPI",
    "FixedBillsAPI",
    "HTTPStatusError",
    "NetworkError",
    "SummaryAPI",
    "TransactionsAPI",
    "UnauthorizedError",
    # Session
    "NotLoggedInError",
    "SessionManager",
]
