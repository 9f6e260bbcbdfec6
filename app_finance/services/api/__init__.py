"""Backend REST API: client, auth and resource endpoints."""

from app_finance.services.api.auth import (
    AuthAPI,
    AuthError,
    CodeExpiredError,
    EmailAlreadyExistsError,
    EmailNotVerifiedError,
    InvalidCodeError,
    InvalidCredentialsError,
    LoginResult,
    UnknownAuthError,
    UserNotFoundError,
)
from app_finance.services.api.client import (
    APIError,
    ApiClient,
    DecodingError,
    HTTPStatusError,
    NetworkError,
    UnauthorizedError,
)
from app_finance.services.api.resources import (
    CategoriesAPI,
    CreditCardsAPI,
    FixedBillsAPI,
    SummaryAPI,
    TransactionsAPI,
)

__all__ = [
    "APIError",
    "ApiClient",
    "AuthAPI",
    "AuthError",
    "CategoriesAPI",
    "CodeExpiredError",
    "CreditCardsAPI",
    "DecodingError",
    "EmailAlreadyExistsError",
    "EmailNotVerifiedError",
    "FixedBillsAPI",
    "HTTPStatusError",
    "InvalidCodeError",
    "InvalidCredentialsError",
    "LoginResult",
    "NetworkError",
    "SummaryAPI",
    "TransactionsAPI",
    "UnauthorizedError",
    "UnknownAuthError",
    "UserNotFoundError",
]
