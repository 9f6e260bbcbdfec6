"""
Wire models for the finance backend.

The backend speaks camelCase JSON and sends amounts as floats. These
models only describe the payloads; converting them to and from the local
entities is done by the sync layer.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app_finance.models.finance import User


class ApiModel(BaseModel):
    """Base for every payload: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self, exclude_none: bool = False) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)


def to_amount(value: Decimal) -> float:
    """Amounts travel as JSON numbers."""
    return float(value)


def from_amount(value: float) -> Decimal:
    """Back to a cent-precision Decimal without binary float noise."""
    return Decimal(str(value)).quantize(Decimal("0.01"))


def parse_api_date(value: str) -> date:
    """Accepts 'YYYY-MM-DD' or a full ISO-8601 timestamp."""
    text = value.strip()
    if len(text) > 10:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryResponse(ApiModel):
    id: str
    user_id: Optional[str] = None
    name: str
    color_hex: str
    icon_name: str = "tag"
    is_active: bool = True


class CreateCategoryRequest(ApiModel):
    name: str
    color_hex: str
    icon_name: Optional[str] = "tag"


class UpdateCategoryRequest(ApiModel):
    name: Optional[str] = None
    color_hex: Optional[str] = None
    icon_name: Optional[str] = None
    is_active: Optional[bool] = None


# =============================================================================
# TRANSACTIONS
# =============================================================================

class CategoryDTO(ApiModel):
    """Category embedded in a transaction response."""
    id: str
    name: str
    color_hex: str
    icon_name: str = "tag"


class TransactionResponse(ApiModel):
    id: str
    user_id: Optional[str] = None
    category_id: Optional[str] = None
    type: str
    amount: float
    date: str
    description: str
    ai_confidence: Optional[float] = None
    ai_justification: Optional[str] = None
    needs_user_review: Optional[bool] = None
    category: Optional[CategoryDTO] = None


class CreateTransactionRequest(ApiModel):
    type: str
    amount: float
    date: str = Field(..., description="YYYY-MM-DD")
    description: str
    category_id: Optional[str] = None
    credit_card_id: Optional[str] = None
    installments: Optional[int] = None
    starting_installment: Optional[int] = None


class UpdateTransactionCategoryRequest(ApiModel):
    category_id: str


# =============================================================================
# CREDIT CARDS
# =============================================================================

class CreditCardFields(ApiModel):
    card_name: str
    holder_name: str = ""
    last_four_digits: str = ""
    brand: str
    card_type: str
    bank: str
    payment_day: int
    closing_day: int
    limit_amount: float = 0.0
    is_active: bool = True
    display_order: int = 0


class CreateCreditCardRequest(CreditCardFields):
    pass


class UpdateCreditCardRequest(ApiModel):
    card_name: Optional[str] = None
    holder_name: Optional[str] = None
    last_four_digits: Optional[str] = None
    brand: Optional[str] = None
    card_type: Optional[str] = None
    bank: Optional[str] = None
    payment_day: Optional[int] = None
    closing_day: Optional[int] = None
    limit_amount: Optional[float] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class CreditCardResponse(CreditCardFields):
    id: str
    user_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# =============================================================================
# FIXED BILLS
# =============================================================================

class FixedBillFields(ApiModel):
    name: str
    amount: float
    due_day: int
    category: str
    is_active: bool = True
    notes: Optional[str] = None
    custom_category_name: Optional[str] = None
    custom_category_icon: Optional[str] = None
    custom_category_color_hex: Optional[str] = None
    total_installments: Optional[int] = None
    paid_installments: Optional[int] = None


class CreateFixedBillRequest(FixedBillFields):
    pass


class UpdateFixedBillRequest(ApiModel):
    name: Optional[str] = None
    amount: Optional[float] = None
    due_day: Optional[int] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None
    custom_category_name: Optional[str] = None
    custom_category_icon: Optional[str] = None
    custom_category_color_hex: Optional[str] = None
    total_installments: Optional[int] = None
    paid_installments: Optional[int] = None


class FixedBillResponse(FixedBillFields):
    id: str
    user_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ExistingCategoryRequest(ApiModel):
    name: str
    icon: Optional[str] = None


class CategorizeBillRequest(ApiModel):
    name: str
    amount: Optional[float] = None
    existing_categories: Optional[list[ExistingCategoryRequest]] = None


class AlternativeCategoryResponse(ApiModel):
    category: str
    confidence: float


class CategorizeBillResponse(ApiModel):
    category: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: Optional[str] = None
    icon: Optional[str] = None
    is_custom: Optional[bool] = None
    alternative_categories: Optional[list[AlternativeCategoryResponse]] = None


# =============================================================================
# SUMMARY
# =============================================================================

class PieCategoryData(ApiModel):
    category_id: str
    name: str
    color_hex: str
    icon_name: str = "tag"
    total: float
    percent: float


class MonthlySummaryResponse(ApiModel):
    month: str
    total_income: float
    total_expense: float
    balance: float
    pie_by_category: list[PieCategoryData] = Field(default_factory=list)
    transactions: list[TransactionResponse] = Field(default_factory=list)


# =============================================================================
# AUTH
# =============================================================================

class RegisterRequest(ApiModel):
    name: str
    email: str
    password: str


class LoginRequest(ApiModel):
    email: str
    password: str


class VerifyEmailRequest(ApiModel):
    user_id: str
    code: str


class ResendCodeRequest(ApiModel):
    user_id: str


class EmailRequest(ApiModel):
    """Body of forgot-password and change-password/request."""
    email: str


class EmailCodeRequest(ApiModel):
    """Body of the endpoints that check a code sent to an email."""
    email: str
    code: str


class ResetPasswordRequest(ApiModel):
    email: str
    token: str
    new_password: str


class UpdateProfileRequest(ApiModel):
    name: str
    last_name: str


class ChangePasswordRequest(ApiModel):
    token: str
    new_password: str


class RequestEmailChangeRequest(ApiModel):
    current_email: str


class SetNewEmailRequest(ApiModel):
    token: str
    new_email: str


class TokenCodeRequest(ApiModel):
    token: str
    code: str


class AuthResponse(ApiModel):
    token: str
    user: User


class RegisterResponse(ApiModel):
    user_id: str
    message: str


class MessageResponse(ApiModel):
    message: str


class UpdateProfileResponse(ApiModel):
    user: User


class TokenResponse(ApiModel):
    token: str
    message: Optional[str] = None


class VerifyResetCodeResponse(ApiModel):
    reset_token: str


class LoginRawResponse(ApiModel):
    """Login answers either with a session or with a verification request."""
    token: Optional[str] = None
    user: Optional[User] = None
    requires_verification: Optional[bool] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None
