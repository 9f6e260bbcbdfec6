"""
Core Data Models for App Finance

These models define the schemas for everything kept in the local store
and exchanged with the backend. They are designed to:
1. Enforce field-level invariants at runtime
2. Carry the local-first sync metadata on every persisted entity
3. Be serializable for storage and logging

DESIGN DECISION: Relationships are plain string ids (a Transaction holds a
Category id and a CreditCard id). There is no object graph to keep in sync.
"""

import unicodedata
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4()).upper()


def fold(text: str) -> str:
    """Lowercase and strip diacritics ('Saúde' -> 'saude')."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SyncStatus(str, Enum):
    """
    Local-first sync state of a persisted entity.

    PENDING: created or modified locally, waiting to be pushed
    SYNCED: matches the server
    PENDING_DELETE: deleted locally, waiting for the server delete
    """
    PENDING = "pending"
    SYNCED = "synced"
    PENDING_DELETE = "pending_delete"


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class SuggestionConfidence(IntEnum):
    """Confidence of a category suggestion. Comparable."""
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


_FIXED_BILL_META = {
    # value: (pt-BR label, icon, color hex)
    "housing": ("Moradia", "house.fill", "#3B82F6"),
    "utilities": ("Utilidades", "bolt.fill", "#EAB308"),
    "health": ("Saúde", "heart.fill", "#EF4444"),
    "education": ("Educação", "book.fill", "#A855F7"),
    "transport": ("Transporte", "car.fill", "#F97316"),
    "entertainment": ("Entretenimento", "tv.fill", "#EC4899"),
    "subscription": ("Assinatura", "repeat", "#06B6D4"),
    "insurance": ("Seguro", "shield.fill", "#22C55E"),
    "financing": ("Financiamento", "creditcard.fill", "#D9A621"),
    "loan": ("Empréstimo", "banknote.fill", "#6366F1"),
    "other": ("Outros", "ellipsis.circle.fill", "#6B7280"),
    "custom": ("Personalizada", "tag.fill", "#14B8A6"),
}

# Aliases the backend (and the AI) may answer with, already folded.
_FIXED_BILL_ALIASES = {
    "moradia": "housing", "housing": "housing", "aluguel": "housing", "rent": "housing",
    "utilidades": "utilities", "utilities": "utilities", "contas": "utilities",
    "saude": "health", "health": "health",
    "educacao": "education", "education": "education",
    "transporte": "transport", "transport": "transport",
    "entretenimento": "entertainment", "entertainment": "entertainment",
    "assinatura": "subscription", "subscription": "subscription", "streaming": "subscription",
    "seguro": "insurance", "insurance": "insurance",
    "financiamento": "financing", "financing": "financing",
    "emprestimo": "loan", "loan": "loan",
    "outros": "other", "other": "other",
    "personalizada": "custom", "custom": "custom",
}


class FixedBillCategory(str, Enum):
    """
    Categories for recurring monthly bills.

    The value is the identifier the backend expects; ``label`` is what
    the user sees.
    """
    HOUSING = "housing"
    UTILITIES = "utilities"
    HEALTH = "health"
    EDUCATION = "education"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    SUBSCRIPTION = "subscription"
    INSURANCE = "insurance"
    FINANCING = "financing"  # car, motorcycle, house installments
    LOAN = "loan"
    OTHER = "other"
    CUSTOM = "custom"

    @property
    def label(self) -> str:
        return _FIXED_BILL_META[self.value][0]

    @property
    def icon(self) -> str:
        return _FIXED_BILL_META[self.value][1]

    @property
    def color_hex(self) -> str:
        return _FIXED_BILL_META[self.value][2]

    @classmethod
    def predefined(cls) -> list["FixedBillCategory"]:
        return [c for c in cls if c is not cls.CUSTOM]

    @classmethod
    def from_api(cls, value: Optional[str]) -> "FixedBillCategory":
        """Map an API/AI category string to a member. Unknown -> OTHER."""
        if not value:
            return cls.OTHER
        return cls(_FIXED_BILL_ALIASES.get(fold(value.strip()), "other"))


class CardBrand(str, Enum):
    VISA = "Visa"
    MASTERCARD = "Mastercard"
    ELO = "Elo"
    AMEX = "American Express"
    HIPERCARD = "Hipercard"
    OTHER = "Outro"


class CardType(str, Enum):
    STANDARD = "Standard"
    GOLD = "Gold"
    PLATINUM = "Platinum"
    BLACK = "Black"

    @property
    def tier_order(self) -> int:
        return list(CardType).index(self)


class Bank(str, Enum):
    NUBANK = "Nubank"
    INTER = "Inter"
    C6 = "C6 Bank"
    ITAU = "Itaú"
    BRADESCO = "Bradesco"
    SANTANDER = "Santander"
    BB = "Banco do Brasil"
    CAIXA = "Caixa"
    BTG = "BTG Pactual"
    XP = "XP"
    SAFRA = "Safra"
    SICREDI = "Sicredi"
    SICOOB = "Sicoob"
    BANRISUL = "Banrisul"
    MERCANTIL = "Mercantil"
    BMG = "BMG"
    PAN = "Banco Pan"
    ORIGINAL = "Banco Original"
    AGIBANK = "Agibank"
    DIGIO = "Digio"
    NEON = "Neon"
    NEXT = "Next"
    WILLBANK = "Will Bank"
    PICPAY = "PicPay"
    TRIGG = "Trigg"
    OTHER = "Outro"

    @property
    def primary_color(self) -> str:
        return _BANK_COLORS.get(self, "#6B7280")


_BANK_COLORS = {
    Bank.NUBANK: "#820AD1",
    Bank.INTER: "#FF7A00",
    Bank.C6: "#121212",
    Bank.ITAU: "#FF7200",
    Bank.BRADESCO: "#CC092F",
    Bank.SANTANDER: "#EA1D25",
    Bank.BB: "#F9DD16",
    Bank.CAIXA: "#1C60AB",
    Bank.BTG: "#001E50",
    Bank.XP: "#000000",
    Bank.SAFRA: "#00205B",
    Bank.SICREDI: "#00A651",
    Bank.SICOOB: "#003641",
    Bank.BANRISUL: "#004B87",
    Bank.MERCANTIL: "#E31937",
    Bank.BMG: "#FF6600",
    Bank.PAN: "#0066CC",
    Bank.ORIGINAL: "#00A859",
    Bank.AGIBANK: "#00C4B3",
    Bank.DIGIO: "#0066FF",
    Bank.NEON: "#00E5A0",
    Bank.NEXT: "#00D47E",
    Bank.WILLBANK: "#FFD700",
    Bank.PICPAY: "#22C25F",
    Bank.TRIGG: "#00FF7F",
}


# =============================================================================
# SYNC-TRACKED BASE
# =============================================================================

class SyncTrackedModel(BaseModel):
    """
    Base for every entity kept in the local store.

    The local ``id`` never changes. ``server_id`` is filled in the first
    time the entity is pushed to the backend.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    id: str = Field(
        default_factory=new_id,
        description="Local identifier"
    )
    server_id: Optional[str] = Field(
        default=None,
        description="Identifier assigned by the backend"
    )
    user_id: str = Field(
        ...,
        description="Owner of the record"
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    sync_status: SyncStatus = Field(
        default=SyncStatus.PENDING,
        description="Local-first sync state"
    )
    last_sync_attempt: Optional[datetime] = None
    sync_error: Optional[str] = None

    @property
    def is_pending_sync(self) -> bool:
        return self.sync_status in (SyncStatus.PENDING, SyncStatus.PENDING_DELETE)

    @property
    def is_deleted(self) -> bool:
        return self.sync_status is SyncStatus.PENDING_DELETE

    def mark_as_synced(self, server_id: str) -> None:
        self.server_id = server_id
        self.sync_status = SyncStatus.SYNCED
        self.sync_error = None
        self.last_sync_attempt = utcnow()

    def mark_as_modified(self) -> None:
        """A local edit. Synced records go back to pending; pending_delete stays."""
        self.updated_at = utcnow()
        if self.sync_status is SyncStatus.SYNCED:
            self.sync_status = SyncStatus.PENDING

    def mark_for_deletion(self) -> None:
        self.sync_status = SyncStatus.PENDING_DELETE
        self.updated_at = utcnow()

    def mark_sync_failed(self, error: str) -> None:
        self.sync_error = error
        self.last_sync_attempt = utcnow()


# =============================================================================
# ENTITIES
# =============================================================================

class Category(SyncTrackedModel):
    """A user-defined transaction category."""

    name: str = Field(..., min_length=1, max_length=60)
    color_hex: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")
    icon_name: str = Field(default="tag", max_length=60)
    is_active: bool = True
    display_order: int = Field(
        default=0,
        ge=0,
        description="Position in the user's list; local only, never synced"
    )


class Transaction(SyncTrackedModel):
    """
    A single income or expense.

    Credit card purchases split in installments keep the TOTAL amount here;
    ``installments`` says into how many monthly slices it is billed and
    ``starting_installment`` which slice the first billing month shows
    (purchases registered half-way through their installments).
    """

    category_id: Optional[str] = None
    credit_card_id: Optional[str] = None
    type: TransactionType
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    date: date
    description: str = Field(..., min_length=1, max_length=200)

    # AI categorization (filled by the backend)
    ai_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    ai_justification: Optional[str] = None
    needs_user_review: bool = False

    # Location
    location_name: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    city_name: Optional[str] = None

    # Installments
    installments: Optional[int] = Field(default=None, ge=1, le=72)
    starting_installment: Optional[int] = Field(default=None, ge=1)

    notes: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode='after')
    def validate_installments(self) -> 'Transaction':
        if self.starting_installment is not None:
            total = self.installments or 1
            if self.starting_installment > total:
                raise ValueError(
                    "Starting installment cannot exceed the number of installments"
                )
        return self

    @property
    def is_installment_purchase(self) -> bool:
        return (self.installments or 1) > 1

    @property
    def installment_count(self) -> int:
        return self.installments or 1

    @property
    def first_installment(self) -> int:
        return self.starting_installment or 1


class CreditCard(SyncTrackedModel):
    """A credit card with its statement closing day and payment day."""

    card_name: str = Field(..., min_length=1, max_length=60)
    holder_name: str = Field(default="", max_length=80)
    last_four_digits: str = Field(default="", pattern=r"^(\d{4})?$")
    brand: CardBrand = CardBrand.VISA
    card_type: CardType = CardType.STANDARD
    bank: Bank = Bank.OTHER
    payment_day: int = Field(default=10, ge=1, le=31)
    closing_day: int = Field(default=3, ge=1, le=31)
    limit_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    is_active: bool = True
    display_order: int = Field(default=0, ge=0)

    @property
    def masked_number(self) -> str:
        return f"**** **** **** {self.last_four_digits or '****'}"


class FixedBill(SyncTrackedModel):
    """
    A recurring monthly expense tracked outside of transactions.

    Financing and loans carry ``total_installments``; ``paid_installments``
    counts the ones already paid when the bill was added to the app.
    """

    name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    due_day: int = Field(..., ge=1, le=31)
    category: FixedBillCategory = FixedBillCategory.OTHER
    is_active: bool = True
    notes: Optional[str] = Field(default=None, max_length=1000)

    # Used when category == CUSTOM
    custom_category_name: Optional[str] = Field(default=None, max_length=60)
    custom_category_icon: Optional[str] = None
    custom_category_color_hex: Optional[str] = Field(
        default=None, pattern=r"^#[0-9A-Fa-f]{6}$"
    )

    total_installments: Optional[int] = Field(default=None, ge=0)
    paid_installments: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode='after')
    def validate_installments(self) -> 'FixedBill':
        if self.paid_installments is not None and self.total_installments is not None:
            if self.paid_installments > self.total_installments:
                raise ValueError(
                    "Paid installments cannot exceed total installments"
                )
        return self

    @property
    def display_category_name(self) -> str:
        if self.category is FixedBillCategory.CUSTOM and self.custom_category_name:
            return self.custom_category_name
        return self.category.label

    @property
    def display_category_icon(self) -> str:
        if self.category is FixedBillCategory.CUSTOM and self.custom_category_icon:
            return self.custom_category_icon
        return self.category.icon

    @property
    def display_category_color_hex(self) -> str:
        if self.category is FixedBillCategory.CUSTOM and self.custom_category_color_hex:
            return self.custom_category_color_hex
        return self.category.color_hex

    @property
    def has_installments(self) -> bool:
        return bool(self.total_installments)

    @property
    def installments_text(self) -> Optional[str]:
        """e.g. '21/60'."""
        if not self.total_installments:
            return None
        return f"{self.paid_installments or 0}/{self.total_installments}"

    @property
    def remaining_installments(self) -> Optional[int]:
        if self.total_installments is None:
            return None
        return max(0, self.total_installments - (self.paid_installments or 0))

    @property
    def installment_progress(self) -> Optional[float]:
        if not self.total_installments:
            return None
        return (self.paid_installments or 0) / self.total_installments


# =============================================================================
# USER / SESSION
# =============================================================================

class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: str

    @property
    def full_name(self) -> str:
        if self.last_name:
            return f"{self.name} {self.last_name}"
        return self.name


class UserSession(BaseModel):
    user: User
    token: str


ENTITY_TYPES: dict[str, type[SyncTrackedModel]] = {
    "category": Category,
    "transaction": Transaction,
    "credit_card": CreditCard,
    "fixed_bill": FixedBill,
}


def entity_kind(entity: SyncTrackedModel) -> str:
    """Storage kind name for an entity instance."""
    for kind, model in ENTITY_TYPES.items():
        if isinstance(entity, model):
            return kind
    raise TypeError(f"Not a persisted entity: {type(entity).__name__}")
