"""
Category suggestion models.

A suggestion is only ever a proposal shown next to the category picker;
the user confirms or overrides it.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app_finance.models.finance import Category, FixedBillCategory, SuggestionConfidence


CUSTOM_CATEGORY_COLOR = "#14B8A6"


class SuggestionSource(str, Enum):
    SERVER = "server"
    AGENT = "agent"
    KEYWORDS = "keywords"


_CONFIDENCE_TEXT = {
    # (remote AI, local keywords)
    SuggestionConfidence.HIGH: ("Alta confiança", "Sugestão forte"),
    SuggestionConfidence.MEDIUM: ("Média confiança", "Sugestão"),
    SuggestionConfidence.LOW: ("Baixa confiança", "Possível"),
    SuggestionConfidence.NONE: ("", ""),
}


class _Suggestion(BaseModel):
    confidence: SuggestionConfidence
    matched_keyword: Optional[str] = None
    reasoning: Optional[str] = Field(
        default=None,
        description="Explanation given by the AI, if any"
    )
    source: SuggestionSource = SuggestionSource.KEYWORDS
    custom_category_name: Optional[str] = None
    custom_category_icon: Optional[str] = None

    @property
    def is_from_ai(self) -> bool:
        return self.source is not SuggestionSource.KEYWORDS

    @property
    def confidence_text(self) -> str:
        remote, local = _CONFIDENCE_TEXT[self.confidence]
        return remote if self.is_from_ai else local

    @property
    def source_icon(self) -> str:
        return "brain.head.profile" if self.is_from_ai else "sparkles"


class FixedBillSuggestion(_Suggestion):
    """Suggested category for a fixed bill."""

    category: FixedBillCategory = FixedBillCategory.OTHER

    @property
    def is_custom_category(self) -> bool:
        return self.category is FixedBillCategory.CUSTOM and self.custom_category_name is not None

    @property
    def display_name(self) -> str:
        return self.custom_category_name or self.category.label

    @property
    def display_icon(self) -> str:
        return self.custom_category_icon or self.category.icon


class TransactionSuggestion(_Suggestion):
    """
    Suggested category for a transaction.

    Points at one of the user's categories when one fits; otherwise
    proposes a new category by name.
    """

    existing_category: Optional[Category] = None
    custom_category_color_hex: Optional[str] = None

    @property
    def is_custom_category(self) -> bool:
        return self.existing_category is None and self.custom_category_name is not None

    @property
    def display_name(self) -> str:
        if self.existing_category is not None:
            return self.existing_category.name
        return self.custom_category_name or "Sem categoria"

    @property
    def display_icon(self) -> str:
        if self.existing_category is not None:
            return self.existing_category.icon_name
        return self.custom_category_icon or "tag.fill"

    @property
    def display_color_hex(self) -> str:
        if self.existing_category is not None:
            return self.existing_category.color_hex
        return self.custom_category_color_hex or CUSTOM_CATEGORY_COLOR
