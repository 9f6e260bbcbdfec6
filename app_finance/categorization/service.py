"""
Category suggestion service.

Asks, in order:
1. The backend's categorization endpoint
2. The Gemini agent, when the backend is unreachable and a key is set
3. The local keyword tables

Each step only runs when the one before it gave no answer, so the user
always gets a suggestion, even offline.
"""

from typing import Optional

import structlog

from app_finance.agents.category_agent import AgentCategoryAnswer, CategoryAgent
from app_finance.audit.logger import AuditLogger
from app_finance.categorization.keywords import (
    suggest_fixed_bill_category,
    suggest_transaction_category,
)
from app_finance.models.api import CategorizeBillResponse
from app_finance.models.finance import (
    Category,
    FixedBill,
    FixedBillCategory,
    SuggestionConfidence,
    fold,
)
from app_finance.models.suggestion import (
    CUSTOM_CATEGORY_COLOR,
    FixedBillSuggestion,
    SuggestionSource,
    TransactionSuggestion,
)
from app_finance.services.api.client import APIError
from app_finance.services.api.resources import FixedBillsAPI


logger = structlog.get_logger(__name__)

_OTHER_NAMES = {"outros", "other"}


def confidence_from_score(value: float) -> SuggestionConfidence:
    """Map a 0..1 AI confidence to a suggestion confidence."""
    if value >= 0.8:
        return SuggestionConfidence.HIGH
    if value >= 0.5:
        return SuggestionConfidence.MEDIUM
    return SuggestionConfidence.LOW


def _fixed_bill_from_ai(
    category: str,
    confidence: float,
    reasoning: Optional[str],
    icon: Optional[str],
    is_custom: Optional[bool],
    source: SuggestionSource,
) -> FixedBillSuggestion:
    # "Outros" is the predefined OTHER category, whatever the AI claims
    custom = bool(is_custom) and fold(category.strip()) not in _OTHER_NAMES
    if custom:
        return FixedBillSuggestion(
            category=FixedBillCategory.CUSTOM,
            confidence=confidence_from_score(confidence),
            reasoning=reasoning,
            source=source,
            custom_category_name=category,
            custom_category_icon=icon or "tag.fill",
        )
    return FixedBillSuggestion(
        category=FixedBillCategory.from_api(category),
        confidence=confidence_from_score(confidence),
        reasoning=reasoning,
        source=source,
    )


def fixed_bill_suggestion_from_server(response: CategorizeBillResponse) -> FixedBillSuggestion:
    return _fixed_bill_from_ai(
        response.category, response.confidence, response.reasoning,
        response.icon, response.is_custom, SuggestionSource.SERVER,
    )


def _transaction_from_ai(
    category: str,
    confidence: float,
    reasoning: Optional[str],
    icon: Optional[str],
    is_custom: Optional[bool],
    categories: list[Category],
    source: SuggestionSource,
) -> TransactionSuggestion:
    if is_custom:
        return TransactionSuggestion(
            confidence=confidence_from_score(confidence),
            reasoning=reasoning,
            source=source,
            custom_category_name=category,
            custom_category_icon=icon or "tag.fill",
            custom_category_color_hex=CUSTOM_CATEGORY_COLOR,
        )
    wanted = category.strip().lower()
    matched = next((c for c in categories if c.name.lower() == wanted), None)
    return TransactionSuggestion(
        existing_category=matched,
        confidence=confidence_from_score(confidence),
        reasoning=reasoning,
        source=source,
        custom_category_name=category if matched is None else None,
        custom_category_icon=icon,
    )


class CategorizationService:
    """
    Suggests categories for fixed bills and transactions.

    Every suggestion is audited with its source and confidence.
    """

    def __init__(
        self,
        fixed_bills_api: Optional[FixedBillsAPI] = None,
        agent: Optional[CategoryAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            fixed_bills_api: Backend categorization. None means offline only.
            agent: Gemini second opinion. None or unconfigured skips it.
            audit_logger: Audit logger for suggestions.
        """
        self._api = fixed_bills_api
        self._agent = agent
        self._audit = audit_logger or AuditLogger()

    @property
    def _agent_ready(self) -> bool:
        return self._agent is not None and self._agent.is_available

    async def _from_server(
        self,
        name: str,
        amount: Optional[float],
        existing: list[tuple[str, Optional[str]]],
    ) -> Optional[CategorizeBillResponse]:
        if self._api is None:
            return None
        try:
            return await self._api.suggest_category(name, amount, existing)
        except APIError as e:
            logger.warning("categorize_server_unavailable", error=str(e))
            await self._audit.log_external_service_error("categorize", str(e))
            return None

    async def suggest_for_fixed_bill(
        self,
        bill_name: str,
        amount: Optional[float] = None,
        custom_bills: Optional[list[FixedBill]] = None,
    ) -> FixedBillSuggestion:
        """
        Suggest a category for a fixed bill.

        Args:
            bill_name: Name as typed by the user
            amount: Monthly amount, if known
            custom_bills: The user's bills, whose custom categories the
                AI may reuse
        """
        custom = {
            b.custom_category_name: b.custom_category_icon
            for b in custom_bills or []
            if b.category is FixedBillCategory.CUSTOM and b.custom_category_name
        }

        suggestion: Optional[FixedBillSuggestion] = None
        response = await self._from_server(bill_name, amount, list(custom.items()))
        if response is not None:
            suggestion = fixed_bill_suggestion_from_server(response)
        elif self._agent_ready:
            answer = await self._agent.suggest_fixed_bill(bill_name, amount, list(custom))
            if answer is not None:
                suggestion = self._fixed_bill_from_agent(answer)
        if suggestion is None:
            suggestion = suggest_fixed_bill_category(bill_name)

        await self._audit.log_category_suggested(
            text=bill_name,
            category=suggestion.display_name,
            source=suggestion.source.value,
            confidence=suggestion.confidence.name.lower(),
        )
        return suggestion

    @staticmethod
    def _fixed_bill_from_agent(answer: AgentCategoryAnswer) -> FixedBillSuggestion:
        return _fixed_bill_from_ai(
            answer.category, answer.confidence, answer.reasoning,
            answer.icon, answer.is_custom, SuggestionSource.AGENT,
        )

    async def suggest_for_transaction(
        self,
        description: str,
        categories: list[Category],
        amount: Optional[float] = None,
    ) -> TransactionSuggestion:
        """
        Suggest one of ``categories`` for a purchase.

        The backend endpoint is shared with fixed bills; the user's
        categories are sent as the existing ones.
        """
        suggestion: Optional[TransactionSuggestion] = None
        existing = [(c.name, c.icon_name) for c in categories]
        response = await self._from_server(description, amount, existing)
        if response is not None:
            suggestion = _transaction_from_ai(
                response.category, response.confidence, response.reasoning,
                response.icon, response.is_custom, categories, SuggestionSource.SERVER,
            )
        elif self._agent_ready:
            answer = await self._agent.suggest_transaction(
                description, [c.name for c in categories], amount
            )
            if answer is not None:
                suggestion = _transaction_from_ai(
                    answer.category, answer.confidence, answer.reasoning,
                    answer.icon, answer.is_custom, categories, SuggestionSource.AGENT,
                )
        if suggestion is None:
            suggestion = suggest_transaction_category(description, categories)

        await self._audit.log_category_suggested(
            text=description,
            category=suggestion.display_name,
            source=suggestion.source.value,
            confidence=suggestion.confidence.name.lower(),
        )
        return suggestion
