"""
Gemini category agent.

Second opinion for fixed-bill and transaction categories when the
backend's categorization endpoint cannot be reached.

BOUNDARIES:
- CAN: Propose a category from the bill or purchase name
- CANNOT: Save anything; the user confirms every suggestion
- CANNOT: Invent a predefined bill category outside the known list

The LLM is a CLASSIFIER here. Anything it answers that does not parse
into a known shape is discarded and the caller falls back to keywords.
"""

import json
from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field, ValidationError

from app_finance.config import GeminiSettings, get_settings
from app_finance.models.finance import FixedBillCategory


logger = structlog.get_logger(__name__)


class AgentCategoryAnswer(BaseModel):
    """What the model is asked to answer."""

    category: str = Field(..., min_length=1)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reasoning: str = "Sugestão baseada no nome"
    icon: Optional[str] = None
    is_custom: bool = False


def parse_answer(text: str) -> Optional[AgentCategoryAnswer]:
    """Pull the first JSON object out of a model reply."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        return AgentCategoryAnswer.model_validate(json.loads(text[start:end]))
    except (json.JSONDecodeError, ValidationError):
        return None


class CategoryAgent:
    """
    Category classifier backed by Gemini.

    Usage:
        agent = CategoryAgent()
        if agent.is_available:
            answer = await agent.suggest_fixed_bill("Conta Enel", 180.0)
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._model = None
        if self._settings.is_configured:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def is_available(self) -> bool:
        return self._model is not None

    async def _ask(self, prompt: str) -> Optional[AgentCategoryAnswer]:
        if self._model is None:
            return None
        try:
            response = await self._model.generate_content_async(prompt)
            text = response.text.strip()
        except Exception as e:
            # any SDK or transport failure means "no opinion"
            logger.warning("category_agent_failed", error=str(e))
            return None

        answer = parse_answer(text)
        if answer is None:
            logger.warning("category_agent_unparseable", reply=text[:200])
        return answer

    async def suggest_fixed_bill(
        self,
        bill_name: str,
        amount: Optional[float] = None,
        custom_categories: Optional[list[str]] = None,
    ) -> Optional[AgentCategoryAnswer]:
        """
        Suggest a category for a recurring bill.

        Returns None when the agent is not configured or its answer is
        unusable.
        """
        categories = [c.value for c in FixedBillCategory.predefined()]
        amount_line = f"Valor mensal: R$ {amount:.2f}\n" if amount is not None else ""
        custom_line = (
            f"Categorias personalizadas do usuário: {', '.join(custom_categories)}\n"
            if custom_categories else ""
        )

        prompt = f"""You are helping categorize a recurring monthly bill in a Brazilian personal finance app.

Bill name: {bill_name}
{amount_line}{custom_line}
Predefined categories: {', '.join(categories)}

Use a predefined category whenever one fits. Only when none fits, answer a short
pt-BR category name with "is_custom": true and an SF Symbol icon name.
"other" is always a predefined category, never custom.

Respond with ONLY a JSON object in this exact format:
{{"category": "category_name", "confidence": 0.8, "reasoning": "breve explicação", "icon": null, "is_custom": false}}

Be conservative - if unsure, use "other" with a low confidence."""

        return await self._ask(prompt)

    async def suggest_transaction(
        self,
        description: str,
        category_names: list[str],
        amount: Optional[float] = None,
    ) -> Optional[AgentCategoryAnswer]:
        """Pick one of the user's categories for a purchase, or propose a new one."""
        amount_line = f"Valor: R$ {amount:.2f}\n" if amount is not None else ""

        prompt = f"""You are helping categorize a purchase in a Brazilian personal finance app.

Description: {description}
{amount_line}
The user's categories: {', '.join(category_names)}

Answer one of the user's categories, spelled exactly as listed. Only when none fits,
answer a short pt-BR category name with "is_custom": true and an SF Symbol icon name.

Respond with ONLY a JSON object in this exact format:
{{"category": "category_name", "confidence": 0.8, "reasoning": "breve explicação", "icon": null, "is_custom": false}}"""

        return await self._ask(prompt)
