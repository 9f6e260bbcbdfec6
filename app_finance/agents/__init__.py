"""AI Agents package."""

from app_finance.agents.category_agent import (
    AgentCategoryAnswer,
    CategoryAgent,
    parse_answer,
)

__all__ = [
    "AgentCategoryAnswer",
    "CategoryAgent",
    "parse_answer",
]
