"""Form validation package."""

from app_finance.validation.validator import FormValidator

__all__ = ["FormValidator"]
