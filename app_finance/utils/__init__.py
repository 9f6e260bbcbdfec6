"""Small shared helpers."""

from app_finance.utils.currency import format_brl, parse_brl, to_cents

__all__ = ["format_brl", "parse_brl", "to_cents"]
