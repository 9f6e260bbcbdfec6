"""Formatting and parsing of Brazilian Real amounts."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CENT = Decimal("0.01")

_ALLOWED = re.compile(r"^[0-9.,]+$")


def to_cents(value: Union[Decimal, float, int, str]) -> Decimal:
    """Quantize to cents. Floats go through str() to avoid binary noise."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_brl(amount: Union[Decimal, float, int], include_symbol: bool = True) -> str:
    """Format an amount the pt-BR way.

    Example:
        >>> format_brl(Decimal("1234.56"))
        'R$ 1.234,56'
        >>> format_brl(-1)
        '-R$ 1,00'
    """
    value = to_cents(amount)
    sign = "-" if value < 0 else ""
    # en-US grouping, then swap the separators
    digits = f"{abs(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    if include_symbol:
        return f"{sign}R$ {digits}"
    return f"{sign}{digits}"


def parse_brl(text: str) -> Decimal:
    """Parse a user-typed amount.

    Accepts "R$ 1.234,56", "1234,56", "1.234" and "1234.56". With both
    separators present the last one is the decimal separator. A lone dot
    followed by exactly three digits is a thousands separator.

    Raises:
        ValueError: when the text is not an amount.
    """
    if text is None:
        raise ValueError("Amount is required")

    cleaned = text.strip().replace("R$", "").replace("\u00a0", "").replace(" ", "")
    negative = cleaned.startswith("-")
    if negative:
        cleaned = cleaned[1:]

    if not cleaned or not _ALLOWED.match(cleaned):
        raise ValueError(f"Invalid amount: '{text}'")

    has_comma = "," in cleaned
    has_dot = "." in cleaned

    if has_comma and has_dot:
        if cleaned.rfind(",") > cleaned.rfind("."):
            normalized = cleaned.replace(".", "").replace(",", ".")
        else:
            normalized = cleaned.replace(",", "")
    elif has_comma:
        if cleaned.count(",") > 1:
            raise ValueError(f"Invalid amount: '{text}'")
        normalized = cleaned.replace(",", ".")
    elif has_dot:
        groups = cleaned.split(".")
        if len(groups) > 2 or len(groups[-1]) == 3:
            if not all(len(g) == 3 for g in groups[1:]):
                raise ValueError(f"Invalid amount: '{text}'")
            normalized = "".join(groups)
        else:
            normalized = cleaned
    else:
        normalized = cleaned

    try:
        value = to_cents(normalized)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: '{text}'")

    return -value if negative else value
