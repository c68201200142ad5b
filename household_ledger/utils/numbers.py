"""
Number Utilities

Rounding, locale-aware formatting and lenient parsing of decimal input.

Amounts come from two places: the record store (numbers, sometimes numeric
strings) and form input typed by people who write "12,50" as often as
"12.50". Everything here is total: non-finite or unparseable values turn
into 0 (for arithmetic) or an empty string (for display), never an error.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

DEFAULT_LOCALE = "de-DE"
DEFAULT_DECIMALS = 2

# locale -> (group separator, decimal separator, symbol goes after the number)
_LOCALE_FORMATS: dict[str, tuple[str, str, bool]] = {
    "de-DE": (".", ",", True),
    "es-ES": (".", ",", True),
    "en-US": (",", ".", False),
    "en-GB": (",", ".", False),
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "EUR": "€",
    "USD": "$",
}

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def is_finite_number(value: Any) -> bool:
    """True for real ints/floats that are not NaN or infinite (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def safe_number(value: Any) -> float:
    """
    Coerce a stored amount to a float.

    Numbers pass through, numeric strings are parsed, anything else is 0.
    """
    if is_finite_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return 0.0
        return parsed if math.isfinite(parsed) else 0.0
    return 0.0


def round_to_decimals(value: float, decimals: int = DEFAULT_DECIMALS) -> float:
    """
    Round half away from zero.

    Goes through the shortest decimal representation of the float so that
    1.005 rounds to 1.01, the way a person reading the number expects.
    """
    if not is_finite_number(value):
        return 0.0

    quantum = Decimal(1).scaleb(-decimals)
    try:
        rounded = Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many digits for the decimal context; nothing left to round
        return float(value)
    result = float(rounded)
    # Avoid handing out -0.0
    return result + 0.0


def _locale_format(locale: str) -> tuple[str, str, bool]:
    return _LOCALE_FORMATS.get(locale, _LOCALE_FORMATS[DEFAULT_LOCALE])


def format_decimal(
    value: float,
    decimals: int = DEFAULT_DECIMALS,
    locale: str = DEFAULT_LOCALE,
) -> str:
    """Format with grouping and a fixed number of decimals, e.g. 1.234,50 for de-DE."""
    safe_value = round_to_decimals(value, decimals) if is_finite_number(value) else 0.0
    group_sep, decimal_sep, _ = _locale_format(locale)
    text = f"{safe_value:,.{decimals}f}"
    return text.translate(str.maketrans({",": group_sep, ".": decimal_sep}))


def format_currency(
    value: float,
    currency: str,
    locale: str = DEFAULT_LOCALE,
    decimals: int = DEFAULT_DECIMALS,
) -> str:
    """Format an amount with its currency symbol placed as the locale does."""
    code = getattr(currency, "value", currency)
    symbol = CURRENCY_SYMBOLS.get(code, code)
    number = format_decimal(value, decimals, locale)
    _, _, symbol_after = _locale_format(locale)

    if symbol_after:
        return f"{number} {symbol}"
    if number.startswith("-"):
        return f"-{symbol}{number[1:]}"
    return f"{symbol}{number}"


def to_fixed_string(value: float, decimals: int = DEFAULT_DECIMALS) -> str:
    if not is_finite_number(value):
        return ""
    return f"{round_to_decimals(value, decimals):.{decimals}f}"


def format_percentage(value: float, decimals: int = DEFAULT_DECIMALS) -> str:
    return to_fixed_string(value, decimals)


def normalize_decimal_input(value: Optional[str]) -> str:
    """Turn the first decimal comma into a dot: '12,5' -> '12.5'."""
    return (value or "").replace(",", ".", 1)


def parse_decimal(value: Optional[str]) -> Optional[float]:
    """
    Parse user input leniently.

    Accepts a comma as decimal separator and ignores trailing garbage after
    the leading number ("12,50 €" -> 12.5). Returns None when there is no
    number to read, or when it does not fit in a finite float ("1e400").
    """
    if not value:
        return None

    match = _LEADING_NUMBER.match(normalize_decimal_input(value))
    if match is None:
        return None

    try:
        parsed = float(Decimal(match.group(1)))
    except (InvalidOperation, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def format_decimal_input(value: float, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render an amount back into an input field: 12.5 -> '12,50'."""
    if not is_finite_number(value):
        return ""
    return to_fixed_string(value, decimals).replace(".", ",")
