from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Context, Decimal

# Wide enough for any finite float at three decimal places.
_CONTEXT = Context(prec=400)


def _non_finite(value: float) -> str | None:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "-∞" if value < 0 else "∞"
    return None


def _quantize(value: float, places: int) -> Decimal:
    # Decimal(value) is the exact binary value; ties round away from zero as in Intl/toFixed.
    exp = Decimal(1).scaleb(-places)
    return Decimal(value).quantize(exp, rounding=ROUND_HALF_UP, context=_CONTEXT)


def format_currency(value: float) -> str:
    """USD with no decimals: 1234.5 -> "$1,235", -50 -> "-$50"."""
    special = _non_finite(value)
    if special is not None:
        return f"${special}" if not special.startswith("-") else f"-${special[1:]}"
    amount = _quantize(value, 0)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,f}"


def format_percentage(value: float) -> str:
    """One decimal place plus a percent sign: 12.345 -> "12.3%"."""
    special = _non_finite(value)
    if special is not None:
        return f"{special}%"
    return f"{_quantize(value, 1):f}%"


def format_number(value: float) -> str:
    """en-US grouping with up to three fraction digits: 1234567.891 -> "1,234,567.891"."""
    special = _non_finite(value)
    if special is not None:
        return special
    text = f"{_quantize(value, 3):,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text
