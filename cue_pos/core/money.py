"""Helpers for working with peso (₱) money values."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

_DECIMAL_2_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Convert *value* to a :class:`~decimal.Decimal` rounded to two places."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        quantized = value
    else:
        try:
            quantized = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            return ZERO
    return quantized.quantize(_DECIMAL_2_PLACES, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """Exact decimal for rates and durations; no rounding."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_money(value: Any) -> Decimal:
    """Like :func:`to_money` but strict: garbage, ``None`` and NaN raise.

    Use it wherever the value is stored rather than displayed.
    """
    amount = to_decimal(value)
    if not amount.is_finite():
        raise InvalidOperation(f"not a finite amount: {value!r}")
    return amount.quantize(_DECIMAL_2_PLACES, rounding=ROUND_HALF_UP)


def fmt_money(value: Any, currency: str = "₱") -> str:
    """Format *value* with the currency sign and two decimal places."""
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency}{abs(amount):,.2f}"


def money_to_json(value: Any) -> float:
    """JSON number for a money value; the remote blob stores plain numbers."""
    return float(to_money(value))
