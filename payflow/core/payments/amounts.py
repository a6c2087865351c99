"""Conversions between human token amounts and smallest integer units."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Any, Optional

from .errors import IntentValidationError

DUST_THRESHOLD = Decimal("0.0001")


def parse_amount(value: Any) -> Decimal:
    """Parse a user-entered amount ("10", "10.00", 1.5) into a positive Decimal."""
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip().replace(",", "") if value is not None else ""
        try:
            amount = Decimal(text)
        except (InvalidOperation, ValueError):
            raise IntentValidationError(f"Invalid amount: {value!r}") from None
    if not amount.is_finite() or amount <= 0:
        raise IntentValidationError("Amount must be greater than zero")
    return amount


def to_base_units(value: Any, decimals: int) -> int:
    """Convert a human amount to the token's smallest unit, rounding down.

    The conversion happens once, in Decimal, so "10.00" USDC is always
    10000000 and never passes through a float.
    """
    amount = parse_amount(value)
    raw = (amount * (Decimal(10) ** int(decimals))).quantize(Decimal("1"), rounding=ROUND_DOWN)
    if raw <= 0:
        raise IntentValidationError(
            f"Amount {value} is smaller than the token's smallest unit",
        )
    return int(raw)


def from_base_units(raw: Any, decimals: int) -> Optional[Decimal]:
    if raw is None:
        return None
    try:
        return Decimal(str(raw)) / (Decimal(10) ** int(decimals))
    except (InvalidOperation, TypeError, ValueError):
        return None


def format_token_amount(raw: Any, decimals: int) -> str:
    """Display form of a raw amount: 4 decimals, "<0.0001" for dust."""
    value = from_base_units(raw, decimals)
    if value is None or value < DUST_THRESHOLD:
        return "<0.0001"
    return str(value.quantize(DUST_THRESHOLD, rounding=ROUND_DOWN))


def decimal_to_str(value: Optional[Decimal], places: int = 6) -> str:
    if value is None:
        return "0"
    precision = max(0, min(places, 18))
    quant = Decimal("1") if precision == 0 else Decimal(1).scaleb(-precision)
    try:
        quantized = value.quantize(quant, rounding=ROUND_DOWN)
    except (InvalidOperation, TypeError):
        quantized = value
    formatted = format(quantized.normalize(), "f")
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    return formatted or "0"


def parse_int(value: Any, default: int = 0) -> int:
    """Parse a service integer that may arrive as int, decimal string or hex string."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(Decimal(text))
    except (InvalidOperation, ValueError):
        return default


def parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
