from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
# Parsed amounts at or above this bound are treated as unreadable.
MAX_AMOUNT = Decimal("1e15")


def to_amount(value: Decimal | float | int | str) -> Decimal:
    """Quantize a monetary value to cents, rounding half away from zero."""
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"Amount out of range: {value!r}") from exc


def parse_amount(value: object) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        candidate = str(value) if not isinstance(value, Decimal) else value
    elif isinstance(value, str):
        candidate = value.strip().replace(",", "").replace("$", "")
        if not candidate:
            return None
    else:
        return None
    try:
        amount = Decimal(candidate)
    except InvalidOperation:
        return None
    if not amount.is_finite() or abs(amount) >= MAX_AMOUNT:
        return None
    return to_amount(amount)


def percent_of(base: Decimal, percent: Decimal | float | int) -> Decimal:
    return to_amount(base * Decimal(str(percent)) / HUNDRED)


def format_amount(value: Decimal) -> str:
    return f"{value:,.2f}"


def format_percent(value: Decimal | float | int) -> str:
    normalized = Decimal(str(value)).normalize()
    if normalized == normalized.to_integral():
        normalized = normalized.quantize(Decimal("1"))
    return f"{normalized}%"
