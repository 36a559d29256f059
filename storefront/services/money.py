"""
Money Utilities - integer minor units.

Prices are stored as integers in the smallest currency unit (kuruş, cents).
Decimal is only used at the display/API boundary to avoid float rounding.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

MINOR_UNITS_PER_MAJOR = 100

CURRENCY_SYMBOLS = {
    "TRY": "₺",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def to_decimal(value: Union[str, int, float, Decimal, None]) -> Decimal:
    """
    Convert any value to Decimal safely.

    Returns Decimal("0") for None or unparseable input.
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        if isinstance(value, float):
            # Go through str to keep the printed precision
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def to_minor_units(value: Union[str, int, float, Decimal]) -> int:
    """
    Convert a major-unit amount to minor units.

    Args:
        value: Amount in major units (e.g., 100.50)

    Returns:
        Amount in minor units (e.g., 10050)
    """
    decimal_value = to_decimal(value)
    return int((decimal_value * MINOR_UNITS_PER_MAJOR).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(minor: int) -> Decimal:
    """Convert minor units (e.g., 10050) to a major-unit Decimal (100.50)."""
    return Decimal(minor) / Decimal(MINOR_UNITS_PER_MAJOR)


def line_total(unit_price: int, quantity: int) -> int:
    """Total for one cart line in minor units."""
    return unit_price * quantity


def format_money(minor: int, currency: str = "TRY") -> str:
    """
    Format a minor-unit amount with its currency symbol.

    Args:
        minor: Amount in minor units
        currency: ISO currency code

    Returns:
        Formatted string, e.g. "₺1,249.90" or "$12.00"
    """
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    amount = from_minor_units(minor).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    formatted = f"{amount:,.2f}"
    if currency in CURRENCY_SYMBOLS:
        return f"{symbol}{formatted}"
    return f"{formatted} {symbol}"

