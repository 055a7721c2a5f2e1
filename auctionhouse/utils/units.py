"""Conversion between display amounts and on-chain base units."""

from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Union

WEI_PER_ETHER = 10**18


def to_wei(amount: Union[str, int, float, Decimal], decimals: int = 18) -> int:
    """
    Convert a human amount ("1.5") to integer base units.

    Fractions below one base unit are truncated.
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e
    if not value.is_finite() or value < 0:
        raise ValueError(f"Amount must be a non-negative number: {amount!r}")
    scaled = (value * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def from_wei(amount: int, decimals: int = 18) -> Decimal:
    """Convert integer base units back to a Decimal amount."""
    return Decimal(amount) / (Decimal(10) ** decimals)


def format_amount(amount: int, places: int = 4, decimals: int = 18) -> str:
    """Format base units for display, e.g. 1500000000000000000 -> '1.5000'."""
    return f"{from_wei(amount, decimals):.{places}f}"
