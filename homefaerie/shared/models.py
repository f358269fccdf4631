"""Core value types shared by homefaerie services."""

from decimal import Decimal, InvalidOperation
from typing import Union

# Prices are displayed at a fixed scale of four decimal places
PRICE_SCALE = Decimal("0.0001")


def as_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """Convert a raw numeric value to an exact Decimal.

    Floats are converted through their string form so that binary rounding
    artifacts never reach the decision.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, float):
        value = str(value)
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid price value: {value!r}") from e

    if not number.is_finite():
        raise ValueError(f"Price must be finite, got {value!r}")

    return number


def to_price(value: Union[Decimal, int, float, str]) -> Decimal:
    """Normalize a price to a fixed-scale Decimal for display.

    Args:
        value: The raw price as returned by the database driver or config.

    Returns:
        The price quantized to PRICE_SCALE.

    Raises:
        ValueError: If the value is not a finite number.
    """
    return as_decimal(value).quantize(PRICE_SCALE)
