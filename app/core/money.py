"""Decimal <-> minor-unit conversion at the HTTP boundary.

Everything below the routers works in integer minor units (paise). These two
functions are the only place a decimal amount is parsed or rendered.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from app.core.exceptions import InvalidAmountError

MINOR_PER_UNIT = 100
# BSON int64
MAX_MINOR_UNITS = 2**63 - 1

_TWO_PLACES = Decimal("0.01")


def to_minor_units(value: Any) -> int:
    """Parse a decimal amount ("10.50", 10.5, 10) into positive integer minor units.

    Rounds half-up to two places before converting. Raises InvalidAmountError for
    anything non-numeric, non-finite, zero/negative after rounding, or too large.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError("Amount is required and must be a number")
    try:
        # str() first so floats parse as written (10.1 -> "10.1"), not as binary fractions
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmountError("Amount must be a number", details={"amount": str(value)})
    if not amount.is_finite():
        raise InvalidAmountError("Amount must be a finite number", details={"amount": str(value)})
    try:
        rounded = amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # more digits than the decimal context can hold
        raise InvalidAmountError("Amount is too large", details={"amount": str(value)})
    minor = int(rounded * MINOR_PER_UNIT)
    if minor <= 0:
        raise InvalidAmountError("Amount must be greater than zero", details={"amount": str(value)})
    if minor > MAX_MINOR_UNITS:
        raise InvalidAmountError("Amount is too large", details={"amount": str(value)})
    return minor


def format_minor_units(minor: int) -> str:
    """Render minor units as a decimal string with exactly two fractional digits."""
    return str((Decimal(minor) / MINOR_PER_UNIT).quantize(_TWO_PLACES))
