"""
Money helpers for SplitLedger

Amounts travel as Decimal at the edges and as integer minor units
(cents, paise) inside every computation.
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, str, Decimal]

MINOR_UNIT_DIGITS = 2


def minor_unit(digits: int = MINOR_UNIT_DIGITS) -> Decimal:
    """Smallest representable amount, e.g. Decimal('0.01')"""
    return Decimal(1).scaleb(-digits)


def to_decimal(value: Number) -> Decimal:
    """Convert user input to Decimal without going through binary floats"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Amounts cannot be booleans")
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as error:
        raise ValueError(f"Not a number: {value!r}") from error
    if not d.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return d


def quantize(value: Number, digits: int = MINOR_UNIT_DIGITS) -> Decimal:
    """Round half-up to the minor unit"""
    return to_decimal(value).quantize(minor_unit(digits), rounding=ROUND_HALF_UP)


def to_minor(value: Number, digits: int = MINOR_UNIT_DIGITS) -> int:
    """Decimal amount -> integer count of minor units"""
    return int(quantize(value, digits).scaleb(digits))


def from_minor(units: int, digits: int = MINOR_UNIT_DIGITS) -> Decimal:
    """Integer count of minor units -> Decimal amount"""
    return Decimal(int(units)).scaleb(-digits).quantize(minor_unit(digits))


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero"""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    q, r = divmod(abs(numerator), denominator)
    if 2 * r >= denominator:
        q += 1
    return q if numerator >= 0 else -q


def is_zero(units: int) -> bool:
    """True when an amount is within one minor unit of zero"""
    return abs(units) < 1
