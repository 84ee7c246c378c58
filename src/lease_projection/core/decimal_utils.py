# src/lease_projection/core/decimal_utils.py
"""
Decimal Arithmetic Utilities

Helpers around ``decimal.Decimal`` used by every engine component.
Thirty years of compounding in binary floating point drifts by whole
currency units, so all money and rates stay in Decimal end to end.
"""

from contextlib import contextmanager
from decimal import (
    Context,
    Decimal,
    InvalidOperation,
    ROUND_CEILING,
    ROUND_HALF_UP,
    localcontext,
)
from typing import Iterable, Iterator, Optional, Union

from .constants import DECIMAL_PRECISION, ONE, ZERO

Numeric = Union[Decimal, int, float, str]


@contextmanager
def calculation_context() -> Iterator[Context]:
    """
    Activate the engine's decimal context for the current thread.

    Precision 28 with ROUND_HALF_UP. The context is local so concurrent
    runs in other threads keep their own settings.
    """
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        ctx.rounding = ROUND_HALF_UP
        yield ctx


def to_decimal(value: Optional[Numeric], default: Optional[Decimal] = None) -> Decimal:
    """
    Convert a number to Decimal without binary float artefacts.

    Floats are routed through ``str`` so ``0.1`` becomes ``Decimal('0.1')``.

    Args:
        value: Value to convert
        default: Returned when value is None

    Returns:
        Decimal value

    Raises:
        ValueError: If the value cannot be parsed or is not finite

    Examples:
        >>> to_decimal(0.1)
        Decimal('0.1')
    """
    if value is None:
        if default is None:
            raise ValueError("Cannot convert None to Decimal")
        return default
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"Cannot convert boolean {value!r} to Decimal")
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip().replace(",", ""))
        except InvalidOperation:
            raise ValueError(f"Cannot convert {value!r} to Decimal") from None
    if not result.is_finite():
        raise ValueError(f"Non-finite decimal value: {value!r}")
    return result


def divide_safe(numerator: Decimal, denominator: Decimal,
                default: Decimal = ZERO) -> Decimal:
    """Divide, returning ``default`` when the denominator is zero."""
    if denominator == ZERO:
        return default
    return numerator / denominator


def decimal_sum(values: Iterable[Decimal]) -> Decimal:
    """Sum Decimals starting from Decimal zero (never int 0)."""
    total = ZERO
    for value in values:
        total += value
    return total


def round_half_up_int(value: Decimal) -> int:
    """Round to the nearest whole number, halves away from zero."""
    return int(value.quantize(ONE, rounding=ROUND_HALF_UP))


def ceil_int(value: Decimal) -> int:
    """Smallest integer not less than value."""
    return int(value.quantize(ONE, rounding=ROUND_CEILING))


def escalation_steps(year: int, base_year: int, frequency_years: int) -> int:
    """
    Number of completed escalation intervals between base_year and year.

    Escalation is stepwise: growth applies once every ``frequency_years``
    and is flat within an interval.

    Examples:
        >>> escalation_steps(2031, 2028, 2)
        1
    """
    if frequency_years <= 0:
        raise ValueError(f"Escalation frequency must be positive, got {frequency_years}")
    elapsed = year - base_year
    if elapsed <= 0:
        return 0
    return elapsed // frequency_years


def compound(base: Decimal, rate: Decimal, periods: int) -> Decimal:
    """
    Compound ``base`` by ``rate`` for an integer number of periods.

    Formula: base * (1 + rate) ** periods
    """
    if periods <= 0:
        return base
    return base * (ONE + rate) ** periods
