"""
Utility functions used by costbasis modules
"""
from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR
import datetime
from typing import Optional, Union


#  Quantities carry 8 decimal places to support fractional (e.g. crypto) units.
UNITS_PLACES = 8
#  Money amounts are reported to the cent.
MONEY_PLACES = 2
#  Holding period (in days) at which realized gain becomes long-term.
LONGTERM_DAYS = 365

ZERO = Decimal("0")


def to_decimal(value: Union[None, int, str, Decimal]) -> Decimal:
    """Convert to Decimal, reading None as zero.

    Never pass a float here; binary floating point has no place in tax figures.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        raise TypeError(f"Refusing to convert float {value!r} to Decimal")
    return Decimal(value)


def round_decimal(number: Union[int, Decimal], places: int) -> Decimal:
    """Round half up to the given number of decimal places."""
    return Decimal(number).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round_units(number: Union[int, Decimal]) -> Decimal:
    return round_decimal(number, UNITS_PLACES)


def round_money(number: Union[int, Decimal]) -> Decimal:
    return round_decimal(number, MONEY_PLACES)


def round_int(number: Union[int, Decimal]) -> int:
    """Round half up to the nearest integer (2.5 -> 3, -2.5 -> -2)."""
    return int((Decimal(number) + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def days_between(
    opendt: Union[datetime.date, datetime.datetime],
    closedt: Union[datetime.date, datetime.datetime],
) -> int:
    """Whole calendar days from opendt to closedt; time of day is ignored."""
    return (_as_date(closedt) - _as_date(opendt)).days


def is_longterm(holdingperioddays: Optional[int]) -> bool:
    """Classify a holding period; exactly LONGTERM_DAYS is long-term.

    A missing holding period is classified long-term.
    """
    return holdingperioddays is None or holdingperioddays >= LONGTERM_DAYS


def _as_date(value: Union[datetime.date, datetime.datetime]) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    return value
