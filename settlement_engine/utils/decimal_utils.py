from decimal import Decimal
from typing import Union

from settlement_engine.config import settings

CENT = Decimal("0.01")
TOLERANCE = settings.TOLERANCE

# ISO 4217 minor units that differ from the usual two decimals
_ZERO_DECIMAL_CURRENCIES = {"BIF", "CLP", "DJF", "GNF", "HUF", "ISK", "JPY", "KMF", "KRW", "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF"}
_THREE_DECIMAL_CURRENCIES = {"BHD", "IQD", "JOD", "KWD", "LYD", "OMR", "TND"}

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Coerce ints, floats and strings to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_decimal(value: Number, precision: Decimal = CENT) -> Decimal:
    """
    Round a value to the specified precision.

    Uses the context rounding (ROUND_HALF_EVEN), so 100.005 becomes 100.00
    while 100.015 becomes 100.02.

    Example:
        >>> round_decimal(Decimal("43.333333"))
        Decimal('43.33')
    """
    return to_decimal(value).quantize(precision)


def currency_quantum(currency: str) -> Decimal:
    """Smallest unit of a currency, e.g. Decimal('0.01') for USD, Decimal('1') for JPY."""
    code = (currency or "").upper()
    if code in _ZERO_DECIMAL_CURRENCIES:
        return Decimal("1")
    if code in _THREE_DECIMAL_CURRENCIES:
        return Decimal("0.001")
    return CENT


def is_settled(value: Decimal, tolerance: Decimal = TOLERANCE) -> bool:
    return abs(value) < tolerance
