"""
Currency Support Module

Currency tags for accounts and Decimal helpers for monetary values.
NEVER uses float for monetary values; floats handed in are converted
through their string form.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from enum import Enum
from typing import Union

from .exceptions import InvalidAmount

# Set global decimal context for financial precision
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 currency codes with precision info"""
    NGN = ("NGN", 2)  # Nigerian Naira, 2 decimal places
    USD = ("USD", 2)  # US Dollar, 2 decimal places

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @classmethod
    def from_code(cls, code: Union[str, "Currency"]) -> "Currency":
        """Look up a currency by its code"""
        if isinstance(code, Currency):
            return code
        try:
            return cls[code.upper()]
        except KeyError:
            raise ValueError(f"Unsupported currency '{code}'") from None


def to_decimal(value: Union[Decimal, int, str, float]) -> Decimal:
    """
    Convert a user-supplied amount to Decimal.

    Raises:
        InvalidAmount: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidAmount(f"Invalid amount: {value!r}") from None

    if not result.is_finite():
        raise InvalidAmount(f"Invalid amount: {value!r}")
    return result


def quantize(value: Decimal, currency: Currency) -> Decimal:
    """Round a Decimal half-up to the currency's precision"""
    return value.quantize(
        Decimal('0.1') ** currency.precision,
        rounding=ROUND_HALF_UP
    )


def format_amount(value: Decimal, currency: Currency) -> str:
    """Format for display"""
    return f"{currency.code} {value:,.{currency.precision}f}"
