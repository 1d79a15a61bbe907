"""
Fixed point unit conversions

- token amounts are denominated in the token's smallest unit, e.g., USDC has 6 decimals
- rates are annualized percentages with 8 decimals
"""

from decimal import Decimal
from typing import Final

from yield_optimizer.chain.model import Rate

RATE_DECIMALS: Final[int] = 8

USDC_DECIMALS: Final[int] = 6


def parse_units(value: Decimal | str | int, decimals: int) -> int:
    """
    Converts a human readable amount into the smallest unit

    >>> parse_units("10000", 6)
    10000000000
    >>> parse_units("2.5", 8)
    250000000

    :exception ValueError: if the value has more fractional digits than `decimals`
    """
    amount = Decimal(value).scaleb(decimals)
    if amount != amount.to_integral_value():
        raise ValueError(f"{value} has more than {decimals} decimal places")
    return int(amount)


def format_units(amount: int, decimals: int) -> Decimal:
    """
    Converts an amount denominated in the smallest unit into a human readable amount

    >>> format_units(10000000000, 6)
    Decimal('10000.000000')
    """
    return Decimal(amount).scaleb(-decimals)


def to_rate(percent: Decimal | str | int) -> Rate:
    """
    >>> to_rate("3")
    300000000
    """
    return Rate(parse_units(percent, RATE_DECIMALS))


def rate_to_percent(rate: int) -> Decimal:
    """
    >>> rate_to_percent(250000000)
    Decimal('2.50000000')
    """
    return format_units(rate, RATE_DECIMALS)
