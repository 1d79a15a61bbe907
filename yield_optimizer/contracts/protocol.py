"""
Lending protocols supported by the optimizer
"""

from enum import IntEnum


class Protocol(IntEnum):
    """
    Identifies the lending protocol that currently holds the optimizer's pooled balance.

    - NONE until the first deposit
    - AAVE: Aave V3 style pool, i.e., per depositor per asset balances
    - COMPOUND: Compound V3 style single asset market
    """

    NONE = 0
    AAVE = 1
    COMPOUND = 2

    def __repr__(self) -> str:
        return f"{self.name}({self.value})"
