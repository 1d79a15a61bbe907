"""
In-process smart contract runtime
"""

from yield_optimizer.chain.accounts import ZERO_ADDRESS, generate_address
from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.contract import Contract, external, nonreentrant
from yield_optimizer.chain.errors import Revert
from yield_optimizer.chain.model import Address, Rate, TokenAmount, TransactionReceipt

__all__ = [
    "Address",
    "Chain",
    "Contract",
    "Rate",
    "Revert",
    "TokenAmount",
    "TransactionReceipt",
    "ZERO_ADDRESS",
    "external",
    "generate_address",
    "nonreentrant",
]
