"""
Account support
"""

from algosdk import account
from algosdk.constants import ZERO_ADDRESS as _ZERO_ADDRESS
from algosdk.encoding import is_valid_address

from yield_optimizer.chain.errors import InvalidAddress
from yield_optimizer.chain.model import Address

# used as the sender for read-only calls made from outside a transaction, and as the owner once ownership is renounced
ZERO_ADDRESS = Address(_ZERO_ADDRESS)


def generate_address() -> Address:
    """
    Generates a new account and returns its address.

    The private key is discarded because transactions are not signed by the contract runtime.
    """
    _private_key, address = account.generate_account()
    return Address(address)


def generate_addresses(count: int) -> list[Address]:
    """
    :return: `count` newly generated account addresses
    """
    return [generate_address() for _ in range(count)]


def check_address(address: str) -> Address:
    """
    :exception InvalidAddress: if the address is not a valid account address
    """
    if not is_valid_address(address):
        raise InvalidAddress(f"invalid address: {address}")
    return Address(address)
