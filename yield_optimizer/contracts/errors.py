"""
Contract revert errors
"""

from yield_optimizer.chain.errors import Revert


class InvalidAmount(Revert):
    """Raised for zero or negative amounts"""

    reason = "Amount must be greater than 0"


class InvalidRate(Revert):
    """Rates cannot be negative"""

    reason = "Rate must not be negative"


class Unauthorized(Revert):
    """Caller is not authorized"""

    reason = "Ownable: caller is not the owner"


class InvalidOwner(Revert):
    """Ownership cannot be transferred to the zero address"""

    reason = "Ownable: new owner is the zero address"


class InsufficientBalance(Revert):
    """
    Raised when an account's recorded balance is less than the requested amount
    """

    reason = "Insufficient balance"


class InsufficientAllowance(Revert):
    """
    Raised when a spender's allowance is less than the requested amount
    """

    reason = "ERC20: insufficient allowance"


class InvalidReceiver(Revert):
    """Tokens cannot be sent to the zero address"""

    reason = "ERC20: invalid receiver"


class NoFundsDeposited(Revert):
    """The optimizer has not deposited into any protocol"""

    reason = "No funds deposited"


class UnsupportedAsset(Revert):
    """The market does not support the asset"""

    reason = "Unsupported asset"
