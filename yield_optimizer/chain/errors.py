"""
Contract runtime errors
"""


class Revert(Exception):
    """
    Aborts the transaction.

    When raised from within a transaction, all contract state changes made by the transaction are rolled back
    and its events are discarded. Subclasses define the default revert reason.
    """

    reason: str = "execution reverted"

    def __init__(self, reason: str | None = None):
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)


class ContractNotFound(Revert):
    """
    Raised when a contract address does not resolve to a deployed contract of the expected type
    """

    reason = "contract not found"


class ReentrantCall(Revert):
    """
    Raised when a non-reentrant entry point is entered while it is already executing
    """

    reason = "ReentrancyGuard: reentrant call"


class NoTransactionContext(Exception):
    """
    State changing contract methods can only be invoked within a transaction, i.e., via `Chain.transact()`
    or a connected contract.
    """


class InvalidAddress(ValueError):
    """
    Raised when a transaction sender is not a valid address
    """
