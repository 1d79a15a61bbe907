"""
Smart contract base class and method decorators

Contracts keep all mutable state in a single `state` object, which the chain snapshots before each transaction
and restores when the transaction reverts. Everything else on a contract instance is set at deployment and is
treated as immutable.
"""

import functools
from typing import Any, Callable, Generic, TypeVar, TYPE_CHECKING, cast

from yield_optimizer.chain.errors import ReentrantCall
from yield_optimizer.chain.model import Address, ContractId, TransactionReceipt

if TYPE_CHECKING:
    from yield_optimizer.chain.chain import Chain

S = TypeVar("S")

F = TypeVar("F", bound=Callable[..., Any])


def external(fn: F | None = None, *, read_only: bool = False) -> Any:
    """
    Marks a contract method as a contract entry point.

    External methods are dispatched through the chain, which tracks the caller context, i.e., `msg_sender`.
    - state changing methods must be invoked within a transaction
    - read-only methods may also be invoked outside a transaction

    Usage:

        @external
        def deposit(self, amount: int): ...

        @external(read_only=True)
        def get_total_balance(self) -> int: ...
    """

    def decorator(method: F) -> F:
        @functools.wraps(method)
        def wrapper(self: "Contract", *args, **kwargs):
            return self.chain.invoke(self, method, read_only, *args, **kwargs)

        wrapper.external = True  # type: ignore[attr-defined]
        wrapper.read_only = read_only  # type: ignore[attr-defined]
        return cast(F, wrapper)

    if fn is None:
        return decorator
    return decorator(fn)


def nonreentrant(method: F) -> F:
    """
    Rejects calls that re-enter any non-reentrant method on the same contract while one is executing.

    Apply below `@external`.
    """

    @functools.wraps(method)
    def wrapper(self: "Contract", *args, **kwargs):
        if self._entered:
            raise ReentrantCall()
        self._entered = True
        try:
            return method(self, *args, **kwargs)
        finally:
            self._entered = False

    return cast(F, wrapper)


class Contract(Generic[S]):
    """
    Base class for contracts.

    Contracts are deployed via `Chain.deploy()`, which passes in the chain and the contract ID.
    Subclass constructors run within the deployment transaction, i.e., `chain.msg_sender` is the creator.
    """

    _entered: bool = False

    def __init__(self, chain: "Chain", contract_id: ContractId, state: S):
        self._chain = chain
        self._contract_id = contract_id
        self._address = contract_id.to_address()
        self._creator = chain.msg_sender
        self.state = state

    @property
    def chain(self) -> "Chain":
        return self._chain

    @property
    def contract_id(self) -> ContractId:
        return self._contract_id

    @property
    def address(self) -> Address:
        """
        Contract address derived from the contract ID
        """
        return self._address

    @property
    def creator(self) -> Address:
        return self._creator

    @property
    def msg_sender(self) -> Address:
        """
        Caller of the currently executing external method, i.e., an account for top level calls,
        or the calling contract's address for calls made by another contract.
        """
        return self._chain.msg_sender

    def emit(self, event: Any):
        """
        Emits an event, which is published when the enclosing transaction commits.
        """
        self._chain.emit(self._address, event)

    def connect(self, sender: Address) -> "ConnectedContract":
        """
        :return: a proxy that invokes this contract's external methods on behalf of the sender
        """
        return ConnectedContract(self, sender)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._contract_id}, {self._address})"


class ConnectedContract:
    """
    Invokes external contract methods on behalf of a sender account.

    - state changing methods are submitted as transactions and return a `TransactionReceipt`
    - read-only methods are evaluated with the sender as the caller and return the method's return value
    """

    def __init__(self, contract: Contract, sender: Address):
        self._contract = contract
        self._sender = sender

    @property
    def contract(self) -> Contract:
        return self._contract

    @property
    def sender(self) -> Address:
        return self._sender

    def __getattr__(self, name: str) -> Callable[..., Any]:
        method = getattr(self._contract, name)
        if not getattr(method, "external", False):
            raise AttributeError(
                f"{self._contract.__class__.__name__}.{name} is not an external method"
            )

        chain = self._contract.chain
        if method.read_only:

            def call(*args, **kwargs) -> Any:
                return chain.call(self._sender, method, *args, **kwargs)

            return call

        def transact(*args, **kwargs) -> TransactionReceipt:
            return chain.transact(self._sender, method, *args, **kwargs)

        return transact
