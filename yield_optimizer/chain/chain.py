"""
In-process contract runtime

The chain provides the execution environment that contracts depend on:

- contract deployment and address resolution
- serial, all-or-nothing transaction execution
- caller context tracking, i.e., `msg_sender`
- an event log, which is published as an Observable stream
"""

import copy
from contextlib import contextmanager
from datetime import datetime, UTC
from threading import RLock
from typing import Any, Callable, TypeVar, Iterator

from reactivex import Observable, Subject
from ulid import ULID

from yield_optimizer.chain.accounts import ZERO_ADDRESS, check_address
from yield_optimizer.chain.contract import Contract
from yield_optimizer.chain.errors import (
    ContractNotFound,
    InvalidAddress,
    NoTransactionContext,
)
from yield_optimizer.chain.model import (
    Address,
    ContractId,
    LogEntry,
    TransactionReceipt,
    TxnId,
)
from yield_optimizer.core.logging import get_logger

C = TypeVar("C", bound=Contract)

# contract IDs are assigned sequentially starting from this value
FIRST_CONTRACT_ID = 1000


class Chain:
    """
    Executes transactions one at a time.

    Each transaction runs to completion or is reverted. When any exception escapes a transaction, every contract's
    state is restored to its pre-transaction snapshot, contracts deployed within the transaction are removed,
    and the transaction's events are discarded. The exception is then re-raised to the caller.

    Committed transactions advance the round by 1. Their events are appended to the event log and then published
    on the `observable` stream. Subscribers are notified synchronously on the committing thread.
    """

    # pylint: disable=too-many-instance-attributes

    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(UTC)):
        """
        :param clock: used to timestamp committed transactions
        """
        self._clock = clock
        self._lock = RLock()
        self._logger = get_logger(self)

        self._contracts: dict[Address, Contract] = {}
        self._next_contract_id = FIRST_CONTRACT_ID
        self._round = 0
        self._log: list[LogEntry] = []

        # caller context stack: the transaction sender followed by the addresses of executing contracts
        self._frames: list[Address] = []
        # events emitted by the transaction in progress
        self._pending_events: list[tuple[Address, Any]] | None = None

        self._subject: Subject[LogEntry] = Subject()

    @property
    def round(self) -> int:
        """
        :return: number of committed transactions
        """
        return self._round

    @property
    def observable(self) -> Observable[LogEntry]:
        """
        Events emitted by committed transactions
        """
        return self._subject

    @property
    def msg_sender(self) -> Address:
        """
        :return: the caller of the currently executing contract method
        :exception NoTransactionContext: if no contract method is executing
        """
        if len(self._frames) < 2:
            raise NoTransactionContext("no contract method is executing")
        return self._frames[-2]

    @property
    def in_transaction(self) -> bool:
        return self._pending_events is not None

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """
        Holds the chain lock for the duration of the block.

        Calls and transactions made by the current thread within the block are not interleaved with transactions
        submitted by other threads, e.g., state that is read by a call is still current when a transaction that
        depends on it is sent.
        """
        with self._lock:
            yield

    def logs(
        self,
        contract: Address | None = None,
        event_type: type | None = None,
    ) -> list[LogEntry]:
        """
        Queries the event log

        :param contract: if specified, only events emitted by the contract are returned
        :param event_type: if specified, only events of the specified type are returned
        """
        with self._lock:
            return [
                log
                for log in self._log
                if (contract is None or log.contract == contract)
                and (event_type is None or isinstance(log.event, event_type))
            ]

    def get_contract(self, address: Address, contract_type: type[C]) -> C:
        """
        Resolves a contract address

        :exception ContractNotFound: if no contract of the expected type is deployed at the address
        """
        contract = self._contracts.get(address)
        if not isinstance(contract, contract_type):
            raise ContractNotFound(
                f"{contract_type.__name__} is not deployed at address: {address}"
            )
        return contract

    def deploy(self, contract_type: type[C], creator: Address, *args, **kwargs) -> C:
        """
        Deploys a new contract instance within its own transaction.

        :param creator: deployer account, which is the `msg_sender` while the contract constructor runs
        :param args: contract constructor args
        :param kwargs: contract constructor kwargs
        """

        def create() -> C:
            contract_id = ContractId(self._next_contract_id)
            self._next_contract_id += 1
            with self._frame(contract_id.to_address()):
                contract = contract_type(self, contract_id, *args, **kwargs)
            self._contracts[contract.address] = contract
            return contract

        receipt = self.transact(creator, create)
        self._logger.info("deployed %s", receipt.return_value)
        return receipt.return_value

    def transact(
        self, sender: Address, fn: Callable[..., Any], *args, **kwargs
    ) -> TransactionReceipt:
        """
        Executes `fn` as a transaction sent by `sender`.

        :return: TransactionReceipt, which carries the function's return value and the events that were emitted
        :exception NoTransactionContext: if called while a transaction is executing
        :exception InvalidAddress: if the sender is not a valid address, or is the zero address
        """
        check_address(sender)
        if sender == ZERO_ADDRESS:
            raise InvalidAddress("the zero address cannot send transactions")
        with self._lock:
            if self.in_transaction:
                raise NoTransactionContext("transactions cannot be nested")

            txn_id = TxnId(str(ULID()))
            snapshot = self._snapshot()
            self._pending_events = []
            try:
                with self._frame(sender):
                    return_value = fn(*args, **kwargs)
            except Exception as err:
                self._restore(snapshot)
                self._logger.warning(
                    "transaction reverted: txn_id=%s sender=%s fn=%s error=%r",
                    txn_id,
                    sender,
                    getattr(fn, "__qualname__", fn),
                    err,
                )
                raise
            finally:
                events, self._pending_events = self._pending_events, None

            self._round += 1
            timestamp = self._clock()
            logs = [
                LogEntry(txn_id, self._round, timestamp, contract, event)
                for contract, event in events
            ]
            self._log.extend(logs)
            self._logger.info(
                "transaction committed: txn_id=%s round=%s sender=%s fn=%s events=%s",
                txn_id,
                self._round,
                sender,
                getattr(fn, "__qualname__", fn),
                len(logs),
            )

            # the transaction is committed at this point, subscriber failures must not surface to the sender
            for log in logs:
                try:
                    self._subject.on_next(log)
                except Exception:
                    self._logger.exception(
                        "event subscriber failed: txn_id=%s event=%s", txn_id, log.event
                    )

            return TransactionReceipt(
                txn_id=txn_id,
                sender=sender,
                round=self._round,
                timestamp=timestamp,
                return_value=return_value,
                logs=logs,
            )

    def call(self, sender: Address, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Evaluates `fn` on behalf of the sender without committing anything, i.e., any state changes are discarded.
        """
        with self._lock:
            if self.in_transaction:
                raise NoTransactionContext("calls cannot be made while a transaction is executing")

            snapshot = self._snapshot()
            self._pending_events = []
            try:
                with self._frame(sender):
                    return fn(*args, **kwargs)
            finally:
                self._restore(snapshot)
                self._pending_events = None

    def invoke(
        self,
        contract: Contract,
        method: Callable[..., Any],
        read_only: bool,
        *args,
        **kwargs,
    ) -> Any:
        """
        Dispatches an external contract method call, pushing the contract onto the caller context stack.

        Read-only methods invoked outside a transaction are evaluated with the zero address as the caller.
        """
        with self._lock:
            if self._frames:
                with self._frame(contract.address):
                    return method(contract, *args, **kwargs)

            if not read_only:
                raise NoTransactionContext(
                    f"{contract.__class__.__name__}.{method.__name__} must be invoked within a transaction"
                )
            with self._frame(ZERO_ADDRESS), self._frame(contract.address):
                return method(contract, *args, **kwargs)

    def emit(self, contract: Address, event: Any):
        """
        Buffers an event emitted by the contract for the transaction in progress
        """
        if self._pending_events is None:
            raise NoTransactionContext("events can only be emitted within a transaction")
        self._pending_events.append((contract, event))

    @contextmanager
    def _frame(self, address: Address) -> Iterator[None]:
        self._frames.append(address)
        try:
            yield
        finally:
            self._frames.pop()

    def _snapshot(self) -> tuple[int, dict[Address, Any]]:
        return self._next_contract_id, {
            address: copy.deepcopy(contract.state)
            for address, contract in self._contracts.items()
        }

    def _restore(self, snapshot: tuple[int, dict[Address, Any]]):
        next_contract_id, states = snapshot
        self._next_contract_id = next_contract_id
        for address in list(self._contracts):
            if address not in states:
                del self._contracts[address]
        for address, state in states.items():
            self._contracts[address].state = state
