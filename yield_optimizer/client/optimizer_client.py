"""
YieldOptimizer client
"""

from dataclasses import dataclass
from decimal import Decimal

from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.model import Address, Rate, TransactionReceipt
from yield_optimizer.client.units import format_units, rate_to_percent
from yield_optimizer.contracts.optimizer import YieldOptimizer
from yield_optimizer.contracts.protocol import Protocol
from yield_optimizer.contracts.token import ERC20
from yield_optimizer.core.logging import get_logger


@dataclass(slots=True)
class OptimizerState:
    """
    Snapshot of the optimizer state as seen by the client's sender
    """

    # pylint: disable=too-many-instance-attributes

    round: int
    current_protocol: Protocol
    best_protocol: Protocol
    aave_rate: Rate
    compound_rate: Rate
    # balance held by the current protocol
    total_balance: int
    aave_balance: int
    compound_balance: int
    # sender's wallet token balance
    wallet_balance: int
    decimals: int

    @property
    def rebalance_needed(self) -> bool:
        """
        :return: True if funds are deposited and the current protocol is not the best protocol
        """
        return (
            self.current_protocol != Protocol.NONE
            and self.current_protocol != self.best_protocol
        )

    @property
    def aave_rate_percent(self) -> Decimal:
        return rate_to_percent(self.aave_rate)

    @property
    def compound_rate_percent(self) -> Decimal:
        return rate_to_percent(self.compound_rate)

    def format_amount(self, amount: int) -> Decimal:
        """
        Converts an amount denominated in the token's smallest unit into whole tokens
        """
        return format_units(amount, self.decimals)


class YieldOptimizerClient:
    """
    Submits optimizer transactions on behalf of a sender account
    """

    def __init__(self, chain: Chain, optimizer: YieldOptimizer, sender: Address):
        self._chain = chain
        self._optimizer = optimizer
        self._sender = sender
        self._token = chain.get_contract(optimizer.usdc(), ERC20)

    @property
    def sender(self) -> Address:
        return self._sender

    @property
    def optimizer(self) -> YieldOptimizer:
        return self._optimizer

    def prepare(self, sender: Address) -> "YieldOptimizerClient":
        """
        :return: a new client for the same optimizer that sends transactions on behalf of the specified sender
        """
        return YieldOptimizerClient(self._chain, self._optimizer, sender)

    def approve_and_deposit(self, amount: int) -> TransactionReceipt:
        """
        Approves the optimizer to transfer `amount` and then deposits it.

        The approval and deposit are separate transactions. If the deposit fails, then the approval remains.

        :return: deposit transaction receipt
        """
        logger = get_logger(self, "approve_and_deposit")
        self._token.connect(self._sender).approve(self._optimizer.address, amount)
        receipt = self._optimizer.connect(self._sender).deposit(amount)
        logger.info("deposited %s: txn_id=%s", amount, receipt.txn_id)
        return receipt

    def withdraw(self, amount: int) -> TransactionReceipt:
        """
        Only the owner can withdraw
        """
        return self._optimizer.connect(self._sender).withdraw(amount)

    def rebalance(self) -> TransactionReceipt:
        return self._optimizer.connect(self._sender).rebalance()

    def get_state(self) -> OptimizerState:
        """
        Reads the optimizer, protocol, and sender wallet state within a single call, i.e., the values are consistent.
        """

        def read_state() -> OptimizerState:
            optimizer = self._optimizer
            return OptimizerState(
                round=self._chain.round,
                current_protocol=optimizer.current_protocol(),
                best_protocol=optimizer.get_best_protocol(),
                aave_rate=optimizer.get_protocol_rate(Protocol.AAVE),
                compound_rate=optimizer.get_protocol_rate(Protocol.COMPOUND),
                total_balance=optimizer.get_total_balance(),
                aave_balance=optimizer.get_protocol_balance(Protocol.AAVE),
                compound_balance=optimizer.get_protocol_balance(Protocol.COMPOUND),
                wallet_balance=self._token.balance_of(self._sender),
                decimals=self._token.decimals(),
            )

        return self._chain.call(self._sender, read_state)
