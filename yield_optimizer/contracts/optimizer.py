"""
Yield optimizer smart contract
"""

from dataclasses import dataclass

from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.contract import external, nonreentrant
from yield_optimizer.chain.model import Address, ContractId, Rate, TokenAmount
from yield_optimizer.contracts.adapters import (
    AaveAdapter,
    CompoundAdapter,
    LendingAdapter,
)
from yield_optimizer.contracts.errors import InvalidAmount, NoFundsDeposited
from yield_optimizer.contracts.ownable import Ownable, OwnableState
from yield_optimizer.contracts.protocol import Protocol
from yield_optimizer.contracts.token import ERC20


@dataclass(slots=True, frozen=True)
class Deposited:
    depositor: Address
    amount: TokenAmount
    protocol: Protocol


@dataclass(slots=True, frozen=True)
class Withdrawn:
    to: Address
    amount: TokenAmount


@dataclass(slots=True, frozen=True)
class Rebalanced:
    from_protocol: Protocol
    to_protocol: Protocol
    amount: TokenAmount


@dataclass
class _YieldOptimizerState(OwnableState):
    # protocol that holds the pooled balance
    current_protocol: Protocol = Protocol.NONE


class YieldOptimizer(Ownable[_YieldOptimizerState]):
    """
    Pools stablecoin deposits into whichever lending protocol currently pays the higher rate.

    - anyone can deposit, but only the owner can withdraw
    - the optimizer is the depositor of record in the lending protocols, i.e., individual depositor claims
      are not tracked
    - anyone can trigger a rebalance, which moves the entire balance held by the current protocol
      into the best protocol

    Rates are compared as point in time readings. When rates are equal, COMPOUND wins.
    """

    def __init__(
        self,
        chain: Chain,
        contract_id: ContractId,
        aave: Address,
        compound: Address,
        usdc: Address,
    ):
        super().__init__(
            chain, contract_id, _YieldOptimizerState(owner=chain.msg_sender)
        )
        self._aave = aave
        self._compound = compound
        self._usdc = usdc
        self._adapters: dict[Protocol, LendingAdapter] = {
            Protocol.AAVE: AaveAdapter(chain, aave, usdc, self.address),
            Protocol.COMPOUND: CompoundAdapter(chain, compound, usdc, self.address),
        }

    @external(read_only=True)
    def aave(self) -> Address:
        return self._aave

    @external(read_only=True)
    def compound(self) -> Address:
        return self._compound

    @external(read_only=True)
    def usdc(self) -> Address:
        return self._usdc

    @external(read_only=True)
    def current_protocol(self) -> Protocol:
        return self.state.current_protocol

    @external(read_only=True)
    def get_best_protocol(self) -> Protocol:
        """
        :return: AAVE if its rate is strictly greater than COMPOUND's rate, otherwise COMPOUND
        """
        return self._best_protocol()

    @external(read_only=True)
    def get_total_balance(self) -> int:
        """
        :return: balance held by the current protocol, 0 if nothing has been deposited.
                 Balances stranded in the other protocol are not included.
        """
        if self.state.current_protocol == Protocol.NONE:
            return 0
        return self._adapters[self.state.current_protocol].current_balance()

    @external(read_only=True)
    def get_protocol_balance(self, protocol: Protocol) -> int:
        """
        :return: optimizer's balance held by the specified protocol
        """
        return self._adapter(protocol).current_balance()

    @external(read_only=True)
    def get_protocol_rate(self, protocol: Protocol) -> Rate:
        """
        :return: specified protocol's current rate for the managed asset
        """
        return self._adapter(protocol).current_rate()

    @external
    @nonreentrant
    def deposit(self, amount: int):
        """
        Pulls `amount` from the caller and deposits it into the best protocol.

        Asserts
        -------
        1. amount > 0
        2. caller has approved the optimizer to transfer at least `amount`

        Notes
        -----
        - funds already held by the other protocol are not moved, i.e., call `rebalance()` to consolidate
        """
        if amount <= 0:
            raise InvalidAmount()

        depositor = self.msg_sender
        self._token().transfer_from(depositor, self.address, amount)

        protocol = self._best_protocol()
        self.state.current_protocol = protocol
        self._adapters[protocol].deposit(amount)

        self.emit(Deposited(depositor, TokenAmount(amount), protocol))

    @external
    @nonreentrant
    def withdraw(self, amount: int):
        """
        Withdraws `amount` from the current protocol to the owner.

        Asserts
        -------
        1. caller is the owner
        2. amount > 0
        3. funds have been deposited
        4. current protocol balance >= amount
        """
        self._only_owner()
        if amount <= 0:
            raise InvalidAmount()
        if self.state.current_protocol == Protocol.NONE:
            raise NoFundsDeposited()

        owner = self.state.owner
        self._adapters[self.state.current_protocol].withdraw(amount, owner)

        self.emit(Withdrawn(owner, TokenAmount(amount)))

    @external
    @nonreentrant
    def rebalance(self):
        """
        Moves the entire balance held by the current protocol into the best protocol.

        This is a noop if nothing has been deposited, or if the current protocol is already the best.
        If the current protocol balance is zero, then only the current protocol is switched.
        """
        from_protocol = self.state.current_protocol
        if from_protocol == Protocol.NONE:
            return

        to_protocol = self._best_protocol()
        if to_protocol == from_protocol:
            return

        source = self._adapters[from_protocol]
        target = self._adapters[to_protocol]
        amount = source.current_balance()

        self.state.current_protocol = to_protocol
        if amount > 0:
            source.withdraw(amount, self.address)
            target.deposit(amount)

        self.emit(Rebalanced(from_protocol, to_protocol, TokenAmount(amount)))

    def _best_protocol(self) -> Protocol:
        aave_rate = self._adapters[Protocol.AAVE].current_rate()
        compound_rate = self._adapters[Protocol.COMPOUND].current_rate()
        return Protocol.AAVE if aave_rate > compound_rate else Protocol.COMPOUND

    def _adapter(self, protocol: Protocol) -> LendingAdapter:
        if protocol not in self._adapters:
            raise ValueError(f"unsupported protocol: {protocol!r}")
        return self._adapters[protocol]

    def _token(self) -> ERC20:
        return self.chain.get_contract(self._usdc, ERC20)
