"""
Fungible token ledger
"""

from dataclasses import dataclass, field
from typing import Final

from yield_optimizer.chain.accounts import ZERO_ADDRESS
from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.contract import external
from yield_optimizer.chain.model import Address, ContractId, TokenAmount
from yield_optimizer.contracts.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAmount,
    InvalidReceiver,
)
from yield_optimizer.contracts.ownable import Ownable, OwnableState


@dataclass(slots=True, frozen=True)
class Transfer:
    sender: Address
    receiver: Address
    amount: TokenAmount


@dataclass(slots=True, frozen=True)
class Approval:
    owner: Address
    spender: Address
    amount: TokenAmount


@dataclass
class _ERC20State(OwnableState):
    total_supply: int = 0
    balances: dict[Address, int] = field(default_factory=dict)
    # owner -> spender -> allowance
    allowances: dict[Address, dict[Address, int]] = field(default_factory=dict)


class ERC20(Ownable[_ERC20State]):
    """
    Standard fungible token ledger with transfer/approve/allowance semantics.

    The deployer owns the contract and is the only account that can mint new tokens.
    """

    def __init__(
        self,
        chain: Chain,
        contract_id: ContractId,
        name: str,
        symbol: str,
        decimals: int,
        initial_supply: int = 0,
    ):
        super().__init__(chain, contract_id, _ERC20State(owner=chain.msg_sender))
        self._name = name
        self._symbol = symbol
        self._decimals = decimals
        if initial_supply > 0:
            self._mint(self.state.owner, initial_supply)

    @external(read_only=True)
    def name(self) -> str:
        return self._name

    @external(read_only=True)
    def symbol(self) -> str:
        return self._symbol

    @external(read_only=True)
    def decimals(self) -> int:
        return self._decimals

    @external(read_only=True)
    def total_supply(self) -> int:
        return self.state.total_supply

    @external(read_only=True)
    def balance_of(self, account: Address) -> int:
        return self.state.balances.get(account, 0)

    @external(read_only=True)
    def allowance(self, owner: Address, spender: Address) -> int:
        return self.state.allowances.get(owner, {}).get(spender, 0)

    @external
    def transfer(self, to: Address, amount: int) -> bool:
        """
        Moves `amount` tokens from the caller to `to`

        Asserts
        -------
        1. caller balance >= amount
        """
        self._transfer(self.msg_sender, to, amount)
        return True

    @external
    def approve(self, spender: Address, amount: int) -> bool:
        """
        Sets `spender`'s allowance over the caller's tokens, replacing any existing allowance
        """
        if amount < 0:
            raise InvalidAmount("ERC20: invalid allowance")
        owner = self.msg_sender
        self.state.allowances.setdefault(owner, {})[spender] = amount
        self.emit(Approval(owner, spender, TokenAmount(amount)))
        return True

    @external
    def transfer_from(self, sender: Address, to: Address, amount: int) -> bool:
        """
        Moves `amount` tokens from `sender` to `to` using the caller's allowance

        Asserts
        -------
        1. caller allowance >= amount
        2. sender balance >= amount
        """
        if amount < 0:
            raise InvalidAmount("ERC20: invalid amount")
        spender = self.msg_sender
        allowances = self.state.allowances.setdefault(sender, {})
        allowance = allowances.get(spender, 0)
        if allowance < amount:
            raise InsufficientAllowance()
        allowances[spender] = allowance - amount
        self._transfer(sender, to, amount)
        return True

    @external
    def mint(self, to: Address, amount: int):
        """
        Only the owner can mint
        """
        self._only_owner()
        self._mint(to, amount)

    def _transfer(self, sender: Address, to: Address, amount: int):
        if amount < 0:
            raise InvalidAmount("ERC20: invalid amount")
        if to == ZERO_ADDRESS:
            raise InvalidReceiver()
        balance = self.state.balances.get(sender, 0)
        if balance < amount:
            raise InsufficientBalance("ERC20: transfer amount exceeds balance")
        self.state.balances[sender] = balance - amount
        self.state.balances[to] = self.state.balances.get(to, 0) + amount
        self.emit(Transfer(sender, to, TokenAmount(amount)))

    def _mint(self, to: Address, amount: int):
        if amount <= 0:
            raise InvalidAmount()
        if to == ZERO_ADDRESS:
            raise InvalidReceiver()
        self.state.total_supply += amount
        self.state.balances[to] = self.state.balances.get(to, 0) + amount
        self.emit(Transfer(ZERO_ADDRESS, to, TokenAmount(amount)))


class MockUSDC(ERC20):
    """
    USDC stand-in used for testing: 6 decimals, 1,000,000 USDC minted to the deployer.
    """

    NAME: Final[str] = "USD Coin"
    SYMBOL: Final[str] = "USDC"
    DECIMALS: Final[int] = 6
    INITIAL_SUPPLY: Final[int] = 1_000_000 * 10**6

    def __init__(self, chain: Chain, contract_id: ContractId):
        super().__init__(
            chain,
            contract_id,
            name=self.NAME,
            symbol=self.SYMBOL,
            decimals=self.DECIMALS,
            initial_supply=self.INITIAL_SUPPLY,
        )
