"""
Aave V3 style lending pool mock
"""

from dataclasses import dataclass, field

from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.contract import Contract, external
from yield_optimizer.chain.model import Address, ContractId, Rate
from yield_optimizer.contracts.errors import (
    InsufficientBalance,
    InvalidAmount,
    InvalidRate,
)
from yield_optimizer.contracts.token import ERC20


@dataclass
class _MockAaveV3State:
    # depositor -> asset -> balance
    balances: dict[Address, dict[Address, int]] = field(default_factory=dict)
    # asset -> rate
    interest_rates: dict[Address, Rate] = field(default_factory=dict)


class MockAaveV3(Contract[_MockAaveV3State]):
    """
    Holds per depositor, per asset balances.

    Rates are informational only. Interest is not accrued on stored balances, i.e., a balance is always
    the amount deposited minus the amount withdrawn.
    """

    def __init__(self, chain: Chain, contract_id: ContractId):
        super().__init__(chain, contract_id, _MockAaveV3State())

    @external
    def deposit(
        self,
        asset: Address,
        amount: int,
        on_behalf_of: Address,
        referral_code: int = 0,  # pylint: disable=unused-argument
    ):
        """
        Pulls `amount` of `asset` from the caller and credits it to `on_behalf_of`.

        Asserts
        -------
        1. caller has approved this pool to transfer at least `amount`
        """
        self.chain.get_contract(asset, ERC20).transfer_from(
            self.msg_sender, self.address, amount
        )
        balances = self.state.balances.setdefault(on_behalf_of, {})
        balances[asset] = balances.get(asset, 0) + amount

    @external
    def withdraw(self, asset: Address, amount: int, to: Address) -> int:
        """
        Debits the caller's balance and transfers `amount` of `asset` to `to`

        Asserts
        -------
        1. caller balance >= amount

        :return: amount withdrawn
        """
        if amount < 0:
            raise InvalidAmount()
        balances = self.state.balances.get(self.msg_sender, {})
        balance = balances.get(asset, 0)
        if balance < amount:
            raise InsufficientBalance()
        balances[asset] = balance - amount
        self.chain.get_contract(asset, ERC20).transfer(to, amount)
        return amount

    @external(read_only=True)
    def get_balance(self, depositor: Address, asset: Address) -> int:
        return self.state.balances.get(depositor, {}).get(asset, 0)

    @external(read_only=True)
    def get_interest_rate(self, asset: Address) -> Rate:
        """
        :return: rate with 8 decimals, 0 if never set
        """
        return self.state.interest_rates.get(asset, Rate(0))

    @external
    def set_interest_rate(self, asset: Address, rate: int):
        """
        Anyone may set the rate, which lets tests drive rate changes.
        """
        if rate < 0:
            raise InvalidRate()
        self.state.interest_rates[asset] = Rate(rate)
