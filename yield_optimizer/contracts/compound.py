"""
Compound V3 style single asset market mock
"""

from dataclasses import dataclass, field

from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.contract import Contract, external
from yield_optimizer.chain.model import Address, ContractId, Rate
from yield_optimizer.contracts.errors import (
    InsufficientBalance,
    InvalidAmount,
    InvalidRate,
    UnsupportedAsset,
)
from yield_optimizer.contracts.token import ERC20


@dataclass
class _MockCompoundV3State:
    # the market's single supported asset, which is bound on the first supply if not set at deployment
    base_token: Address | None = None
    balances: dict[Address, int] = field(default_factory=dict)
    supply_rate: Rate = Rate(0)


class MockCompoundV3(Contract[_MockCompoundV3State]):
    """
    Single asset market that keeps one aggregate balance per supplier.
    """

    def __init__(
        self,
        chain: Chain,
        contract_id: ContractId,
        base_token: Address | None = None,
    ):
        super().__init__(
            chain, contract_id, _MockCompoundV3State(base_token=base_token)
        )

    @external(read_only=True)
    def base_token(self) -> Address | None:
        return self.state.base_token

    @external
    def supply(self, asset: Address, amount: int):
        """
        Pulls `amount` from the caller and credits the caller's balance.

        Asserts
        -------
        1. asset is the market's base token
        2. caller has approved this market to transfer at least `amount`
        """
        self._check_asset(asset)
        supplier = self.msg_sender
        self.state.base_token = asset
        self.chain.get_contract(asset, ERC20).transfer_from(
            supplier, self.address, amount
        )
        self.state.balances[supplier] = self.state.balances.get(supplier, 0) + amount

    @external
    def redeem(self, amount: int) -> int:
        """
        Debits the caller's balance and returns `amount` of the base token to the caller.

        Asserts
        -------
        1. caller balance >= amount

        :return: amount redeemed
        """
        if amount < 0:
            raise InvalidAmount()
        supplier = self.msg_sender
        balance = self.state.balances.get(supplier, 0)
        if balance < amount:
            raise InsufficientBalance()
        self.state.balances[supplier] = balance - amount
        if amount > 0 and self.state.base_token is not None:
            self.chain.get_contract(self.state.base_token, ERC20).transfer(
                supplier, amount
            )
        return amount

    @external(read_only=True)
    def get_balance(self, depositor: Address) -> int:
        return self.state.balances.get(depositor, 0)

    @external(read_only=True)
    def get_supply_rate(self, asset: Address) -> Rate:  # pylint: disable=unused-argument
        """
        The market has a single rate. The asset arg is accepted for interface compatibility.
        """
        return self.state.supply_rate

    @external
    def set_supply_rate(
        self, asset: Address, rate: int  # pylint: disable=unused-argument
    ):
        if rate < 0:
            raise InvalidRate()
        self.state.supply_rate = Rate(rate)

    def _check_asset(self, asset: Address):
        if self.state.base_token is not None and asset != self.state.base_token:
            raise UnsupportedAsset()
