"""
Uniform interface over the supported lending protocols

Adapters execute within the optimizer's call frame, i.e., the lending protocols see the optimizer as the caller
and record the optimizer as the depositor.
"""

from abc import ABC, abstractmethod

from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.model import Address, Rate
from yield_optimizer.contracts.aave import MockAaveV3
from yield_optimizer.contracts.compound import MockCompoundV3
from yield_optimizer.contracts.protocol import Protocol
from yield_optimizer.contracts.token import ERC20


class LendingAdapter(ABC):
    """
    Lending protocol capability that the optimizer depends on
    """

    protocol: Protocol

    def __init__(self, chain: Chain, pool: Address, asset: Address, holder: Address):
        """
        :param pool: lending protocol contract address
        :param asset: managed token address
        :param holder: account that deposits into the pool, i.e., the optimizer
        """
        self._chain = chain
        self._pool = pool
        self._asset = asset
        self._holder = holder

    @property
    def pool(self) -> Address:
        return self._pool

    def _token(self) -> ERC20:
        return self._chain.get_contract(self._asset, ERC20)

    @abstractmethod
    def deposit(self, amount: int):
        """
        Approves the pool and deposits `amount` held by the holder
        """

    @abstractmethod
    def withdraw(self, amount: int, to: Address):
        """
        Withdraws `amount` from the pool and sends it to `to`
        """

    @abstractmethod
    def current_balance(self) -> int:
        """
        :return: holder's balance in the pool
        """

    @abstractmethod
    def current_rate(self) -> Rate:
        """
        :return: pool's current rate for the managed asset
        """


class AaveAdapter(LendingAdapter):
    protocol = Protocol.AAVE

    def _lending_pool(self) -> MockAaveV3:
        return self._chain.get_contract(self._pool, MockAaveV3)

    def deposit(self, amount: int):
        self._token().approve(self._pool, amount)
        self._lending_pool().deposit(self._asset, amount, self._holder, 0)

    def withdraw(self, amount: int, to: Address):
        self._lending_pool().withdraw(self._asset, amount, to)

    def current_balance(self) -> int:
        return self._lending_pool().get_balance(self._holder, self._asset)

    def current_rate(self) -> Rate:
        return self._lending_pool().get_interest_rate(self._asset)


class CompoundAdapter(LendingAdapter):
    """
    Compound markets only redeem to the supplier, so withdrawals to any other account are forwarded
    by the holder.
    """

    protocol = Protocol.COMPOUND

    def _market(self) -> MockCompoundV3:
        return self._chain.get_contract(self._pool, MockCompoundV3)

    def deposit(self, amount: int):
        self._token().approve(self._pool, amount)
        self._market().supply(self._asset, amount)

    def withdraw(self, amount: int, to: Address):
        self._market().redeem(amount)
        if to != self._holder:
            self._token().transfer(to, amount)

    def current_balance(self) -> int:
        return self._market().get_balance(self._holder)

    def current_rate(self) -> Rate:
        return self._market().get_supply_rate(self._asset)
