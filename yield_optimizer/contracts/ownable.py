"""
Single owner access control
"""

from dataclasses import dataclass
from typing import TypeVar

from yield_optimizer.chain.accounts import ZERO_ADDRESS
from yield_optimizer.chain.contract import Contract, external
from yield_optimizer.chain.model import Address
from yield_optimizer.contracts.errors import Unauthorized, InvalidOwner


@dataclass(slots=True, frozen=True)
class OwnershipTransferred:
    previous_owner: Address
    new_owner: Address


@dataclass
class OwnableState:
    owner: Address


S = TypeVar("S", bound=OwnableState)


class Ownable(Contract[S]):
    """
    The account that deploys the contract is the initial owner.

    Ownership can be transferred by the owner, or renounced, in which case owner-only methods can no longer
    be called by anyone.
    """

    @external(read_only=True)
    def owner(self) -> Address:
        return self.state.owner

    @external
    def transfer_ownership(self, new_owner: Address):
        self._only_owner()
        if new_owner == ZERO_ADDRESS:
            raise InvalidOwner()
        self._transfer_ownership(new_owner)

    @external
    def renounce_ownership(self):
        """
        Leaves the contract without an owner
        """
        self._only_owner()
        self._transfer_ownership(ZERO_ADDRESS)

    def _only_owner(self):
        if self.msg_sender != self.state.owner:
            raise Unauthorized()

    def _transfer_ownership(self, new_owner: Address):
        previous_owner = self.state.owner
        self.state.owner = new_owner
        self.emit(OwnershipTransferred(previous_owner, new_owner))
