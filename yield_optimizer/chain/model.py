"""
Contract runtime domain model

Account and contract addresses use the Algorand address format, i.e., 58 character base32 encoded
public keys with a checksum.
https://developer.algorand.org/docs/get-details/accounts/#transformation-public-key-to-algorand-address
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import NewType, Any, TypeVar

from algosdk.logic import get_application_address

Address = NewType("Address", str)

TxnId = NewType("TxnId", str)

# token amount denominated in the token's smallest unit
TokenAmount = NewType("TokenAmount", int)

# annualized percentage rate encoded as a fixed point integer with 8 decimals, i.e., 3% == 300_000_000
Rate = NewType("Rate", int)

E = TypeVar("E")


class ContractId(int):
    """
    Deployed contract ID.

    Contract IDs are assigned sequentially by the chain when the contract is deployed.
    """

    def to_address(self) -> Address:
        """
        Generates the contract's address from its ID
        """
        return Address(get_application_address(self))


@dataclass(slots=True, frozen=True)
class LogEntry:
    """
    Event emitted by a contract within a committed transaction
    """

    txn_id: TxnId
    round: int
    timestamp: datetime
    # address of the contract that emitted the event
    contract: Address
    event: Any


@dataclass(slots=True)
class TransactionReceipt:
    """
    Returned for each committed transaction
    """

    txn_id: TxnId
    sender: Address
    round: int
    timestamp: datetime
    return_value: Any = None
    logs: list[LogEntry] = field(default_factory=list)

    def events(self, event_type: type[E]) -> list[E]:
        """
        :return: events of the specified type in the order they were emitted
        """
        return [log.event for log in self.logs if isinstance(log.event, event_type)]
