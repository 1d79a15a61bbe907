"""
Rebalancing history domain model
"""

from dataclasses import dataclass
from datetime import datetime
from typing import NewType

from yield_optimizer.chain.model import Address, Rate, TxnId
from yield_optimizer.contracts.protocol import Protocol

RebalanceId = NewType("RebalanceId", str)


@dataclass(slots=True)
class RebalanceRecord:
    """
    Records a committed rebalance, together with the rates that triggered it
    """

    # pylint: disable=too-many-instance-attributes

    id: RebalanceId  # pylint: disable=invalid-name
    optimizer: Address
    txn_id: TxnId
    round: int
    timestamp: datetime

    from_protocol: Protocol
    to_protocol: Protocol
    amount: int

    # rate paid by the protocol the funds were moved out of
    yield_before: Rate
    # rate paid by the protocol the funds were moved into
    yield_after: Rate
