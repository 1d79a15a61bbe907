"""
Retrieves the rebalancing history from the database
"""

from dataclasses import dataclass

from sqlalchemy import select

from yield_optimizer.chain.model import Address
from yield_optimizer.commands import SqlAlchemySupport
from yield_optimizer.core.command import Command
from yield_optimizer.data.rebalance_event import TRebalanceEvent
from yield_optimizer.domain.rebalance import RebalanceRecord


@dataclass(slots=True)
class RebalancingHistoryRequest:
    """
    Rebalancing history request
    """

    # if None, then events for all optimizers are returned
    optimizer: Address | None = None

    # used for paging
    limit: int = 10
    offset: int = 0


class GetRebalancingHistory(
    SqlAlchemySupport,
    Command[RebalancingHistoryRequest, list[RebalanceRecord]],
):
    """
    Returns rebalance events, most recent first
    """

    def __call__(self, request: RebalancingHistoryRequest) -> list[RebalanceRecord]:
        if request.limit < 1:
            raise ValueError("limit must be >= 1")
        if request.offset < 0:
            raise ValueError("offset must be >= 0")

        query = select(TRebalanceEvent)
        if request.optimizer is not None:
            query = query.where(TRebalanceEvent.optimizer == request.optimizer)
        query = (
            query.order_by(TRebalanceEvent.timestamp.desc(), TRebalanceEvent.round.desc())
            .limit(request.limit)
            .offset(request.offset)
        )

        self.get_logger().debug("query: %s", query)

        with self._session_factory() as session:
            return [event.to_rebalance_record() for event in session.scalars(query)]
