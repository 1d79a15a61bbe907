"""
Command to insert rebalance events into the database
"""

from dataclasses import dataclass

from yield_optimizer.commands import SqlAlchemySupport
from yield_optimizer.core.command import Command
from yield_optimizer.data.rebalance_event import TRebalanceEvent
from yield_optimizer.domain.rebalance import RebalanceRecord


@dataclass(slots=True)
class StoreRebalanceEventsResult:
    """
    Returns the number of rebalance events that were inserted, and the number that were skipped
    because they were already stored
    """

    inserts: int
    skipped: int


class StoreRebalanceEvents(
    SqlAlchemySupport,
    Command[list[RebalanceRecord], StoreRebalanceEventsResult],
):
    """
    Stores rebalance events in the database.

    Rebalance events are immutable. Events that are already stored are skipped, which makes the store idempotent.
    """

    def __call__(self, records: list[RebalanceRecord]) -> StoreRebalanceEventsResult:
        if len(records) == 0:
            return StoreRebalanceEventsResult(inserts=0, skipped=0)

        inserts = 0
        skipped = 0

        with self._session_factory.begin() as session:
            for record in records:
                if session.get(TRebalanceEvent, record.id):
                    skipped += 1
                else:
                    session.add(TRebalanceEvent.create(record))
                    # flush so that duplicate records within the same batch are detected by session.get()
                    session.flush()
                    inserts += 1

        self.get_logger().debug("inserts=%s skipped=%s", inserts, skipped)
        return StoreRebalanceEventsResult(inserts=inserts, skipped=skipped)
