"""
Records the optimizer's rebalancing history in the database
"""

from reactivex import Observable, Subject
from reactivex.abc import DisposableBase
from reactivex.operators import filter as rx_filter

from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.model import LogEntry
from yield_optimizer.commands.store_rebalance_events import StoreRebalanceEvents
from yield_optimizer.contracts.optimizer import Rebalanced, YieldOptimizer
from yield_optimizer.core.logging import get_logger
from yield_optimizer.core.service import Service
from yield_optimizer.domain.rebalance import RebalanceId, RebalanceRecord


class RebalanceHistoryService(Service):
    """
    Watches the chain for `Rebalanced` events emitted by the optimizer, and stores them in the database.

    Notes
    -----
    - committed events are delivered synchronously on the committing thread. Thus, the protocol rates read when the
      event is recorded are the rates that were in effect when the rebalance was committed.
    - each transaction emits at most 1 `Rebalanced` event, thus the transaction ID is used as the record ID
    - stored records are also published on `observable`
    """

    def __init__(
        self,
        chain: Chain,
        optimizer: YieldOptimizer,
        store_rebalance_events: StoreRebalanceEvents,
    ):
        super().__init__()
        self._chain = chain
        self._optimizer = optimizer
        self._store_rebalance_events = store_rebalance_events

        self._subscription: DisposableBase | None = None
        self._subject: Subject[RebalanceRecord] = Subject()

    @property
    def observable(self) -> Observable[RebalanceRecord]:
        """
        :return: Observable[RebalanceRecord] for records that have been stored
        """
        return self._subject

    def _start(self):
        self._subscription = self._chain.observable.pipe(
            rx_filter(
                lambda log: log.contract == self._optimizer.address
                and isinstance(log.event, Rebalanced)
            )
        ).subscribe(on_next=self._on_rebalanced)

    def _stop(self):
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

    def to_rebalance_record(self, log: LogEntry) -> RebalanceRecord:
        """
        Converts a `Rebalanced` log entry into a RebalanceRecord, using the current protocol rates
        """
        event: Rebalanced = log.event
        return RebalanceRecord(
            id=RebalanceId(log.txn_id),
            optimizer=log.contract,
            txn_id=log.txn_id,
            round=log.round,
            timestamp=log.timestamp,
            from_protocol=event.from_protocol,
            to_protocol=event.to_protocol,
            amount=event.amount,
            yield_before=self._optimizer.get_protocol_rate(event.from_protocol),
            yield_after=self._optimizer.get_protocol_rate(event.to_protocol),
        )

    def _on_rebalanced(self, log: LogEntry):
        logger = get_logger(self, "_on_rebalanced")
        # errors must not propagate back to the transaction sender, the transaction has already been committed
        try:
            record = self.to_rebalance_record(log)
            result = self._store_rebalance_events([record])
            logger.info(
                "rebalance recorded: txn_id=%s %s -> %s amount=%s inserts=%s",
                record.txn_id,
                record.from_protocol.name,
                record.to_protocol.name,
                record.amount,
                result.inserts,
            )
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("failed to record rebalance: %s", log)
            return

        self._subject.on_next(record)
