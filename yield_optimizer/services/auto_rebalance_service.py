"""
Keeper service that rebalances the optimizer when the rate difference is worth it
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from threading import Event, Thread

from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.errors import Revert
from yield_optimizer.chain.model import Address, Rate, TransactionReceipt
from yield_optimizer.contracts.optimizer import YieldOptimizer
from yield_optimizer.contracts.protocol import Protocol
from yield_optimizer.core.logging import get_logger
from yield_optimizer.core.service import Service

DEFAULT_TOLERANCE = Decimal(5)

TOLERANCE_PRESETS = (Decimal(2), Decimal(5), Decimal(10))


def rate_improvement(current_rate: Rate, best_rate: Rate) -> Decimal:
    """
    :return: relative rate improvement as a percentage, i.e., (best_rate - current_rate) / current_rate * 100.
             If the current rate is zero, then any positive best rate is an infinite improvement.
    """
    if current_rate == 0:
        return Decimal("Infinity") if best_rate > 0 else Decimal(0)
    return Decimal(best_rate - current_rate) * 100 / Decimal(current_rate)


@dataclass(slots=True)
class RebalanceCheck:
    """
    Optimizer state that a rebalance decision is based on
    """

    current_protocol: Protocol
    best_protocol: Protocol
    current_rate: Rate
    best_rate: Rate

    @property
    def improvement(self) -> Decimal:
        return rate_improvement(self.current_rate, self.best_rate)

    def rebalance_needed(self, tolerance: Decimal) -> bool:
        """
        :return: True if funds are deposited, the best protocol is not the current protocol,
                 and the rate improvement meets the tolerance
        """
        if self.current_protocol == Protocol.NONE:
            return False
        if self.current_protocol == self.best_protocol:
            return False
        return self.improvement >= tolerance


class AutoRebalanceService(Service):
    """
    When enabled, the service periodically checks the optimizer, and submits a rebalance transaction on behalf of
    the keeper account when moving funds to the best protocol improves the yield by at least the tolerance.

    The service can be enabled and disabled while it is running.
    """

    # pylint: disable=too-many-arguments,too-many-instance-attributes

    def __init__(
        self,
        chain: Chain,
        optimizer: YieldOptimizer,
        keeper: Address,
        tolerance: Decimal = DEFAULT_TOLERANCE,
        poll_interval: timedelta = timedelta(seconds=10),
        enabled: bool = False,
    ):
        """
        :param keeper: account that sends the rebalance transactions
        :param tolerance: minimum relative rate improvement, as a percentage, that triggers a rebalance
        """
        super().__init__()
        if poll_interval <= timedelta(0):
            raise ValueError("poll_interval must be positive")

        self._chain = chain
        self._optimizer = optimizer
        self._keeper = keeper
        self.tolerance = tolerance
        self._poll_interval = poll_interval
        self._enabled = enabled

        self._stop_signal = Event()
        self._thread: Thread | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, enabled: bool):
        self._enabled = enabled
        get_logger(self).info("enabled=%s", enabled)

    @property
    def tolerance(self) -> Decimal:
        """
        Minimum relative rate improvement, as a percentage
        """
        return self._tolerance

    @tolerance.setter
    def tolerance(self, tolerance: Decimal):
        tolerance = Decimal(tolerance)
        if tolerance < 0:
            raise ValueError("tolerance must not be negative")
        self._tolerance = tolerance

    @property
    def poll_interval(self) -> timedelta:
        return self._poll_interval

    def get_rebalance_check(self) -> RebalanceCheck:
        """
        Reads the optimizer state within a single call
        """

        def read() -> RebalanceCheck:
            current_protocol = self._optimizer.current_protocol()
            best_protocol = self._optimizer.get_best_protocol()
            return RebalanceCheck(
                current_protocol=current_protocol,
                best_protocol=best_protocol,
                current_rate=(
                    Rate(0)
                    if current_protocol == Protocol.NONE
                    else self._optimizer.get_protocol_rate(current_protocol)
                ),
                best_rate=self._optimizer.get_protocol_rate(best_protocol),
            )

        return self._chain.call(self._keeper, read)

    def check(self) -> TransactionReceipt | None:
        """
        Rebalances the optimizer if the service is enabled and a rebalance is needed.

        :return: rebalance transaction receipt, or None if no rebalance was submitted
        """
        logger = get_logger(self, "check")
        if not self._enabled:
            return None

        # rates cannot change between the check and the rebalance
        with self._chain.exclusive():
            rebalance_check = self.get_rebalance_check()
            if not rebalance_check.rebalance_needed(self._tolerance):
                logger.debug("rebalance not needed: %s", rebalance_check)
                return None

            receipt = self._optimizer.connect(self._keeper).rebalance()
        logger.info(
            "rebalanced: txn_id=%s %s -> %s improvement=%s%%",
            receipt.txn_id,
            rebalance_check.current_protocol.name,
            rebalance_check.best_protocol.name,
            rebalance_check.improvement,
        )
        return receipt

    def _start(self):
        logger = get_logger(self)

        def run():
            logger.info("running")
            while not self._stop_signal.wait(self._poll_interval.total_seconds()):
                try:
                    self.check()
                except Revert as err:
                    logger.warning("rebalance reverted: %s", err.reason)

            logger.info("stop signalled - exiting")

        self._stop_signal.clear()
        self._thread = Thread(target=run, name=self.name, daemon=True)
        self._thread.start()

    def _stop(self):
        self._stop_signal.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
