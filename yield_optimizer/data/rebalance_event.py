"""
Rebalance event data model
"""
from datetime import datetime, UTC

from sqlalchemy import BigInteger, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from yield_optimizer.chain.model import Address, Rate, TxnId
from yield_optimizer.contracts.protocol import Protocol
from yield_optimizer.data import Base
from yield_optimizer.domain.rebalance import RebalanceRecord, RebalanceId


class TRebalanceEvent(Base):
    """
    Rebalance event database table model
    """

    # pylint: disable=too-many-instance-attributes

    __tablename__ = "rebalance_event"

    id: Mapped[RebalanceId] = mapped_column(  # pylint: disable=invalid-name
        String(26), primary_key=True
    )
    optimizer: Mapped[Address] = mapped_column(String(58), index=True)
    txn_id: Mapped[TxnId] = mapped_column(String(26), index=True)
    round: Mapped[int] = mapped_column(Integer, index=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    from_protocol: Mapped[Protocol] = mapped_column(Integer)
    to_protocol: Mapped[Protocol] = mapped_column(Integer)
    amount: Mapped[int] = mapped_column(BigInteger)

    yield_before: Mapped[Rate] = mapped_column(BigInteger)
    yield_after: Mapped[Rate] = mapped_column(BigInteger)

    @classmethod
    def create(cls, record: RebalanceRecord) -> "TRebalanceEvent":
        """
        Converts RebalanceRecord -> TRebalanceEvent
        """
        return cls(
            id=record.id,
            optimizer=record.optimizer,
            txn_id=record.txn_id,
            round=record.round,
            timestamp=record.timestamp.astimezone(UTC),
            from_protocol=record.from_protocol,
            to_protocol=record.to_protocol,
            amount=record.amount,
            yield_before=record.yield_before,
            yield_after=record.yield_after,
        )

    def to_rebalance_record(self) -> RebalanceRecord:
        """
        Converts this instance into a RebalanceRecord instance.

        SQLite does not store the timezone. Timestamps are stored in UTC, and naive timestamps are loaded as UTC.
        """
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)

        return RebalanceRecord(
            id=RebalanceId(self.id),
            optimizer=Address(self.optimizer),
            txn_id=TxnId(self.txn_id),
            round=self.round,
            timestamp=timestamp,
            from_protocol=Protocol(self.from_protocol),
            to_protocol=Protocol(self.to_protocol),
            amount=self.amount,
            yield_before=Rate(self.yield_before),
            yield_after=Rate(self.yield_after),
        )
