"""
Data model

Notes
-----
Data model class names are prefixed with a 'T', which identifies them as classes that map to database tables.
This naming convention also avoids name collision with similarly named domain model classes, e.g.,

`TRebalanceEvent` is a data model class vs `RebalanceRecord` is a domain model class
"""

from sqlalchemy import Integer, String, BigInteger
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass

from yield_optimizer.chain.model import Address, Rate, TxnId
from yield_optimizer.contracts.protocol import Protocol
from yield_optimizer.domain.rebalance import RebalanceId


class Base(MappedAsDataclass, DeclarativeBase):
    """
    Data model base class.

    All data model classes should extend Base.
    """

    # pylint: disable=too-few-public-methods

    type_annotation_map = {
        Address: String(58),
        TxnId: String(26),
        RebalanceId: String(26),
        Protocol: Integer,
        Rate: BigInteger,
    }
