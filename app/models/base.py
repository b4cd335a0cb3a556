"""Base model utilities and mixins."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

# SQLite only autoincrements a column declared exactly as INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer(), "sqlite")


class IDMixin:
    """Mixin providing BigInteger primary key with auto-increment."""

    id: Mapped[int] = mapped_column(
        IdType,
        primary_key=True,
        autoincrement=True,
    )


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamps.

    Timestamps are naive local time, like every other datetime the
    recurrence engine stores.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.now,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.now,
        server_default=func.now(),
        onupdate=datetime.now,
    )
