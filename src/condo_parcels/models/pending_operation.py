# src/condo_parcels/models/pending_operation.py
"""SQLAlchemy model for writes waiting to reach the remote document store."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, SmallInteger, Text, VARCHAR
from sqlalchemy.orm import Mapped, mapped_column

from condo_parcels.db.session import Base
from condo_parcels.db.time import utcnow

OPERATION_STATUS_PENDING = "pending"
OPERATION_STATUS_DEAD_LETTER = "dead_letter"


class PendingOperation(Base):
    """Queued remote write, drained oldest-first by the sync engine."""

    __tablename__ = "pending_operation"
    # Ids are never reused, even after the newest rows are removed.
    __table_args__ = {"sqlite_autoincrement": True}

    # Auto-increment id doubles as the enqueue order.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(Text, nullable=False)  # e.g. 'create_package'
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    enqueued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # Bookkeeping only; kind and payload never change after insert.
    status: Mapped[str] = mapped_column(
        VARCHAR(20), nullable=False, default=OPERATION_STATUS_PENDING, index=True
    )  # 'pending', 'dead_letter'
    attempts: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
