# src/condo_parcels/models/photo.py
"""SQLAlchemy model for locally cached package photos."""

from datetime import datetime

from sqlalchemy import DateTime, LargeBinary, Text
from sqlalchemy.orm import Mapped, mapped_column

from condo_parcels.db.session import Base
from condo_parcels.db.time import utcnow


class StoredPhoto(Base):
    """Binary image captured at the front desk.

    Rows are written once and then only read or deleted; there is no eviction.
    """

    __tablename__ = "stored_photo"

    # Opaque caller-visible identifier, e.g. ``photo_1718000000000_3f9a1c2b7d0e``.
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    # Owning package document id, when known at capture time.
    package_ref: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    content_type: Mapped[str] = mapped_column(Text, nullable=False, default="image/jpeg")
    content: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
