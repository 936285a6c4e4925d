# app/models/ownership_record.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Integer,
    ForeignKey,
    UniqueConstraint,
    Index,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class OwnershipRecord(Base):
    """
    One tenure in a parcel's ownership history.

    Append-only: rows are inserted, and the only later write is closing the
    open tenure by setting `to_date`. At most one row per land has
    `to_date IS NULL` (partial unique index), and it belongs to the current owner.
    """

    __tablename__ = "ownership_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    land_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("lands.id", ondelete="CASCADE"), nullable=False
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    # snapshot at the time of transfer; later renames do not rewrite history
    owner_name: Mapped[str] = mapped_column(String(256), nullable=False)

    from_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    to_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    document_reference: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    buy_request_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("buy_requests.id"), nullable=True
    )

    land = relationship("Land", back_populates="ownership_history")

    __table_args__ = (
        UniqueConstraint("land_id", "seq", name="uq_ownership_records_land_seq"),
        Index(
            "uq_ownership_records_one_open_tenure",
            "land_id",
            unique=True,
            postgresql_where=text("to_date IS NULL"),
            sqlite_where=text("to_date IS NULL"),
        ),
        Index("ix_ownership_records_owner", "owner_id"),
    )
