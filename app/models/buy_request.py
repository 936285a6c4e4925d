#app/models/buy_request.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Text,
    DateTime,
    Integer,
    Numeric,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.enums import BuyRequestStatus, TransactionType

_ACTIVE_PREDICATE = "status IN ('PENDING_SELLER_CONFIRMATION', 'PENDING_ADMIN_APPROVAL')"


class BuyRequest(Base):
    """
    One purchase negotiation (a.k.a. land transaction).

    Never deleted. The partial unique index guarantees at most one active
    (pending seller / pending admin) request per land at the database level.
    """

    __tablename__ = "buy_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    land_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("lands.id"), nullable=False)
    seller_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    buyer_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    transaction_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TransactionType.SALE.value
    )
    agreed_price: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=BuyRequestStatus.PENDING_SELLER_CONFIRMATION.value
    )

    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    decided_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    timeline = relationship(
        "TimelineEvent",
        back_populates="buy_request",
        order_by="TimelineEvent.seq",
        cascade="all",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("agreed_price > 0", name="ck_buy_requests_price_positive"),
        CheckConstraint("buyer_id <> seller_id", name="ck_buy_requests_buyer_not_seller"),
        Index(
            "uq_buy_requests_one_active_per_land",
            "land_id",
            unique=True,
            postgresql_where=text(_ACTIVE_PREDICATE),
            sqlite_where=text(_ACTIVE_PREDICATE),
        ),
        Index("ix_buy_requests_status", "status"),
        Index("ix_buy_requests_buyer", "buyer_id"),
        Index("ix_buy_requests_seller", "seller_id"),
    )


class TimelineEvent(Base):
    """
    Audit trail entry of a buy request. Insert-only; never updated or pruned.
    """

    __tablename__ = "buy_request_timeline"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    buy_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("buy_requests.id", ondelete="CASCADE"), nullable=False
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    event: Mapped[str] = mapped_column(String(32), nullable=False)
    performed_by_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    buy_request = relationship("BuyRequest", back_populates="timeline")

    __table_args__ = (
        UniqueConstraint("buy_request_id", "seq", name="uq_buy_request_timeline_seq"),
    )
