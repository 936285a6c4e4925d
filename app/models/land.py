#app/models/land.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    String,
    Text,
    DateTime,
    Integer,
    Numeric,
    ForeignKey,
    CheckConstraint,
    Index,
    Uuid,
    func,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType
from app.models.enums import LandStatus, VerificationStatus


class Land(Base):
    """
    One physical parcel.

    `status` is the marketplace/transaction axis, `verification_status` the
    paper-record review axis; they move independently. `version` is the
    optimistic concurrency counter: every UPDATE is issued as
    `... WHERE id = :id AND version = :seen`.
    """

    __tablename__ = "lands"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    asset_id: Mapped[str] = mapped_column(String(32), nullable=False)

    # ─────────── LOCATION ───────────
    state: Mapped[str] = mapped_column(String(128), nullable=False)
    district: Mapped[str] = mapped_column(String(128), nullable=False)
    taluka: Mapped[str] = mapped_column(String(128), nullable=False)
    village: Mapped[str] = mapped_column(String(128), nullable=False)
    survey_number: Mapped[str] = mapped_column(String(64), nullable=False)
    sub_division: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    pincode: Mapped[str] = mapped_column(String(16), nullable=False)

    # ─────────── AREA ───────────
    area_acres: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    area_guntas: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    area_sqft: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0"))

    boundaries_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    land_type: Mapped[str] = mapped_column(String(32), nullable=False)
    classification: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # ─────────── OWNERSHIP ───────────
    current_owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    added_by_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    # ─────────── STATUS AXES ───────────
    status: Mapped[str] = mapped_column(String(24), nullable=False, default=LandStatus.AVAILABLE.value)
    verification_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=VerificationStatus.PENDING.value
    )
    verified_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    dispute_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ─────────── MARKET INFO (meaningful while FOR_SALE / UNDER_TRANSACTION) ───────────
    is_for_sale: Mapped[bool] = mapped_column(nullable=False, default=False, server_default=false())
    asking_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 2), nullable=True)
    price_per_sqft: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 2), nullable=True)
    listed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    listing_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    listing_images: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)

    # ─────────── DIGITAL DOCUMENT (monotonic) ───────────
    is_digitalized: Mapped[bool] = mapped_column(nullable=False, default=False, server_default=false())
    certificate_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    certificate_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    qr_code: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    digitalized_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    ownership_history = relationship(
        "OwnershipRecord",
        back_populates="land",
        order_by="OwnershipRecord.seq",
        cascade="all",
    )

    documents = relationship(
        "LandDocument",
        back_populates="land",
        order_by="LandDocument.created_at",
        cascade="all",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("uq_lands_asset_id", "asset_id", unique=True),
        Index("ix_lands_location", "village", "district", "state"),
        Index("ix_lands_for_sale", "is_for_sale"),
        Index("ix_lands_current_owner", "current_owner_id"),
        Index("ix_lands_verification_status", "verification_status"),
        CheckConstraint("area_acres >= 0 AND area_guntas >= 0 AND area_sqft >= 0", name="ck_lands_area_nonnegative"),
        CheckConstraint("asking_price IS NULL OR asking_price > 0", name="ck_lands_asking_price_positive"),
    )


class LandDocument(Base):
    """
    Handle to an original paper document held by the external document store.
    Only the returned url/hash are persisted.
    """

    __tablename__ = "land_documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    land_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("lands.id", ondelete="CASCADE"), nullable=False, index=True
    )

    document_type: Mapped[str] = mapped_column(String(32), nullable=False)
    document_number: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    document_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    registration_office: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    document_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    content_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    land = relationship("Land", back_populates="documents")
