from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import String, DateTime, Index, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


class AuditLog(Base):
    """
    Comprehensive audit trail record.
    - Append-only (never UPDATE)
    - Stores request-id, actor, the land / buy request touched, action, and a payload hash.
    """
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    actor_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    actor_role: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)

    land_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    buy_request_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    request_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    payload_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    details_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_audit_logs_land", "land_id"),
        Index("ix_audit_logs_buy_request", "buy_request_id"),
        Index("ix_audit_logs_action", "action"),
        Index("ix_audit_logs_created_at", "created_at"),
    )
