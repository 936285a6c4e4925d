from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.requests import Request

from app.core.hashing import payload_hash
from app.models.audit_log import AuditLog
from app.policies.rbac import Principal


class AuditAction:
    # Land records
    LAND_REGISTERED = "LAND_REGISTERED"
    LAND_RECORD_UPDATED = "LAND_RECORD_UPDATED"
    LAND_VERIFICATION_REVIEWED = "LAND_VERIFICATION_REVIEWED"
    LAND_CLAIMED = "LAND_CLAIMED"
    LAND_DIGITALIZED = "LAND_DIGITALIZED"

    # Marketplace
    LISTING_CREATED = "LISTING_CREATED"
    LISTING_EDITED = "LISTING_EDITED"
    LISTING_REMOVED = "LISTING_REMOVED"

    # Buy requests
    BUY_REQUEST_CREATED = "BUY_REQUEST_CREATED"
    BUY_REQUEST_CONFIRMED = "BUY_REQUEST_CONFIRMED"
    BUY_REQUEST_DECLINED = "BUY_REQUEST_DECLINED"
    BUY_REQUEST_CANCELLED = "BUY_REQUEST_CANCELLED"
    OWNERSHIP_TRANSFERRED = "OWNERSHIP_TRANSFERRED"
    BUY_REQUEST_REJECTED = "BUY_REQUEST_REJECTED"

    # Disputes
    DISPUTE_OPENED = "DISPUTE_OPENED"
    DISPUTE_RESOLVED = "DISPUTE_RESOLVED"

    # Users
    USER_REGISTERED = "USER_REGISTERED"
    USER_VERIFICATION_REVIEWED = "USER_VERIFICATION_REVIEWED"
    PASSWORD_RESET = "PASSWORD_RESET"


class AuditService:
    """
    Append-only audit rows. Written after the business commit succeeded, so a
    failed transition never leaves an audit entry behind.

    details MUST be safe to show to an admin: no passwords, no OTP codes.
    """

    def write(
        self,
        db: Session,
        *,
        actor: Optional[Principal],
        action: str,
        land_id: Optional[uuid.UUID] = None,
        buy_request_id: Optional[uuid.UUID] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        details = details or {}
        row = AuditLog(
            actor_user_id=actor.user_id if actor else None,
            actor_role=actor.role.value if actor else None,
            action=action,
            land_id=str(land_id) if land_id else None,
            buy_request_id=str(buy_request_id) if buy_request_id else None,
            request_id=request_id,
            payload_hash=payload_hash(details),
            details_json=details,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    def list(
        self,
        db: Session,
        *,
        land_id: Optional[uuid.UUID] = None,
        buy_request_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        limit: int = 100,
    ) -> List[AuditLog]:
        stmt = select(AuditLog).order_by(AuditLog.created_at.desc())
        if land_id is not None:
            stmt = stmt.where(AuditLog.land_id == str(land_id))
        if buy_request_id is not None:
            stmt = stmt.where(AuditLog.buy_request_id == str(buy_request_id))
        if action:
            stmt = stmt.where(AuditLog.action == action)
        return db.execute(stmt.limit(limit)).scalars().all()


def audit_event(
    db: Session,
    *,
    request: Request,
    actor: Optional[Principal],
    action: str,
    land_id: Optional[uuid.UUID] = None,
    buy_request_id: Optional[uuid.UUID] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Route-level helper: pulls the request id set by RequestIdMiddleware.
    """
    rid = getattr(request.state, "request_id", None) or "missing"
    return AuditService().write(
        db,
        actor=actor,
        action=action,
        land_id=land_id,
        buy_request_id=buy_request_id,
        request_id=rid,
        details={"route": str(request.url.path), "method": request.method, **(details or {})},
    )
