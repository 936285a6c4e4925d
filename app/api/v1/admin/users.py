# app/api/v1/admin/users.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.v1.responses import user_resp
from app.core.auth_deps import require_admin
from app.db.session import get_db
from app.models.enums import VerificationStatus
from app.policies.rbac import Principal
from app.schemas.users import UserResponse, UserVerificationRequest
from app.services.audit_service import AuditAction, AuditService, audit_event
from app.services.user_directory import UserDirectory

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserResponse])
def list_users(
    verification_status: Optional[VerificationStatus] = Query(default=None, alias="verificationStatus"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    rows = UserDirectory().list_users(
        db, verification_status=verification_status, limit=limit, offset=offset
    )
    return [user_resp(u) for u in rows]


@router.post("/users/{user_id}/verification", response_model=UserResponse)
def set_user_verification(
    request: Request,
    user_id: uuid.UUID,
    body: UserVerificationRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    user = UserDirectory().set_verification_status(
        db, actor=principal, user_id=user_id, status=body.status
    )
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.USER_VERIFICATION_REVIEWED,
        details={"userId": str(user.id), "status": body.status.value},
    )
    return user_resp(user)


@router.get("/audit")
def audit_trail(
    land_id: Optional[uuid.UUID] = Query(default=None, alias="landId"),
    buy_request_id: Optional[uuid.UUID] = Query(default=None, alias="buyRequestId"),
    action: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    rows = AuditService().list(
        db, land_id=land_id, buy_request_id=buy_request_id, action=action, limit=limit
    )
    return {
        "items": [
            {
                "auditId": str(r.id),
                "actorUserId": r.actor_user_id,
                "actorRole": r.actor_role,
                "action": r.action,
                "landId": r.land_id,
                "buyRequestId": r.buy_request_id,
                "requestId": r.request_id,
                "payloadHash": r.payload_hash,
                "details": r.details_json or {},
                "createdAtIso": r.created_at.isoformat() if r.created_at else None,
            }
            for r in rows
        ]
    }
