# app/api/v1/admin/transactions.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from app.api.v1.buy_requests import notify_users
from app.api.v1.responses import buy_request_resp
from app.core.auth_deps import require_admin
from app.db.session import get_db
from app.policies.rbac import Principal
from app.schemas.buy_requests import AdminApproveRequest, AdminRejectRequest, BuyRequestResponse
from app.services.audit_service import AuditAction, audit_event
from app.services.ownership_transfer_service import OwnershipTransferService

router = APIRouter(prefix="/admin/buy-requests", tags=["admin"])


@router.get("/pending", response_model=list[BuyRequestResponse])
def pending_admin_approval(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    # oldest first; nothing auto-expires, so age is the admin's queue signal
    return [buy_request_resp(r) for r in OwnershipTransferService().pending(db, actor=principal)]


@router.post("/{request_id}/approve", response_model=BuyRequestResponse)
def approve(
    request: Request,
    request_id: uuid.UUID,
    background: BackgroundTasks,
    body: Optional[AdminApproveRequest] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    req = OwnershipTransferService().approve(
        db, actor=principal, request_id=request_id, comments=body.comments if body else None
    )
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.OWNERSHIP_TRANSFERRED,
        land_id=req.land_id,
        buy_request_id=req.id,
        details={
            "sellerId": str(req.seller_id),
            "buyerId": str(req.buyer_id),
            "agreedPrice": str(req.agreed_price),
        },
    )
    notify_users(
        background,
        db,
        [req.buyer_id, req.seller_id],
        "Ownership transfer approved",
        "The admin approved the transaction. Ownership has been transferred to the buyer.",
    )
    return buy_request_resp(req)


@router.post("/{request_id}/reject", response_model=BuyRequestResponse)
def reject(
    request: Request,
    request_id: uuid.UUID,
    body: AdminRejectRequest,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    req = OwnershipTransferService().reject(db, actor=principal, request_id=request_id, reason=body.reason)
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.BUY_REQUEST_REJECTED,
        land_id=req.land_id,
        buy_request_id=req.id,
        details={"reason": body.reason},
    )
    notify_users(
        background,
        db,
        [req.buyer_id, req.seller_id],
        "Transaction rejected",
        f"The admin rejected the transaction: {body.reason}. The land is back on the market.",
    )
    return buy_request_resp(req)
