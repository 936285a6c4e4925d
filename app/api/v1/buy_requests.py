# app/api/v1/buy_requests.py
from __future__ import annotations

import uuid
from typing import Iterable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.api.v1.responses import buy_request_resp
from app.core.auth_deps import get_current_principal
from app.db.session import get_db
from app.models.enums import BuyRequestStatus
from app.policies.rbac import Principal
from app.schemas.buy_requests import (
    BuyRequestResponse,
    InitiateBuyRequest,
    SellerDeclineRequest,
)
from app.services.audit_service import AuditAction, audit_event
from app.services.buy_request_service import BuyRequestService
from app.services.notification_service import get_notifier

router = APIRouter(prefix="/buy-requests")


def notify_users(
    background: BackgroundTasks,
    db: Session,
    user_ids: Iterable[uuid.UUID],
    subject: str,
    body: str,
) -> None:
    """
    Emails are resolved now; the session is closed by the time background tasks run.
    """
    notifier = get_notifier()
    emails = list(notifier.emails_for(db, user_ids).values())
    if emails:
        background.add_task(notifier.send_many, emails, subject, body)


def _uuid(raw: str, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise HTTPException(status_code=422, detail=f"{field} must be a UUID.")


@router.post("", response_model=BuyRequestResponse, status_code=201)
def initiate(
    request: Request,
    body: InitiateBuyRequest,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    req = BuyRequestService().initiate(
        db,
        actor=principal,
        land_id=_uuid(body.land_id, "land_id"),
        proposed_price=body.proposed_price,
        message=body.message,
    )
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.BUY_REQUEST_CREATED,
        land_id=req.land_id,
        buy_request_id=req.id,
        details={"agreedPrice": str(req.agreed_price)},
    )
    notify_users(
        background,
        db,
        [req.seller_id],
        "New buy request",
        f"A buyer offered {req.agreed_price} for your land. Confirm or decline the request.",
    )
    return buy_request_resp(req)


@router.get("/mine", response_model=list[BuyRequestResponse])
def my_transactions(
    status: Optional[BuyRequestStatus] = Query(default=None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows = BuyRequestService().my_requests(db, actor=principal, status=status)
    return [buy_request_resp(r) for r in rows]


@router.get("/{request_id}", response_model=BuyRequestResponse)
def get_transaction(
    request_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return buy_request_resp(BuyRequestService().get_request(db, actor=principal, request_id=request_id))


@router.post("/{request_id}/confirm", response_model=BuyRequestResponse)
def seller_confirm(
    request: Request,
    request_id: uuid.UUID,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    req = BuyRequestService().seller_confirm(db, actor=principal, request_id=request_id)
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.BUY_REQUEST_CONFIRMED,
        land_id=req.land_id,
        buy_request_id=req.id,
    )
    notify_users(
        background,
        db,
        [req.buyer_id],
        "Seller confirmed your buy request",
        "The seller confirmed the sale. The transfer now awaits admin approval.",
    )
    return buy_request_resp(req)


@router.post("/{request_id}/decline", response_model=BuyRequestResponse)
def seller_decline(
    request: Request,
    request_id: uuid.UUID,
    background: BackgroundTasks,
    body: Optional[SellerDeclineRequest] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    req = BuyRequestService().seller_decline(
        db, actor=principal, request_id=request_id, reason=body.reason if body else None
    )
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.BUY_REQUEST_DECLINED,
        land_id=req.land_id,
        buy_request_id=req.id,
        details={"reason": req.rejection_reason},
    )
    notify_users(
        background,
        db,
        [req.buyer_id],
        "Buy request declined",
        req.rejection_reason or "The seller declined your buy request.",
    )
    return buy_request_resp(req)


@router.post("/{request_id}/cancel", response_model=BuyRequestResponse)
def cancel(
    request: Request,
    request_id: uuid.UUID,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    req = BuyRequestService().cancel(db, actor=principal, request_id=request_id)
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.BUY_REQUEST_CANCELLED,
        land_id=req.land_id,
        buy_request_id=req.id,
    )
    notify_users(
        background,
        db,
        [req.seller_id],
        "Buy request cancelled",
        "The buyer withdrew their request for your land.",
    )
    return buy_request_resp(req)
