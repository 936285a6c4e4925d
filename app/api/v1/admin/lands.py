# app/api/v1/admin/lands.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.v1.responses import buy_request_resp, land_list_resp, land_resp
from app.core.auth_deps import require_admin
from app.db.session import get_db
from app.models.enums import VerificationStatus
from app.policies.rbac import Principal
from app.schemas.buy_requests import BuyRequestResponse
from app.schemas.lands import (
    DigitalizeRequest,
    DisputeRequest,
    LandCreateRequest,
    LandListResponse,
    LandResponse,
    LandUpdateRequest,
    ResolveDisputeRequest,
    VerificationReviewRequest,
)
from app.services.audit_service import AuditAction, audit_event
from app.services.buy_request_service import BuyRequestService
from app.services.dispute_service import DisputeService
from app.services.land_registry_service import LandRegistryService

router = APIRouter(prefix="/admin/lands", tags=["admin"])


@router.post("", response_model=LandResponse, status_code=201)
def register_land(
    request: Request,
    body: LandCreateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    land = LandRegistryService().create_land(
        db,
        actor=principal,
        fields=body.record_fields(),
        asset_id=body.asset_id,
        documents=[d.model_dump() for d in body.documents],
    )
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.LAND_REGISTERED,
        land_id=land.id,
        details={"assetId": land.asset_id, "documents": len(body.documents)},
    )
    return land_resp(land)


@router.get("/pending-verification", response_model=LandListResponse)
def pending_verification(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    rows, total = LandRegistryService().list_lands(
        db, verification_status=VerificationStatus.PENDING, limit=limit, offset=offset
    )
    return land_list_resp(rows, total, limit, offset)


@router.patch("/{land_id}", response_model=LandResponse)
def update_record(
    request: Request,
    land_id: uuid.UUID,
    body: LandUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    fields = body.record_fields()
    land = LandRegistryService().update_record(db, actor=principal, land_id=land_id, fields=fields)
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.LAND_RECORD_UPDATED,
        land_id=land.id,
        details={"fields": sorted(fields)},
    )
    return land_resp(land)


@router.post("/{land_id}/verification", response_model=LandResponse)
def review_verification(
    request: Request,
    land_id: uuid.UUID,
    body: VerificationReviewRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    land = LandRegistryService().review_verification(
        db, actor=principal, land_id=land_id, decision=body.decision
    )
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.LAND_VERIFICATION_REVIEWED,
        land_id=land.id,
        details={"decision": body.decision.value},
    )
    return land_resp(land)


@router.post("/{land_id}/digitalize", response_model=LandResponse)
def digitalize(
    request: Request,
    land_id: uuid.UUID,
    body: Optional[DigitalizeRequest] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    land = LandRegistryService().digitalize(
        db,
        actor=principal,
        land_id=land_id,
        certificate_url=body.certificate_url if body else None,
    )
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.LAND_DIGITALIZED,
        land_id=land.id,
        details={"certificateHash": land.certificate_hash},
    )
    return land_resp(land)


@router.post("/{land_id}/dispute", response_model=LandResponse)
def mark_disputed(
    request: Request,
    land_id: uuid.UUID,
    body: DisputeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    land = DisputeService().mark_disputed(db, actor=principal, land_id=land_id, reason=body.reason)
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.DISPUTE_OPENED,
        land_id=land.id,
        details={"reason": body.reason},
    )
    return land_resp(land)


@router.post("/{land_id}/dispute/resolve", response_model=LandResponse)
def resolve_dispute(
    request: Request,
    land_id: uuid.UUID,
    body: ResolveDisputeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    land = DisputeService().resolve(db, actor=principal, land_id=land_id, resolution=body.resolution)
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.DISPUTE_RESOLVED,
        land_id=land.id,
        details={"resolution": body.resolution},
    )
    return land_resp(land)


@router.get("/{land_id}/buy-requests", response_model=list[BuyRequestResponse])
def land_buy_requests(
    land_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    return [buy_request_resp(r) for r in BuyRequestService().for_land(db, land_id)]
