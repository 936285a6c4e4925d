# app/api/v1/lands.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.v1.responses import history_resp, land_list_resp, land_resp
from app.core.auth_deps import get_current_principal
from app.db.session import get_db
from app.models.enums import LandStatus, LandType, VerificationStatus
from app.policies.rbac import Principal
from app.schemas.lands import (
    CertificateResponse,
    ClaimRequest,
    LandListResponse,
    LandResponse,
    OwnershipRecordResponse,
)
from app.services.audit_service import AuditAction, audit_event
from app.services.land_registry_service import LandRegistryService

router = APIRouter(prefix="/lands")


@router.get("", response_model=LandListResponse)
def list_lands(
    state: Optional[str] = Query(default=None),
    district: Optional[str] = Query(default=None),
    village: Optional[str] = Query(default=None),
    survey_number: Optional[str] = Query(default=None, alias="surveyNumber"),
    land_type: Optional[LandType] = Query(default=None, alias="landType"),
    status: Optional[LandStatus] = Query(default=None),
    verification_status: Optional[VerificationStatus] = Query(default=None, alias="verificationStatus"),
    unclaimed: Optional[bool] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows, total = LandRegistryService().list_lands(
        db,
        state=state,
        district=district,
        village=village,
        survey_number=survey_number,
        land_type=land_type,
        status=status,
        verification_status=verification_status,
        unclaimed=unclaimed,
        limit=limit,
        offset=offset,
    )
    return land_list_resp(rows, total, limit, offset)


@router.get("/mine", response_model=LandListResponse)
def my_lands(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows, total = LandRegistryService().list_lands(
        db, owner_id=uuid.UUID(principal.user_id), limit=limit, offset=offset
    )
    return land_list_resp(rows, total, limit, offset)


@router.get("/by-asset/{asset_id}", response_model=LandResponse)
def get_by_asset_id(
    asset_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return land_resp(LandRegistryService().get_by_asset_id(db, asset_id))


@router.get("/{land_id}", response_model=LandResponse)
def get_land(
    land_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return land_resp(LandRegistryService().get_land(db, land_id))


@router.get("/{land_id}/history", response_model=list[OwnershipRecordResponse])
def ownership_history(
    land_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return [history_resp(r) for r in LandRegistryService().history(db, land_id)]


@router.get("/{land_id}/certificate", response_model=CertificateResponse)
def certificate_status(
    land_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return LandRegistryService().certificate_status(db, land_id)


@router.post("/{land_id}/claim", response_model=LandResponse)
def claim_land(
    request: Request,
    land_id: uuid.UUID,
    body: Optional[ClaimRequest] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    land = LandRegistryService().claim(
        db,
        actor=principal,
        land_id=land_id,
        document_reference=body.document_reference if body else None,
    )
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.LAND_CLAIMED,
        land_id=land.id,
        details={"assetId": land.asset_id},
    )
    return land_resp(land)
