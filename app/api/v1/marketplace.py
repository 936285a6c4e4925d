# app/api/v1/marketplace.py
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.v1.responses import land_list_resp, land_resp
from app.core.auth_deps import get_current_principal
from app.db.session import get_db
from app.models.enums import LandType
from app.policies.rbac import Principal
from app.schemas.lands import LandListResponse, LandResponse
from app.schemas.marketplace import EditListingRequest, LikeResponse, ListForSaleRequest
from app.services.audit_service import AuditAction, audit_event
from app.services.listing_service import MarketplaceService

router = APIRouter(prefix="/marketplace")


@router.get("", response_model=LandListResponse)
def browse(
    q: Optional[str] = Query(default=None, max_length=128),
    min_price: Optional[Decimal] = Query(default=None, ge=0, alias="minPrice"),
    max_price: Optional[Decimal] = Query(default=None, ge=0, alias="maxPrice"),
    state: Optional[str] = Query(default=None),
    district: Optional[str] = Query(default=None),
    land_type: Optional[LandType] = Query(default=None, alias="landType"),
    min_acres: Optional[Decimal] = Query(default=None, ge=0, alias="minAcres"),
    max_acres: Optional[Decimal] = Query(default=None, ge=0, alias="maxAcres"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows, total = MarketplaceService().browse(
        db,
        q=q,
        min_price=min_price,
        max_price=max_price,
        state=state,
        district=district,
        land_type=land_type,
        min_acres=min_acres,
        max_acres=max_acres,
        limit=limit,
        offset=offset,
    )
    return land_list_resp(rows, total, limit, offset)


@router.get("/my-listings", response_model=list[LandResponse])
def my_listings(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return [land_resp(l) for l in MarketplaceService().my_listings(db, actor=principal)]


@router.get("/liked", response_model=list[LandResponse])
def liked_lands(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return [land_resp(l) for l in MarketplaceService().liked_lands(db, actor=principal)]


@router.post("/{land_id}/list", response_model=LandResponse)
def list_for_sale(
    request: Request,
    land_id: uuid.UUID,
    body: ListForSaleRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    land = MarketplaceService().list_for_sale(
        db,
        actor=principal,
        land_id=land_id,
        asking_price=body.asking_price,
        description=body.description,
        images=body.images,
    )
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.LISTING_CREATED,
        land_id=land.id,
        details={"askingPrice": str(land.asking_price)},
    )
    return land_resp(land)


@router.patch("/{land_id}/listing", response_model=LandResponse)
def edit_listing(
    request: Request,
    land_id: uuid.UUID,
    body: EditListingRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    fields = body.model_dump(exclude_unset=True)
    land = MarketplaceService().edit_listing(db, actor=principal, land_id=land_id, fields=fields)
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.LISTING_EDITED,
        land_id=land.id,
        details={"fields": sorted(fields)},
    )
    return land_resp(land)


@router.delete("/{land_id}/listing", response_model=LandResponse)
def remove_listing(
    request: Request,
    land_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    land = MarketplaceService().remove_listing(db, actor=principal, land_id=land_id)
    audit_event(
        db,
        request=request,
        actor=principal,
        action=AuditAction.LISTING_REMOVED,
        land_id=land.id,
    )
    return land_resp(land)


@router.post("/{land_id}/like", response_model=LikeResponse)
def toggle_like(
    land_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    liked = MarketplaceService().toggle_like(db, actor=principal, land_id=land_id)
    return {"landId": str(land_id), "liked": liked}
