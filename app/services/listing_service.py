# app/services/listing_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, delete
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import (
    InvalidState,
    NotOwner,
    TransactionInProgress,
    ValidationError,
)
from app.db.unit_of_work import atomic
from app.models.enums import LandStatus, LandType, VerificationStatus
from app.models.land import Land
from app.models.land_like import LandLike
from app.policies.rbac import ACTION_MANAGE_LISTING, Principal, require_action
from app.policies.verification_gate import UserVerificationGate
from app.services.land_registry_service import LandRegistryService, parse_decimal

logger = logging.getLogger(__name__)

MAX_LISTING_IMAGES = 10
LISTING_FIELDS = {"asking_price", "description", "images"}


def _now():
    return datetime.now(timezone.utc)


def _price_per_sqft(asking_price: Decimal, area_sqft: Optional[Decimal]) -> Optional[Decimal]:
    if not area_sqft or area_sqft <= 0:
        return None
    return (asking_price / Decimal(area_sqft)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _positive_price(value: Any) -> Decimal:
    price = parse_decimal(value, "asking_price")
    if price <= 0:
        raise ValidationError("asking_price must be greater than zero.")
    return price


def _images(images: Optional[List[str]]) -> List[str]:
    images = [i.strip() for i in (images or []) if i and i.strip()]
    if len(images) > MAX_LISTING_IMAGES:
        raise ValidationError(f"A listing may carry at most {MAX_LISTING_IMAGES} images.")
    return images


class MarketplaceService:
    """
    FOR_SALE listings layered on owned parcels, plus marketplace browsing and likes.
    """

    def __init__(
        self,
        registry: Optional[LandRegistryService] = None,
        gate: Optional[UserVerificationGate] = None,
    ) -> None:
        self.registry = registry or LandRegistryService()
        self.gate = gate or self.registry.gate

    def _owned_land_for_update(self, db: Session, actor: Principal, land_id: uuid.UUID) -> Land:
        land = self.registry.get_for_update(db, land_id)
        if land.current_owner_id is None or str(land.current_owner_id) != actor.user_id:
            raise NotOwner("Only the current owner can manage this listing.")
        return land

    # ─────────────────────────────────────────────
    # LISTING LIFECYCLE
    # ─────────────────────────────────────────────

    def list_for_sale(
        self,
        db: Session,
        *,
        actor: Principal,
        land_id: uuid.UUID,
        asking_price: Any,
        description: Optional[str] = None,
        images: Optional[List[str]] = None,
    ) -> Land:
        """
        AVAILABLE -> FOR_SALE. Owner only; the owner must be VERIFIED.
        """
        require_action(actor, ACTION_MANAGE_LISTING)
        price = _positive_price(asking_price)
        images = _images(images)

        land = self._owned_land_for_update(db, actor, land_id)
        self.gate.require_verified(db, land.current_owner_id, purpose="list land for sale")

        if land.verification_status == VerificationStatus.REJECTED.value:
            raise InvalidState("Land record was rejected in verification and cannot be listed.")
        if (
            get_settings().require_verified_land_for_listing
            and land.verification_status != VerificationStatus.VERIFIED.value
        ):
            raise InvalidState("Land record must be VERIFIED before it can be listed.")
        if land.status != LandStatus.AVAILABLE.value:
            raise InvalidState(f"Only AVAILABLE land can be listed (status is {land.status}).")

        now = _now()
        with atomic(db):
            land.is_for_sale = True
            land.asking_price = price
            land.price_per_sqft = _price_per_sqft(price, land.area_sqft)
            land.listed_date = now
            land.listing_description = (description or "").strip() or None
            land.listing_images = images
            self.registry.transition(land, LandStatus.FOR_SALE, now=now)

        db.refresh(land)
        logger.info("land listed land_id=%s asking_price=%s", land.id, price)
        return land

    def edit_listing(
        self,
        db: Session,
        *,
        actor: Principal,
        land_id: uuid.UUID,
        fields: Dict[str, Any],
    ) -> Land:
        """
        Changes marketInfo only. Locked while any buy request on the land is active.
        """
        require_action(actor, ACTION_MANAGE_LISTING)
        unknown = set(fields) - LISTING_FIELDS
        if unknown:
            raise ValidationError(f"Only listing fields can be edited; got {sorted(unknown)}.")

        price = _positive_price(fields["asking_price"]) if fields.get("asking_price") is not None else None
        images = _images(fields["images"]) if fields.get("images") is not None else None

        land = self._owned_land_for_update(db, actor, land_id)
        if self.registry.active_buy_request(db, land.id) is not None:
            raise TransactionInProgress("Listing is locked while a buy request is in progress.")
        if land.status != LandStatus.FOR_SALE.value:
            raise InvalidState(f"Only FOR_SALE land has a listing to edit (status is {land.status}).")

        with atomic(db):
            if price is not None:
                land.asking_price = price
                land.price_per_sqft = _price_per_sqft(price, land.area_sqft)
            if "description" in fields:
                land.listing_description = (fields["description"] or "").strip() or None
            if images is not None:
                land.listing_images = images
            self.registry.touch(land)

        db.refresh(land)
        return land

    def remove_listing(self, db: Session, *, actor: Principal, land_id: uuid.UUID) -> Land:
        """
        FOR_SALE -> AVAILABLE. Refused while any buy request on the land is active.
        """
        require_action(actor, ACTION_MANAGE_LISTING)
        land = self._owned_land_for_update(db, actor, land_id)

        if self.registry.active_buy_request(db, land.id) is not None:
            raise TransactionInProgress("A buy request is in progress for this land.")
        if land.status != LandStatus.FOR_SALE.value:
            raise InvalidState(f"Land is not listed (status is {land.status}).")

        with atomic(db):
            self.registry.clear_market_info(land)
            self.registry.transition(land, LandStatus.AVAILABLE)

        db.refresh(land)
        logger.info("listing removed land_id=%s", land.id)
        return land

    # ─────────────────────────────────────────────
    # BROWSE
    # ─────────────────────────────────────────────

    def browse(
        self,
        db: Session,
        *,
        q: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        state: Optional[str] = None,
        district: Optional[str] = None,
        land_type: Optional[LandType] = None,
        min_acres: Optional[Decimal] = None,
        max_acres: Optional[Decimal] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Land], int]:
        conds = [Land.status == LandStatus.FOR_SALE.value]
        if q:
            conds.append(self.registry.search_text(q))
        if min_price is not None:
            conds.append(Land.asking_price >= min_price)
        if max_price is not None:
            conds.append(Land.asking_price <= max_price)
        if state:
            conds.append(func.lower(Land.state).like(f"%{state.strip().lower()}%"))
        if district:
            conds.append(func.lower(Land.district).like(f"%{district.strip().lower()}%"))
        if land_type is not None:
            conds.append(Land.land_type == land_type.value)
        if min_acres is not None:
            conds.append(Land.area_acres >= min_acres)
        if max_acres is not None:
            conds.append(Land.area_acres <= max_acres)

        total = db.execute(select(func.count()).select_from(Land).where(*conds)).scalar_one()
        rows = db.execute(
            select(Land)
            .where(*conds)
            .order_by(Land.listed_date.desc(), Land.asset_id.asc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()
        return rows, int(total)

    def my_listings(self, db: Session, *, actor: Principal) -> List[Land]:
        # UNDER_TRANSACTION lands are still the seller's listings until settled
        return db.execute(
            select(Land)
            .where(
                Land.current_owner_id == uuid.UUID(actor.user_id),
                Land.status.in_((LandStatus.FOR_SALE.value, LandStatus.UNDER_TRANSACTION.value)),
            )
            .order_by(Land.listed_date.desc())
        ).scalars().all()

    # ─────────────────────────────────────────────
    # LIKES
    # ─────────────────────────────────────────────

    def toggle_like(self, db: Session, *, actor: Principal, land_id: uuid.UUID) -> bool:
        """
        Returns True when the land is liked after the call.
        """
        self.registry.get_land(db, land_id)
        user_id = uuid.UUID(actor.user_id)

        existing = db.execute(
            select(LandLike).where(LandLike.user_id == user_id, LandLike.land_id == land_id)
        ).scalar_one_or_none()

        if existing:
            db.execute(delete(LandLike).where(LandLike.id == existing.id))
            db.commit()
            return False

        db.add(LandLike(user_id=user_id, land_id=land_id))
        db.commit()
        return True

    def liked_lands(self, db: Session, *, actor: Principal) -> List[Land]:
        return db.execute(
            select(Land)
            .join(LandLike, LandLike.land_id == Land.id)
            .where(LandLike.user_id == uuid.UUID(actor.user_id))
            .order_by(LandLike.created_at.desc())
        ).scalars().all()
