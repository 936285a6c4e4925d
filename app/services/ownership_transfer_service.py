# app/services/ownership_transfer_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import InvalidState, ValidationError
from app.db.unit_of_work import atomic
from app.models.buy_request import BuyRequest
from app.models.enums import BuyRequestStatus, LandStatus, TimelineEventType
from app.models.land import Land
from app.policies.rbac import ACTION_SETTLE_TRANSACTION, Principal, require_action
from app.services.buy_request_service import BuyRequestService
from app.services.land_registry_service import LandRegistryService, integrity_violation

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class OwnershipTransferService:
    """
    Admin settlement of seller-confirmed buy requests.

    approve: request -> APPROVED, land -> SOLD -> AVAILABLE with the buyer as owner,
             seller tenure closed and buyer tenure opened, listing cleared.
    reject:  request -> REJECTED, land -> FOR_SALE with its listing intact.

    Both happen in a single commit together with the land row; a concurrent
    decision on the same request fails the version check and is reported as
    ConcurrentModification.
    """

    def __init__(
        self,
        requests: Optional[BuyRequestService] = None,
        registry: Optional[LandRegistryService] = None,
    ) -> None:
        self.requests = requests or BuyRequestService(registry=registry)
        self.registry = registry or self.requests.registry

    def pending(self, db: Session, *, actor: Principal) -> List[BuyRequest]:
        require_action(actor, ACTION_SETTLE_TRANSACTION)
        return db.execute(
            select(BuyRequest)
            .where(BuyRequest.status == BuyRequestStatus.PENDING_ADMIN_APPROVAL.value)
            .order_by(BuyRequest.updated_at.asc())
        ).scalars().all()

    def _load_pair(self, db: Session, request_id: uuid.UUID) -> Tuple[BuyRequest, Land]:
        req, land = self.requests.lock_with_land(db, request_id)
        if req.status != BuyRequestStatus.PENDING_ADMIN_APPROVAL.value:
            raise InvalidState(f"Buy request is {req.status}, not awaiting admin approval.")

        if land.status == LandStatus.DISPUTED.value:
            raise InvalidState("Land is under dispute; resolve the dispute first.")

        assert_consistent(req, land)
        return req, land

    def approve(
        self,
        db: Session,
        *,
        actor: Principal,
        request_id: uuid.UUID,
        comments: Optional[str] = None,
    ) -> BuyRequest:
        require_action(actor, ACTION_SETTLE_TRANSACTION)
        req, land = self._load_pair(db, request_id)
        buyer = self.registry.directory.get_user_row(db, req.buyer_id)
        admin_id = uuid.UUID(actor.user_id)
        now = _now()

        with atomic(db):
            self.registry.transfer_ownership(
                db,
                land,
                buyer,
                now=now,
                document_reference=f"BUY_REQUEST:{req.id}",
                buy_request_id=req.id,
            )
            self.requests.transition(
                req,
                BuyRequestStatus.APPROVED,
                event=TimelineEventType.ADMIN_APPROVED,
                performed_by=admin_id,
                description=comments or "Admin approved the ownership transfer.",
                now=now,
            )
            req.admin_comments = comments
            req.decided_by_id = admin_id
            req.decided_at = now

        db.refresh(req)
        logger.info(
            "ownership transferred request_id=%s land_id=%s seller_id=%s buyer_id=%s",
            req.id,
            land.id,
            req.seller_id,
            req.buyer_id,
        )
        return req

    def reject(
        self,
        db: Session,
        *,
        actor: Principal,
        request_id: uuid.UUID,
        reason: str,
    ) -> BuyRequest:
        """
        The land goes back on the market at its existing asking price.
        """
        require_action(actor, ACTION_SETTLE_TRANSACTION)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required.")

        req, land = self._load_pair(db, request_id)
        admin_id = uuid.UUID(actor.user_id)
        now = _now()

        with atomic(db):
            self.registry.transition(land, LandStatus.FOR_SALE, now=now)
            self.requests.transition(
                req,
                BuyRequestStatus.REJECTED,
                event=TimelineEventType.ADMIN_REJECTED,
                performed_by=admin_id,
                description=f"Admin rejected: {reason}",
                now=now,
            )
            req.rejection_reason = reason
            req.decided_by_id = admin_id
            req.decided_at = now

        db.refresh(req)
        logger.info("buy request rejected by admin request_id=%s land_id=%s", req.id, land.id)
        return req


def assert_consistent(req: BuyRequest, land: Land) -> None:
    """
    A request awaiting admin approval pins its land in UNDER_TRANSACTION with
    the seller still as owner. Anything else is a corrupted pair.
    """
    if land.status != LandStatus.UNDER_TRANSACTION.value:
        raise integrity_violation(
            "Buy request awaits admin approval but its land is not under transaction.",
            request_id=req.id,
            land_id=land.id,
            land_status=land.status,
        )
    if land.current_owner_id != req.seller_id:
        raise integrity_violation(
            "Buy request seller is not the current owner of the land.",
            request_id=req.id,
            land_id=land.id,
            seller_id=req.seller_id,
            current_owner_id=land.current_owner_id,
        )
