# app/services/buy_request_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    ConcurrentModification,
    InvalidState,
    InvalidTransition,
    NotFound,
    NotOwner,
    TransactionInProgress,
    Unauthorized,
    ValidationError,
)
from app.core.land_status_graph import can_transition_buy_request
from app.db.unit_of_work import atomic
from app.models.buy_request import BuyRequest, TimelineEvent
from app.models.enums import BuyRequestStatus, LandStatus, TimelineEventType
from app.models.land import Land
from app.policies.rbac import ACTION_REQUEST_PURCHASE, Principal, require_action
from app.policies.verification_gate import UserVerificationGate
from app.services.land_registry_service import (
    LandRegistryService,
    integrity_violation,
    parse_decimal,
)

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class BuyRequestService:
    """
    Buyer-initiated purchase negotiation.

        PENDING_SELLER_CONFIRMATION ──confirm──> PENDING_ADMIN_APPROVAL ──> APPROVED | REJECTED
                 │
                 └──decline / cancel──> REJECTED

    Only seller confirmation touches the land (FOR_SALE -> UNDER_TRANSACTION);
    the admin decision lives in OwnershipTransferService.
    """

    def __init__(
        self,
        registry: Optional[LandRegistryService] = None,
        gate: Optional[UserVerificationGate] = None,
    ) -> None:
        self.registry = registry or LandRegistryService()
        self.gate = gate or self.registry.gate

    # ─────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────

    def get_for_update(self, db: Session, request_id: uuid.UUID) -> BuyRequest:
        req = db.execute(
            select(BuyRequest)
            .where(BuyRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not req:
            raise NotFound(f"Buy request {request_id} not found.")
        return req

    def lock_with_land(self, db: Session, request_id: uuid.UUID) -> Tuple[BuyRequest, Land]:
        """
        Lock a request together with its land, land row first.

        Every path that holds both locks takes them land -> request
        (initiate, confirm, admin decisions, dispute resolution).
        """
        land_id = db.execute(
            select(BuyRequest.land_id).where(BuyRequest.id == request_id)
        ).scalar_one_or_none()
        if land_id is None:
            raise NotFound(f"Buy request {request_id} not found.")

        land = self.registry.get_for_update(db, land_id)
        req = self.get_for_update(db, request_id)
        return req, land

    def get_request(self, db: Session, *, actor: Principal, request_id: uuid.UUID) -> BuyRequest:
        req = db.execute(select(BuyRequest).where(BuyRequest.id == request_id)).scalar_one_or_none()
        if not req:
            raise NotFound(f"Buy request {request_id} not found.")
        if not actor.is_admin and actor.user_id not in {str(req.buyer_id), str(req.seller_id)}:
            raise Unauthorized("Only the buyer, the seller or an admin can view this transaction.")
        return req

    def my_requests(
        self,
        db: Session,
        *,
        actor: Principal,
        status: Optional[BuyRequestStatus] = None,
    ) -> List[BuyRequest]:
        user_id = uuid.UUID(actor.user_id)
        stmt = (
            select(BuyRequest)
            .where(or_(BuyRequest.buyer_id == user_id, BuyRequest.seller_id == user_id))
            .order_by(BuyRequest.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(BuyRequest.status == status.value)
        return db.execute(stmt).scalars().all()

    def for_land(self, db: Session, land_id: uuid.UUID) -> List[BuyRequest]:
        return db.execute(
            select(BuyRequest)
            .where(BuyRequest.land_id == land_id)
            .order_by(BuyRequest.created_at.asc())
        ).scalars().all()

    # ─────────────────────────────────────────────
    # STAGED TRANSITION (shared with admin settlement / disputes)
    # ─────────────────────────────────────────────

    def append_timeline(
        self,
        req: BuyRequest,
        *,
        event: TimelineEventType,
        performed_by: uuid.UUID,
        description: str,
        now: datetime,
    ) -> TimelineEvent:
        entry = TimelineEvent(
            seq=len(req.timeline) + 1,
            event=event.value,
            performed_by_id=performed_by,
            description=description,
            timestamp=now,
        )
        req.timeline.append(entry)
        return entry

    def transition(
        self,
        req: BuyRequest,
        target: BuyRequestStatus,
        *,
        event: TimelineEventType,
        performed_by: uuid.UUID,
        description: str,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Move the request along the transition table and record exactly one timeline entry.
        """
        current = BuyRequestStatus(req.status)
        if not can_transition_buy_request(current, target):
            raise InvalidTransition(f"Buy request cannot move from {current.value} to {target.value}.")
        now = now or _now()
        req.status = target.value
        req.updated_at = now
        self.append_timeline(req, event=event, performed_by=performed_by, description=description, now=now)

    # ─────────────────────────────────────────────
    # BUYER / SELLER ACTIONS
    # ─────────────────────────────────────────────

    def initiate(
        self,
        db: Session,
        *,
        actor: Principal,
        land_id: uuid.UUID,
        proposed_price: Any,
        message: Optional[str] = None,
    ) -> BuyRequest:
        """
        Non-binding inquiry on a FOR_SALE land. The land stays listed.

        At most one active request per land: checked up front, then enforced by
        the land's version check and the partial unique index at commit.
        """
        require_action(actor, ACTION_REQUEST_PURCHASE)
        price = parse_decimal(proposed_price, "proposed_price")
        if price <= 0:
            raise ValidationError("proposed_price must be greater than zero.")
        buyer_id = uuid.UUID(actor.user_id)

        land = self.registry.get_for_update(db, land_id)
        if land.status == LandStatus.UNDER_TRANSACTION.value:
            raise TransactionInProgress("This land is already under transaction.")
        if land.status != LandStatus.FOR_SALE.value:
            raise InvalidState(f"Land is not for sale (status is {land.status}).")
        if land.current_owner_id is None:
            raise integrity_violation("Listed land has no owner.", land_id=land.id)
        if land.current_owner_id == buyer_id:
            raise ValidationError("An owner cannot request to buy their own land.")

        self.gate.require_verified(db, buyer_id, purpose="request a purchase")

        if self.registry.active_buy_request(db, land.id) is not None:
            raise TransactionInProgress("Another buy request is already active for this land.")

        now = _now()
        req = BuyRequest(
            land_id=land.id,
            seller_id=land.current_owner_id,
            buyer_id=buyer_id,
            agreed_price=price,
            message=(message or "").strip() or None,
            status=BuyRequestStatus.PENDING_SELLER_CONFIRMATION.value,
            created_at=now,
            updated_at=now,
        )
        self.append_timeline(
            req,
            event=TimelineEventType.REQUEST_CREATED,
            performed_by=buyer_id,
            description=f"Buy request created at price {price}.",
            now=now,
        )

        try:
            with atomic(db):
                db.add(req)
                self.registry.touch(land, now=now)
        except IntegrityError as exc:
            raise TransactionInProgress("Another buy request is already active for this land.") from exc
        except ConcurrentModification:
            if self.registry.active_buy_request(db, land_id) is not None:
                raise TransactionInProgress("Another buy request is already active for this land.")
            raise

        db.refresh(req)
        logger.info("buy request created request_id=%s land_id=%s buyer_id=%s", req.id, land.id, buyer_id)
        return req

    def _seller_request_for_update(self, db: Session, actor: Principal, request_id: uuid.UUID) -> BuyRequest:
        return self._check_seller_response(self.get_for_update(db, request_id), actor)

    @staticmethod
    def _check_seller_response(req: BuyRequest, actor: Principal) -> BuyRequest:
        if str(req.seller_id) != actor.user_id:
            raise NotOwner("Only the seller can respond to this buy request.")
        if req.status != BuyRequestStatus.PENDING_SELLER_CONFIRMATION.value:
            raise InvalidState(f"Buy request is {req.status}, not awaiting seller confirmation.")
        return req

    def seller_confirm(self, db: Session, *, actor: Principal, request_id: uuid.UUID) -> BuyRequest:
        """
        Request -> PENDING_ADMIN_APPROVAL and land -> UNDER_TRANSACTION, in one commit.
        """
        req, land = self.lock_with_land(db, request_id)
        self._check_seller_response(req, actor)

        if land.current_owner_id != req.seller_id:
            raise integrity_violation(
                "Pending buy request seller is no longer the land owner.",
                request_id=req.id,
                land_id=land.id,
            )
        if land.status != LandStatus.FOR_SALE.value:
            raise InvalidState(f"Land is not for sale (status is {land.status}).")

        now = _now()
        with atomic(db):
            self.transition(
                req,
                BuyRequestStatus.PENDING_ADMIN_APPROVAL,
                event=TimelineEventType.SELLER_CONFIRMED,
                performed_by=req.seller_id,
                description="Seller confirmed the sale; awaiting admin approval.",
                now=now,
            )
            self.registry.transition(land, LandStatus.UNDER_TRANSACTION, now=now)

        db.refresh(req)
        logger.info("buy request confirmed request_id=%s land_id=%s", req.id, land.id)
        return req

    def seller_decline(
        self,
        db: Session,
        *,
        actor: Principal,
        request_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> BuyRequest:
        req = self._seller_request_for_update(db, actor, request_id)
        reason = (reason or "").strip() or None

        with atomic(db):
            self.transition(
                req,
                BuyRequestStatus.REJECTED,
                event=TimelineEventType.SELLER_DECLINED,
                performed_by=req.seller_id,
                description=f"Seller declined: {reason}" if reason else "Seller declined the request.",
            )
            req.rejection_reason = reason

        db.refresh(req)
        return req

    def cancel(self, db: Session, *, actor: Principal, request_id: uuid.UUID) -> BuyRequest:
        """
        Buyer withdraws. Only before the seller confirms; afterwards the land is
        locked and only an admin decision resolves the request.
        """
        req = self.get_for_update(db, request_id)
        if str(req.buyer_id) != actor.user_id:
            raise NotOwner("Only the buyer can cancel this buy request.")
        if req.status != BuyRequestStatus.PENDING_SELLER_CONFIRMATION.value:
            raise InvalidState(f"Buy request is {req.status}; it can no longer be cancelled.")

        with atomic(db):
            self.transition(
                req,
                BuyRequestStatus.REJECTED,
                event=TimelineEventType.BUYER_CANCELLED,
                performed_by=req.buyer_id,
                description="Buyer cancelled the request.",
            )
            req.rejection_reason = "Cancelled by buyer."

        db.refresh(req)
        return req
