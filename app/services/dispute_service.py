# app/services/dispute_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidState, ValidationError
from app.db.unit_of_work import atomic
from app.models.enums import BuyRequestStatus, LandStatus, TimelineEventType
from app.models.land import Land
from app.policies.rbac import ACTION_MANAGE_DISPUTE, Principal, require_action
from app.services.buy_request_service import BuyRequestService
from app.services.land_registry_service import LandRegistryService

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class DisputeService:
    """
    Admin-only freeze of a parcel. A disputed land cannot be listed, bought or
    settled; clearing the dispute returns it to AVAILABLE with no listing and
    rejects whatever request was pending on it.
    """

    def __init__(
        self,
        requests: Optional[BuyRequestService] = None,
        registry: Optional[LandRegistryService] = None,
    ) -> None:
        self.requests = requests or BuyRequestService(registry=registry)
        self.registry = registry or self.requests.registry

    def mark_disputed(self, db: Session, *, actor: Principal, land_id: uuid.UUID, reason: str) -> Land:
        require_action(actor, ACTION_MANAGE_DISPUTE)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A dispute reason is required.")

        land = self.registry.get_for_update(db, land_id)
        if land.status == LandStatus.DISPUTED.value:
            raise InvalidState("Land is already disputed.")

        with atomic(db):
            self.registry.transition(land, LandStatus.DISPUTED)
            land.dispute_reason = reason

        db.refresh(land)
        logger.warning("land disputed land_id=%s reason=%s", land.id, reason)
        return land

    def resolve(self, db: Session, *, actor: Principal, land_id: uuid.UUID, resolution: str) -> Land:
        require_action(actor, ACTION_MANAGE_DISPUTE)
        resolution = (resolution or "").strip()
        if not resolution:
            raise ValidationError("A resolution note is required.")

        land = self.registry.get_for_update(db, land_id)
        if land.status != LandStatus.DISPUTED.value:
            raise InvalidState(f"Land is not disputed (status is {land.status}).")

        # land row is already held; request second, same order as lock_with_land
        active = self.registry.active_buy_request(db, land.id)
        if active is not None:
            active = self.requests.get_for_update(db, active.id)

        admin_id = uuid.UUID(actor.user_id)
        now = _now()
        with atomic(db):
            if active is not None:
                self.requests.transition(
                    active,
                    BuyRequestStatus.REJECTED,
                    event=TimelineEventType.DISPUTE_CLEARED,
                    performed_by=admin_id,
                    description=f"Closed by dispute resolution: {resolution}",
                    now=now,
                )
                active.rejection_reason = resolution
                active.decided_by_id = admin_id
                active.decided_at = now
            self.registry.clear_market_info(land)
            self.registry.transition(land, LandStatus.AVAILABLE, now=now)
            land.dispute_reason = None

        db.refresh(land)
        logger.info("dispute resolved land_id=%s", land.id)
        return land
