# app/services/land_registry_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import (
    AlreadyOwned,
    ConcurrentModification,
    DuplicateIdentifier,
    IntegrityViolation,
    InvalidState,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from app.core.hashing import payload_hash
from app.core.land_status_graph import can_transition_land
from app.db.unit_of_work import atomic
from app.models.buy_request import BuyRequest
from app.models.enums import (
    ACTIVE_BUY_REQUEST_STATUSES,
    DocumentType,
    LandClassification,
    LandStatus,
    LandType,
    VerificationStatus,
)
from app.models.land import Land, LandDocument
from app.models.ownership_record import OwnershipRecord
from app.models.user import User
from app.policies.rbac import (
    ACTION_CLAIM_LAND,
    ACTION_DIGITALIZE,
    ACTION_REGISTER_LAND,
    ACTION_REVIEW_VERIFICATION,
    Principal,
    require_action,
)
from app.policies.verification_gate import UserVerificationGate
from app.services.asset_id import generate_asset_id
from app.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

LOCATION_FIELDS = ("state", "district", "taluka", "village", "survey_number", "sub_division", "pincode")
REQUIRED_LOCATION_FIELDS = ("state", "district", "taluka", "village", "survey_number", "pincode")
AREA_FIELDS = ("area_acres", "area_guntas", "area_sqft")
BOUNDARY_KEYS = {"north", "south", "east", "west"}


def _now():
    return datetime.now(timezone.utc)


def parse_decimal(value: Any, field: str) -> Decimal:
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be numeric.")
    if not d.is_finite():
        raise ValidationError(f"{field} must be a finite number.")
    return d


def integrity_violation(message: str, **context: Any) -> IntegrityViolation:
    """
    Log a cross-aggregate inconsistency for escalation and return the error to raise.
    """
    logger.critical(
        "integrity violation: %s",
        message,
        extra={k: str(v) for k, v in context.items()},
    )
    return IntegrityViolation(message)


class LandRegistryService:
    """
    Owns Land rows. Every other workflow reads parcels and moves their status
    through this service; nothing else assigns `Land.status` directly.

    Public methods:
    - create_land / update_record / review_verification (admin record keeping)
    - get_land / get_for_update / get_by_asset_id / list_lands / history (reads)
    - claim (first owner assignment)
    - transition / touch / clear_market_info / transfer_ownership (staged, caller commits)
    - active_buy_request (the one-active-request invariant probe)
    - digitalize / certificate_status
    """

    def __init__(
        self,
        directory: Optional[UserDirectory] = None,
        gate: Optional[UserVerificationGate] = None,
    ) -> None:
        self.directory = directory or UserDirectory()
        self.gate = gate or UserVerificationGate(self.directory)

    # ─────────────────────────────────────────────
    # READS
    # ─────────────────────────────────────────────

    def get_land(self, db: Session, land_id: uuid.UUID) -> Land:
        land = db.execute(select(Land).where(Land.id == land_id)).scalar_one_or_none()
        if not land:
            raise NotFound(f"Land {land_id} not found.")
        return land

    def get_for_update(self, db: Session, land_id: uuid.UUID) -> Land:
        """
        Lock the land row (FOR UPDATE where supported) and refresh it.
        """
        land = db.execute(
            select(Land)
            .where(Land.id == land_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not land:
            raise NotFound(f"Land {land_id} not found.")
        return land

    def get_by_asset_id(self, db: Session, asset_id: str) -> Land:
        land = db.execute(
            select(Land).where(Land.asset_id == asset_id.strip().upper())
        ).scalar_one_or_none()
        if not land:
            raise NotFound(f"No land with asset id {asset_id}.")
        return land

    def asset_id_exists(self, db: Session, asset_id: str) -> bool:
        return db.execute(
            select(Land.id).where(Land.asset_id == asset_id)
        ).first() is not None

    def list_lands(
        self,
        db: Session,
        *,
        state: Optional[str] = None,
        district: Optional[str] = None,
        village: Optional[str] = None,
        survey_number: Optional[str] = None,
        land_type: Optional[LandType] = None,
        status: Optional[LandStatus] = None,
        verification_status: Optional[VerificationStatus] = None,
        owner_id: Optional[uuid.UUID] = None,
        unclaimed: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Land], int]:
        conds = []
        if state:
            conds.append(func.lower(Land.state) == state.strip().lower())
        if district:
            conds.append(func.lower(Land.district) == district.strip().lower())
        if village:
            conds.append(func.lower(Land.village) == village.strip().lower())
        if survey_number:
            conds.append(Land.survey_number == survey_number.strip())
        if land_type is not None:
            conds.append(Land.land_type == land_type.value)
        if status is not None:
            conds.append(Land.status == status.value)
        if verification_status is not None:
            conds.append(Land.verification_status == verification_status.value)
        if owner_id is not None:
            conds.append(Land.current_owner_id == owner_id)
        if unclaimed is True:
            conds.append(Land.current_owner_id.is_(None))
        elif unclaimed is False:
            conds.append(Land.current_owner_id.is_not(None))

        total = db.execute(select(func.count()).select_from(Land).where(*conds)).scalar_one()
        rows = db.execute(
            select(Land)
            .where(*conds)
            .order_by(Land.created_at.desc(), Land.asset_id.asc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()
        return rows, int(total)

    def history(self, db: Session, land_id: uuid.UUID) -> List[OwnershipRecord]:
        self.get_land(db, land_id)
        return db.execute(
            select(OwnershipRecord)
            .where(OwnershipRecord.land_id == land_id)
            .order_by(OwnershipRecord.seq.asc())
        ).scalars().all()

    def active_buy_request(self, db: Session, land_id: uuid.UUID) -> Optional[BuyRequest]:
        return db.execute(
            select(BuyRequest).where(
                BuyRequest.land_id == land_id,
                BuyRequest.status.in_(ACTIVE_BUY_REQUEST_STATUSES),
            )
        ).scalars().first()

    # ─────────────────────────────────────────────
    # RECORD KEEPING (ADMIN)
    # ─────────────────────────────────────────────

    def _validate_record(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        clean: Dict[str, Any] = {}

        for f in LOCATION_FIELDS:
            if f in fields:
                v = fields[f]
                v = v.strip() if isinstance(v, str) else v
                if f in REQUIRED_LOCATION_FIELDS and not v:
                    raise ValidationError(f"{f} is required.")
                clean[f] = v or None

        for f in AREA_FIELDS:
            if f in fields and fields[f] is not None:
                d = parse_decimal(fields[f], f)
                if d < 0:
                    raise ValidationError(f"{f} must be non-negative.")
                clean[f] = d

        if "land_type" in fields:
            try:
                clean["land_type"] = LandType(fields["land_type"]).value
            except ValueError:
                raise ValidationError(f"Unknown land type {fields['land_type']!r}.")

        if "classification" in fields:
            raw = fields["classification"]
            if raw is None:
                clean["classification"] = None
            else:
                try:
                    clean["classification"] = LandClassification(raw).value
                except ValueError:
                    raise ValidationError(f"Unknown classification {raw!r}.")

        if "boundaries_json" in fields:
            b = fields["boundaries_json"] or {}
            unknown = set(b) - BOUNDARY_KEYS
            if unknown:
                raise ValidationError(f"Unknown boundary keys: {sorted(unknown)}")
            clean["boundaries_json"] = {k: v for k, v in b.items() if v}

        return clean

    def _assert_area_meaningful(self, land: Land) -> None:
        if not any((getattr(land, f) or 0) > 0 for f in AREA_FIELDS):
            raise ValidationError("At least one of acres, guntas or sqft must be greater than zero.")

    def create_land(
        self,
        db: Session,
        *,
        actor: Principal,
        fields: Dict[str, Any],
        asset_id: Optional[str] = None,
        documents: Optional[List[Dict[str, Any]]] = None,
    ) -> Land:
        """
        Register a parcel (unclaimed, AVAILABLE, verification PENDING).

        The asset id is derived once here when none is supplied. A collision on
        the unique index is reported as DuplicateIdentifier; calling again
        draws a fresh timestamp/random suffix.
        """
        require_action(actor, ACTION_REGISTER_LAND)

        missing = [f for f in REQUIRED_LOCATION_FIELDS if not fields.get(f)]
        if missing:
            raise ValidationError(f"Missing required location fields: {missing}")
        if "land_type" not in fields:
            raise ValidationError("land_type is required.")

        clean = self._validate_record(fields)
        now = _now()

        land = Land(
            asset_id=(asset_id.strip().upper() if asset_id else generate_asset_id(clean["state"], clean["district"])),
            added_by_id=uuid.UUID(actor.user_id),
            status=LandStatus.AVAILABLE.value,
            verification_status=VerificationStatus.PENDING.value,
            listing_images=[],
            created_at=now,
            updated_at=now,
            **clean,
        )
        for f in AREA_FIELDS:
            if getattr(land, f) is None:
                setattr(land, f, Decimal("0"))
        self._assert_area_meaningful(land)

        for doc in documents or []:
            land.documents.append(self._document(doc, now))

        asset_id = land.asset_id
        if self.asset_id_exists(db, asset_id):
            raise DuplicateIdentifier(f"Asset id {asset_id} already exists; retry.")

        try:
            with atomic(db):
                db.add(land)
        except IntegrityError as exc:
            # uq_lands_asset_id catches the race; any other constraint failure propagates
            if self.asset_id_exists(db, asset_id):
                raise DuplicateIdentifier(f"Asset id {asset_id} already exists; retry.") from exc
            raise

        db.refresh(land)
        logger.info("land registered asset_id=%s land_id=%s", land.asset_id, land.id)
        return land

    def _document(self, doc: Dict[str, Any], now: datetime) -> LandDocument:
        try:
            doc_type = DocumentType(doc.get("document_type") or DocumentType.OTHER.value)
        except ValueError:
            raise ValidationError(f"Unknown document type {doc.get('document_type')!r}.")
        return LandDocument(
            document_type=doc_type.value,
            document_number=doc.get("document_number"),
            document_date=doc.get("document_date"),
            registration_office=doc.get("registration_office"),
            document_url=doc.get("document_url"),
            content_hash=doc.get("content_hash"),
            created_at=now,
        )

    def update_record(
        self,
        db: Session,
        *,
        actor: Principal,
        land_id: uuid.UUID,
        fields: Dict[str, Any],
    ) -> Land:
        """
        Correct the paper record. Location is frozen once the record is VERIFIED;
        status, owner and listing are never touched here.
        """
        require_action(actor, ACTION_REGISTER_LAND)
        land = self.get_for_update(db, land_id)

        clean = self._validate_record(fields)
        location_changes = [f for f in LOCATION_FIELDS if f in clean and clean[f] != getattr(land, f)]
        if location_changes and land.verification_status == VerificationStatus.VERIFIED.value:
            raise InvalidState(f"Location of a verified land is immutable: {location_changes}")

        with atomic(db):
            for k, v in clean.items():
                setattr(land, k, v)
            self._assert_area_meaningful(land)
            land.updated_at = _now()

        db.refresh(land)
        return land

    def review_verification(
        self,
        db: Session,
        *,
        actor: Principal,
        land_id: uuid.UUID,
        decision: VerificationStatus,
    ) -> Land:
        require_action(actor, ACTION_REVIEW_VERIFICATION)
        if decision == VerificationStatus.PENDING:
            raise ValidationError("Verification review must resolve to VERIFIED or REJECTED.")

        land = self.get_for_update(db, land_id)
        if land.verification_status == decision.value:
            return land

        now = _now()
        with atomic(db):
            land.verification_status = decision.value
            land.verified_by_id = uuid.UUID(actor.user_id)
            land.verified_at = now
            land.updated_at = now

        db.refresh(land)
        return land

    # ─────────────────────────────────────────────
    # STAGED MUTATIONS (caller owns the transaction)
    # ─────────────────────────────────────────────

    def transition(self, land: Land, target: LandStatus, *, now: Optional[datetime] = None) -> None:
        current = LandStatus(land.status)
        if not can_transition_land(current, target):
            raise InvalidTransition(f"Land cannot move from {current.value} to {target.value}.")
        land.status = target.value
        land.updated_at = now or _now()

    def touch(self, land: Land, *, now: Optional[datetime] = None) -> None:
        # dirties the row so the flush carries the version check
        land.updated_at = now or _now()

    def clear_market_info(self, land: Land) -> None:
        land.is_for_sale = False
        land.asking_price = None
        land.price_per_sqft = None
        land.listed_date = None
        land.listing_description = None
        land.listing_images = []

    def open_tenure(
        self,
        land: Land,
        owner: User,
        *,
        now: datetime,
        document_reference: Optional[str] = None,
        buy_request_id: Optional[uuid.UUID] = None,
    ) -> OwnershipRecord:
        record = OwnershipRecord(
            seq=len(land.ownership_history) + 1,
            owner_id=owner.id,
            owner_name=owner.full_name,
            from_date=now,
            to_date=None,
            document_reference=document_reference,
            buy_request_id=buy_request_id,
        )
        land.ownership_history.append(record)
        land.current_owner_id = owner.id
        return record

    def close_current_tenure(self, land: Land, *, now: datetime) -> OwnershipRecord:
        open_records = [r for r in land.ownership_history if r.to_date is None]
        if len(open_records) != 1 or open_records[0].owner_id != land.current_owner_id:
            raise integrity_violation(
                "Ownership history does not have exactly one open tenure for the current owner.",
                land_id=land.id,
                current_owner_id=land.current_owner_id,
                open_tenures=len(open_records),
            )
        record = open_records[0]
        record.to_date = now
        return record

    def transfer_ownership(
        self,
        db: Session,
        land: Land,
        new_owner: User,
        *,
        now: datetime,
        document_reference: Optional[str] = None,
        buy_request_id: Optional[uuid.UUID] = None,
    ) -> OwnershipRecord:
        """
        UNDER_TRANSACTION -> SOLD -> AVAILABLE with the buyer as owner.
        Closes the seller's tenure, opens the buyer's, drops the listing.
        """
        self.transition(land, LandStatus.SOLD, now=now)
        self.close_current_tenure(land, now=now)
        # the closed tenure must reach the database before the new open one
        db.flush()
        record = self.open_tenure(
            land,
            new_owner,
            now=now,
            document_reference=document_reference,
            buy_request_id=buy_request_id,
        )
        self.clear_market_info(land)
        self.transition(land, LandStatus.AVAILABLE, now=now)
        return record

    # ─────────────────────────────────────────────
    # CLAIM
    # ─────────────────────────────────────────────

    def claim(
        self,
        db: Session,
        *,
        actor: Principal,
        land_id: uuid.UUID,
        document_reference: Optional[str] = None,
    ) -> Land:
        """
        First owner assignment. Status stays AVAILABLE.
        """
        require_action(actor, ACTION_CLAIM_LAND)
        user_id = uuid.UUID(actor.user_id)

        self.gate.require_verified(db, user_id, purpose="claim land")

        land = self.get_for_update(db, land_id)
        if land.current_owner_id is not None:
            raise AlreadyOwned("Land already has an owner.")
        if land.status != LandStatus.AVAILABLE.value:
            raise InvalidState(f"Only AVAILABLE land can be claimed (status is {land.status}).")

        owner = self.directory.get_user_row(db, user_id)
        now = _now()
        try:
            with atomic(db):
                self.open_tenure(land, owner, now=now, document_reference=document_reference)
                self.touch(land, now=now)
        except (ConcurrentModification, IntegrityError) as exc:
            raise AlreadyOwned("Land was claimed by another user.") from exc

        db.refresh(land)
        logger.info("land claimed land_id=%s owner_id=%s", land.id, owner.id)
        return land

    # ─────────────────────────────────────────────
    # DIGITALIZATION
    # ─────────────────────────────────────────────

    def _certificate_payload(self, land: Land, now: datetime) -> Dict[str, Any]:
        return {
            "asset_id": land.asset_id,
            "location": {f: getattr(land, f) for f in LOCATION_FIELDS},
            "area": {f: str(getattr(land, f)) for f in AREA_FIELDS},
            "land_type": land.land_type,
            "classification": land.classification,
            "current_owner_id": str(land.current_owner_id) if land.current_owner_id else None,
            "verification_status": land.verification_status,
            "generated_at": now.isoformat(),
        }

    def digitalize(
        self,
        db: Session,
        *,
        actor: Principal,
        land_id: uuid.UUID,
        certificate_url: Optional[str] = None,
    ) -> Land:
        """
        Issue the digital certificate once. A second call returns the parcel unchanged.
        """
        require_action(actor, ACTION_DIGITALIZE)
        land = self.get_for_update(db, land_id)
        if land.is_digitalized:
            return land

        settings = get_settings()
        now = _now()
        digest = payload_hash(self._certificate_payload(land, now))

        with atomic(db):
            land.is_digitalized = True
            land.certificate_hash = digest
            land.certificate_url = certificate_url or f"{settings.certificate_base_url.rstrip('/')}/{land.asset_id}"
            land.qr_code = f"LANDREG:{land.asset_id}:{digest[:16]}"
            land.digitalized_at = now
            self.touch(land, now=now)

        db.refresh(land)
        logger.info("land digitalized asset_id=%s", land.asset_id)
        return land

    def certificate_status(self, db: Session, land_id: uuid.UUID) -> Dict[str, Any]:
        land = self.get_land(db, land_id)
        return {
            "landId": str(land.id),
            "assetId": land.asset_id,
            "isDigitalized": bool(land.is_digitalized),
            "certificateUrl": land.certificate_url,
            "certificateHash": land.certificate_hash,
            "qrCode": land.qr_code,
            "generatedDate": land.digitalized_at.isoformat() if land.digitalized_at else None,
        }

    def search_text(self, q: str):
        like = f"%{q.strip().lower()}%"
        return or_(
            func.lower(Land.village).like(like),
            func.lower(Land.district).like(like),
            func.lower(Land.state).like(like),
            func.lower(Land.survey_number).like(like),
            func.lower(Land.asset_id).like(like),
            func.lower(func.coalesce(Land.listing_description, "")).like(like),
        )
