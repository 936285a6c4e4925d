import uuid
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError

from app.core.errors import (
    AlreadyOwned,
    DuplicateIdentifier,
    InvalidState,
    NotFound,
    NotVerified,
    Unauthorized,
    ValidationError,
)
from app.models.enums import LandStatus, VerificationStatus
from app.services.auth_service import principal_for
from app.services.dispute_service import DisputeService
from app.services.land_registry_service import LandRegistryService


def test_registered_land_starts_unclaimed_and_pending(land, admin):
    assert land.status == LandStatus.AVAILABLE.value
    assert land.verification_status == VerificationStatus.PENDING.value
    assert land.current_owner_id is None
    assert land.added_by_id == admin.id
    assert land.asset_id.startswith("KAMYS")
    assert land.version == 1


def test_only_admin_can_register(db, seller):
    with pytest.raises(Unauthorized):
        LandRegistryService().create_land(
            db,
            actor=principal_for(seller),
            fields={"state": "KA", "district": "Mysuru", "land_type": "AGRICULTURAL"},
        )


def test_register_requires_location(db, admin):
    with pytest.raises(ValidationError):
        LandRegistryService().create_land(
            db,
            actor=principal_for(admin),
            fields={"state": "Karnataka", "district": "Mysuru", "land_type": "AGRICULTURAL"},
        )


def test_register_requires_some_area(make_land):
    with pytest.raises(ValidationError):
        make_land(area_acres=Decimal("0"), area_sqft=Decimal("0"))


def test_duplicate_asset_id_is_reported(db, admin, make_land):
    make_land()
    svc = LandRegistryService()
    fields = {
        "state": "Karnataka",
        "district": "Mysuru",
        "taluka": "Hunsur",
        "village": "Bilikere",
        "survey_number": "7",
        "pincode": "571105",
        "area_acres": Decimal("1"),
        "land_type": "RESIDENTIAL",
    }
    svc.create_land(db, actor=principal_for(admin), fields=fields, asset_id="KAMYS000001001")
    with pytest.raises(DuplicateIdentifier):
        svc.create_land(db, actor=principal_for(admin), fields=fields, asset_id="kamys000001001")


def _plot_fields():
    return {
        "state": "Karnataka",
        "district": "Mysuru",
        "taluka": "Hunsur",
        "village": "Bilikere",
        "survey_number": "8",
        "pincode": "571105",
        "area_acres": Decimal("1"),
        "land_type": "RESIDENTIAL",
    }


def test_asset_id_race_on_insert_is_duplicate(db, admin, monkeypatch):
    svc = LandRegistryService()
    svc.create_land(db, actor=principal_for(admin), fields=_plot_fields(), asset_id="KAMYS000002002")

    # the lookup misses once, as when a concurrent insert lands between check and commit
    calls = []
    real_exists = LandRegistryService.asset_id_exists

    def exists(self, session, asset_id):
        calls.append(asset_id)
        return len(calls) > 1 and real_exists(self, session, asset_id)

    monkeypatch.setattr(LandRegistryService, "asset_id_exists", exists)

    with pytest.raises(DuplicateIdentifier):
        svc.create_land(db, actor=principal_for(admin), fields=_plot_fields(), asset_id="KAMYS000002002")
    assert calls == ["KAMYS000002002", "KAMYS000002002"]


def test_other_constraint_failures_are_not_reported_as_duplicates(db, admin):
    def fail_flush(session, flush_context, instances):
        raise IntegrityError("INSERT INTO lands", {}, Exception("CHECK constraint failed: lands"))

    event.listen(db, "before_flush", fail_flush)
    try:
        with pytest.raises(IntegrityError):
            LandRegistryService().create_land(
                db, actor=principal_for(admin), fields=_plot_fields(), asset_id="KAMYS000003003"
            )
    finally:
        event.remove(db, "before_flush", fail_flush)

    assert not LandRegistryService().asset_id_exists(db, "KAMYS000003003")


def test_register_with_boundaries_and_documents(db, admin):
    land = LandRegistryService().create_land(
        db,
        actor=principal_for(admin),
        fields={
            "state": "Karnataka",
            "district": "Mysuru",
            "taluka": "Hunsur",
            "village": "Bilikere",
            "survey_number": "9",
            "pincode": "571105",
            "area_guntas": Decimal("12"),
            "land_type": "AGRICULTURAL",
            "classification": "DRY",
            "boundaries_json": {"north": "Road", "east": "Canal"},
        },
        documents=[{"document_type": "PATTA", "document_number": "P-77", "content_hash": "abc"}],
    )
    assert land.boundaries_json == {"north": "Road", "east": "Canal"}
    assert [d.document_type for d in land.documents] == ["PATTA"]


def test_location_frozen_once_verified(db, admin, land):
    svc = LandRegistryService()
    a = principal_for(admin)

    svc.update_record(db, actor=a, land_id=land.id, fields={"village": "Kallahalli"})
    svc.review_verification(db, actor=a, land_id=land.id, decision=VerificationStatus.VERIFIED)

    with pytest.raises(InvalidState):
        svc.update_record(db, actor=a, land_id=land.id, fields={"village": "Elsewhere"})

    updated = svc.update_record(db, actor=a, land_id=land.id, fields={"area_acres": Decimal("3")})
    assert updated.village == "Kallahalli"
    assert updated.area_acres == Decimal("3")


def test_verification_review_records_reviewer(db, admin, land):
    reviewed = LandRegistryService().review_verification(
        db, actor=principal_for(admin), land_id=land.id, decision=VerificationStatus.REJECTED
    )
    assert reviewed.verification_status == VerificationStatus.REJECTED.value
    assert reviewed.verified_by_id == admin.id
    assert reviewed.verified_at is not None


def test_claim_assigns_first_owner(db, land, seller):
    claimed = LandRegistryService().claim(
        db, actor=principal_for(seller), land_id=land.id, document_reference="PATTA-1"
    )
    assert claimed.current_owner_id == seller.id
    assert claimed.status == LandStatus.AVAILABLE.value

    history = LandRegistryService().history(db, land.id)
    assert len(history) == 1
    assert history[0].owner_id == seller.id
    assert history[0].to_date is None
    assert history[0].document_reference == "PATTA-1"


def test_claim_requires_verified_user(db, land, make_user):
    pending = make_user(verified=False)
    with pytest.raises(NotVerified):
        LandRegistryService().claim(db, actor=principal_for(pending), land_id=land.id)


def test_claim_twice_is_already_owned(db, land, seller, buyer):
    svc = LandRegistryService()
    svc.claim(db, actor=principal_for(seller), land_id=land.id)
    with pytest.raises(AlreadyOwned):
        svc.claim(db, actor=principal_for(buyer), land_id=land.id)


def test_claim_of_disputed_land_is_refused(db, admin, land, seller):
    DisputeService().mark_disputed(db, actor=principal_for(admin), land_id=land.id, reason="boundary")
    with pytest.raises(InvalidState):
        LandRegistryService().claim(db, actor=principal_for(seller), land_id=land.id)


def test_unknown_land_is_not_found(db, seller):
    with pytest.raises(NotFound):
        LandRegistryService().claim(db, actor=principal_for(seller), land_id=uuid.uuid4())


def test_digitalize_is_monotonic(db, admin, land):
    svc = LandRegistryService()
    first = svc.digitalize(db, actor=principal_for(admin), land_id=land.id)
    assert first.is_digitalized is True
    assert len(first.certificate_hash) == 64
    assert first.qr_code.startswith(f"LANDREG:{land.asset_id}:")
    assert first.certificate_url.endswith(land.asset_id)

    digest, url = first.certificate_hash, first.certificate_url
    again = svc.digitalize(db, actor=principal_for(admin), land_id=land.id, certificate_url="https://other")
    assert again.certificate_hash == digest
    assert again.certificate_url == url

    status = svc.certificate_status(db, land.id)
    assert status["isDigitalized"] is True
    assert status["certificateHash"] == digest


def test_list_lands_filters(db, make_land, seller):
    a = make_land(village="Bilikere")
    make_land(village="Hosur", district="Mandya")
    svc = LandRegistryService()
    svc.claim(db, actor=principal_for(seller), land_id=a.id)

    rows, total = svc.list_lands(db, district="mandya")
    assert total == 1 and rows[0].village == "Hosur"

    rows, total = svc.list_lands(db, owner_id=seller.id)
    assert [r.id for r in rows] == [a.id]

    rows, total = svc.list_lands(db, unclaimed=True)
    assert total == 1


def test_get_by_asset_id_is_case_insensitive(db, land):
    assert LandRegistryService().get_by_asset_id(db, land.asset_id.lower()).id == land.id
