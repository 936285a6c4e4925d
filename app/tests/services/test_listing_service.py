from decimal import Decimal

import pytest

from app.core.errors import (
    InvalidState,
    NotOwner,
    NotVerified,
    TransactionInProgress,
    ValidationError,
)
from app.models.enums import LandStatus, LandType, VerificationStatus
from app.services.auth_service import principal_for
from app.services.buy_request_service import BuyRequestService
from app.services.land_registry_service import LandRegistryService
from app.services.listing_service import MarketplaceService
from app.services.user_directory import UserDirectory


def _claim(db, land, user):
    return LandRegistryService().claim(db, actor=principal_for(user), land_id=land.id)


def test_list_for_sale_sets_market_info(listed_land):
    assert listed_land.status == LandStatus.FOR_SALE.value
    assert listed_land.is_for_sale is True
    assert listed_land.asking_price == Decimal("5000000")
    assert listed_land.price_per_sqft == Decimal("57.39")
    assert listed_land.listed_date is not None
    assert listed_land.listing_description == "Fertile plot near the highway"


def test_only_owner_can_list(db, land, seller, buyer):
    _claim(db, land, seller)
    with pytest.raises(NotOwner):
        MarketplaceService().list_for_sale(
            db, actor=principal_for(buyer), land_id=land.id, asking_price=100
        )


def test_unclaimed_land_cannot_be_listed(db, land, seller):
    with pytest.raises(NotOwner):
        MarketplaceService().list_for_sale(
            db, actor=principal_for(seller), land_id=land.id, asking_price=100
        )


def test_owner_must_still_be_verified(db, admin, land, seller):
    _claim(db, land, seller)
    UserDirectory().set_verification_status(
        db, actor=principal_for(admin), user_id=seller.id, status=VerificationStatus.REJECTED
    )
    with pytest.raises(NotVerified):
        MarketplaceService().list_for_sale(
            db, actor=principal_for(seller), land_id=land.id, asking_price=100
        )


def test_rejected_land_record_cannot_be_listed(db, admin, land, seller):
    _claim(db, land, seller)
    LandRegistryService().review_verification(
        db, actor=principal_for(admin), land_id=land.id, decision=VerificationStatus.REJECTED
    )
    with pytest.raises(InvalidState):
        MarketplaceService().list_for_sale(
            db, actor=principal_for(seller), land_id=land.id, asking_price=100
        )


@pytest.mark.parametrize("price", [0, -5, "abc"])
def test_asking_price_must_be_positive(db, land, seller, price):
    _claim(db, land, seller)
    with pytest.raises(ValidationError):
        MarketplaceService().list_for_sale(
            db, actor=principal_for(seller), land_id=land.id, asking_price=price
        )


def test_listing_twice_is_invalid_state(db, listed_land, seller):
    with pytest.raises(InvalidState):
        MarketplaceService().list_for_sale(
            db, actor=principal_for(seller), land_id=listed_land.id, asking_price=10
        )


def test_edit_listing_changes_market_info_only(db, listed_land, seller):
    edited = MarketplaceService().edit_listing(
        db,
        actor=principal_for(seller),
        land_id=listed_land.id,
        fields={"asking_price": Decimal("4356000"), "images": ["a.jpg", "b.jpg"]},
    )
    assert edited.asking_price == Decimal("4356000")
    assert edited.price_per_sqft == Decimal("50.00")
    assert edited.listing_images == ["a.jpg", "b.jpg"]
    assert edited.status == LandStatus.FOR_SALE.value
    assert edited.current_owner_id == seller.id


def test_edit_listing_rejects_non_market_fields(db, listed_land, seller):
    with pytest.raises(ValidationError):
        MarketplaceService().edit_listing(
            db, actor=principal_for(seller), land_id=listed_land.id, fields={"status": "SOLD"}
        )


def test_edit_locked_while_under_transaction(db, pending_admin_request, seller):
    with pytest.raises(TransactionInProgress):
        MarketplaceService().edit_listing(
            db,
            actor=principal_for(seller),
            land_id=pending_admin_request.land_id,
            fields={"asking_price": 1},
        )


def test_edit_locked_while_request_pending_seller(db, listed_land, seller, buyer):
    BuyRequestService().initiate(
        db, actor=principal_for(buyer), land_id=listed_land.id, proposed_price=4900000
    )
    with pytest.raises(TransactionInProgress):
        MarketplaceService().edit_listing(
            db,
            actor=principal_for(seller),
            land_id=listed_land.id,
            fields={"asking_price": "9999999"},
        )

    land = LandRegistryService().get_land(db, listed_land.id)
    assert land.asking_price == Decimal("5000000")


def test_remove_listing_returns_land_to_available(db, listed_land, seller):
    removed = MarketplaceService().remove_listing(db, actor=principal_for(seller), land_id=listed_land.id)
    assert removed.status == LandStatus.AVAILABLE.value
    assert removed.is_for_sale is False
    assert removed.asking_price is None
    assert removed.listing_images == []
    assert removed.current_owner_id == seller.id


def test_remove_listing_refused_while_request_pending_seller(db, listed_land, seller, buyer):
    BuyRequestService().initiate(
        db, actor=principal_for(buyer), land_id=listed_land.id, proposed_price=100
    )
    with pytest.raises(TransactionInProgress):
        MarketplaceService().remove_listing(db, actor=principal_for(seller), land_id=listed_land.id)


def test_remove_listing_refused_while_pending_admin_approval(db, pending_admin_request, seller):
    with pytest.raises(TransactionInProgress):
        MarketplaceService().remove_listing(
            db, actor=principal_for(seller), land_id=pending_admin_request.land_id
        )


def test_browse_filters(db, make_land, make_user):
    svc = MarketplaceService()
    owner = make_user()
    cheap = make_land(district="Mandya", area_acres=Decimal("1"))
    dear = make_land(district="Hassan", area_acres=Decimal("5"), land_type=LandType.COMMERCIAL.value)
    unlisted = make_land(district="Udupi")
    for l, price in ((cheap, 100000), (dear, 900000)):
        _claim(db, l, owner)
        svc.list_for_sale(db, actor=principal_for(owner), land_id=l.id, asking_price=price)
    _claim(db, unlisted, owner)

    rows, total = svc.browse(db)
    assert total == 2

    rows, _ = svc.browse(db, max_price=Decimal("500000"))
    assert [r.id for r in rows] == [cheap.id]

    rows, _ = svc.browse(db, land_type=LandType.COMMERCIAL)
    assert [r.id for r in rows] == [dear.id]

    rows, _ = svc.browse(db, min_acres=Decimal("2"))
    assert [r.id for r in rows] == [dear.id]

    rows, _ = svc.browse(db, q="hassan")
    assert [r.id for r in rows] == [dear.id]

    mine = svc.my_listings(db, actor=principal_for(owner))
    assert {l.id for l in mine} == {cheap.id, dear.id}


def test_toggle_like(db, listed_land, buyer):
    svc = MarketplaceService()
    assert svc.toggle_like(db, actor=principal_for(buyer), land_id=listed_land.id) is True
    assert [l.id for l in svc.liked_lands(db, actor=principal_for(buyer))] == [listed_land.id]
    assert svc.toggle_like(db, actor=principal_for(buyer), land_id=listed_land.id) is False
    assert svc.liked_lands(db, actor=principal_for(buyer)) == []
