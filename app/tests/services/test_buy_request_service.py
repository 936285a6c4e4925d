from decimal import Decimal

import pytest

from app.core.errors import (
    InvalidState,
    NotOwner,
    NotVerified,
    TransactionInProgress,
    Unauthorized,
    ValidationError,
)
from app.models.enums import BuyRequestStatus, LandStatus, TimelineEventType, TransactionType
from app.services.auth_service import principal_for
from app.services.buy_request_service import BuyRequestService
from app.services.land_registry_service import LandRegistryService
from app.services.listing_service import MarketplaceService


def _initiate(db, land, buyer, price=Decimal("4800000")):
    return BuyRequestService().initiate(
        db, actor=principal_for(buyer), land_id=land.id, proposed_price=price, message="Interested"
    )


def test_initiate_creates_pending_request_and_keeps_listing(db, listed_land, seller, buyer):
    req = _initiate(db, listed_land, buyer)

    assert req.status == BuyRequestStatus.PENDING_SELLER_CONFIRMATION.value
    assert req.seller_id == seller.id
    assert req.buyer_id == buyer.id
    assert req.agreed_price == Decimal("4800000")
    assert req.transaction_type == TransactionType.SALE.value
    assert [e.event for e in req.timeline] == [TimelineEventType.REQUEST_CREATED.value]

    land = LandRegistryService().get_land(db, listed_land.id)
    assert land.status == LandStatus.FOR_SALE.value


@pytest.mark.parametrize("price", [0, -1])
def test_initiate_requires_positive_price(db, listed_land, buyer, price):
    with pytest.raises(ValidationError):
        _initiate(db, listed_land, buyer, price=price)


def test_owner_cannot_buy_own_land(db, listed_land, seller):
    with pytest.raises(ValidationError):
        _initiate(db, listed_land, seller)


def test_initiate_requires_verified_buyer(db, listed_land, make_user):
    with pytest.raises(NotVerified):
        _initiate(db, listed_land, make_user(verified=False))


def test_initiate_on_unlisted_land_is_invalid_state(db, land, seller, buyer):
    LandRegistryService().claim(db, actor=principal_for(seller), land_id=land.id)
    with pytest.raises(InvalidState):
        _initiate(db, land, buyer)


def test_second_active_request_is_refused(db, listed_land, buyer, make_user):
    _initiate(db, listed_land, buyer)
    with pytest.raises(TransactionInProgress):
        _initiate(db, listed_land, make_user())


def test_initiate_on_land_under_transaction(db, pending_admin_request, make_user):
    land = LandRegistryService().get_land(db, pending_admin_request.land_id)
    with pytest.raises(TransactionInProgress):
        _initiate(db, land, make_user())


def test_seller_confirm_locks_land(db, listed_land, seller, buyer):
    req = _initiate(db, listed_land, buyer)
    confirmed = BuyRequestService().seller_confirm(db, actor=principal_for(seller), request_id=req.id)

    assert confirmed.status == BuyRequestStatus.PENDING_ADMIN_APPROVAL.value
    assert [e.event for e in confirmed.timeline] == [
        TimelineEventType.REQUEST_CREATED.value,
        TimelineEventType.SELLER_CONFIRMED.value,
    ]
    land = LandRegistryService().get_land(db, listed_land.id)
    assert land.status == LandStatus.UNDER_TRANSACTION.value
    assert land.asking_price == Decimal("5000000")


def test_only_seller_can_confirm(db, listed_land, buyer):
    req = _initiate(db, listed_land, buyer)
    with pytest.raises(NotOwner):
        BuyRequestService().seller_confirm(db, actor=principal_for(buyer), request_id=req.id)


def test_confirm_twice_is_invalid_state(db, pending_admin_request, seller):
    with pytest.raises(InvalidState):
        BuyRequestService().seller_confirm(
            db, actor=principal_for(seller), request_id=pending_admin_request.id
        )


def test_seller_decline_frees_the_listing(db, listed_land, seller, buyer, make_user):
    req = _initiate(db, listed_land, buyer)
    declined = BuyRequestService().seller_decline(
        db, actor=principal_for(seller), request_id=req.id, reason="Too low"
    )
    assert declined.status == BuyRequestStatus.REJECTED.value
    assert declined.rejection_reason == "Too low"
    assert declined.timeline[-1].event == TimelineEventType.SELLER_DECLINED.value

    land = LandRegistryService().get_land(db, listed_land.id)
    assert land.status == LandStatus.FOR_SALE.value

    # the one-active slot is free again
    again = _initiate(db, listed_land, make_user())
    assert again.status == BuyRequestStatus.PENDING_SELLER_CONFIRMATION.value


def test_buyer_cancel_before_confirmation(db, listed_land, seller, buyer):
    req = _initiate(db, listed_land, buyer)
    cancelled = BuyRequestService().cancel(db, actor=principal_for(buyer), request_id=req.id)
    assert cancelled.status == BuyRequestStatus.REJECTED.value
    assert cancelled.timeline[-1].event == TimelineEventType.BUYER_CANCELLED.value

    # nothing active any more, so the seller may withdraw the listing
    land = MarketplaceService().remove_listing(db, actor=principal_for(seller), land_id=listed_land.id)
    assert land.status == LandStatus.AVAILABLE.value


def test_cancel_after_confirmation_is_refused(db, pending_admin_request, buyer):
    with pytest.raises(InvalidState):
        BuyRequestService().cancel(db, actor=principal_for(buyer), request_id=pending_admin_request.id)


def test_only_buyer_can_cancel(db, listed_land, seller, buyer):
    req = _initiate(db, listed_land, buyer)
    with pytest.raises(NotOwner):
        BuyRequestService().cancel(db, actor=principal_for(seller), request_id=req.id)


def test_request_visibility(db, listed_land, admin, seller, buyer, make_user):
    req = _initiate(db, listed_land, buyer)
    svc = BuyRequestService()
    for who in (admin, seller, buyer):
        assert svc.get_request(db, actor=principal_for(who), request_id=req.id).id == req.id
    with pytest.raises(Unauthorized):
        svc.get_request(db, actor=principal_for(make_user()), request_id=req.id)


def test_my_requests_covers_both_sides(db, listed_land, seller, buyer):
    req = _initiate(db, listed_land, buyer)
    svc = BuyRequestService()
    assert [r.id for r in svc.my_requests(db, actor=principal_for(buyer))] == [req.id]
    assert [r.id for r in svc.my_requests(db, actor=principal_for(seller))] == [req.id]
    assert svc.my_requests(
        db, actor=principal_for(buyer), status=BuyRequestStatus.APPROVED
    ) == []


def test_sale_is_the_only_transaction_type():
    assert [t.value for t in TransactionType] == ["SALE"]
