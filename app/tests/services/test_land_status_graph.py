from app.core.land_status_graph import can_transition_buy_request, can_transition_land
from app.models.enums import BuyRequestStatus, LandStatus


def test_land_happy_path_moves():
    assert can_transition_land(LandStatus.AVAILABLE, LandStatus.FOR_SALE)
    assert can_transition_land(LandStatus.FOR_SALE, LandStatus.UNDER_TRANSACTION)
    assert can_transition_land(LandStatus.UNDER_TRANSACTION, LandStatus.SOLD)
    assert can_transition_land(LandStatus.SOLD, LandStatus.AVAILABLE)


def test_land_illegal_moves():
    assert not can_transition_land(LandStatus.AVAILABLE, LandStatus.UNDER_TRANSACTION)
    assert not can_transition_land(LandStatus.AVAILABLE, LandStatus.SOLD)
    assert not can_transition_land(LandStatus.FOR_SALE, LandStatus.SOLD)
    assert not can_transition_land(LandStatus.DISPUTED, LandStatus.FOR_SALE)


def test_every_live_status_can_be_disputed():
    for s in (LandStatus.AVAILABLE, LandStatus.FOR_SALE, LandStatus.UNDER_TRANSACTION, LandStatus.SOLD):
        assert can_transition_land(s, LandStatus.DISPUTED)


def test_buy_request_terminal_states_are_final():
    for target in BuyRequestStatus:
        assert not can_transition_buy_request(BuyRequestStatus.APPROVED, target)
        assert not can_transition_buy_request(BuyRequestStatus.REJECTED, target)


def test_buy_request_cannot_skip_seller_confirmation():
    assert not can_transition_buy_request(
        BuyRequestStatus.PENDING_SELLER_CONFIRMATION, BuyRequestStatus.APPROVED
    )
