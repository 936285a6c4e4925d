# app/core/land_status_graph.py
from app.models.enums import BuyRequestStatus, LandStatus

# Every legal land status move. Anything absent is an InvalidTransition.
ALLOWED_LAND_TRANSITIONS = {
    LandStatus.AVAILABLE: {
        LandStatus.FOR_SALE,
        LandStatus.DISPUTED,
    },

    LandStatus.FOR_SALE: {
        LandStatus.UNDER_TRANSACTION,
        LandStatus.AVAILABLE,
        LandStatus.DISPUTED,
    },

    LandStatus.UNDER_TRANSACTION: {
        LandStatus.SOLD,
        LandStatus.FOR_SALE,
        LandStatus.DISPUTED,
    },

    LandStatus.SOLD: {
        LandStatus.AVAILABLE,
        LandStatus.DISPUTED,
    },

    # only an admin clears a dispute, and only back to AVAILABLE
    LandStatus.DISPUTED: {
        LandStatus.AVAILABLE,
    },
}

ALLOWED_BUY_REQUEST_TRANSITIONS = {
    BuyRequestStatus.PENDING_SELLER_CONFIRMATION: {
        BuyRequestStatus.PENDING_ADMIN_APPROVAL,
        BuyRequestStatus.REJECTED,
    },

    BuyRequestStatus.PENDING_ADMIN_APPROVAL: {
        BuyRequestStatus.APPROVED,
        BuyRequestStatus.REJECTED,
    },

    BuyRequestStatus.APPROVED: set(),
    BuyRequestStatus.REJECTED: set(),
}


def can_transition_land(current: LandStatus, target: LandStatus) -> bool:
    return target in ALLOWED_LAND_TRANSITIONS.get(current, set())


def can_transition_buy_request(current: BuyRequestStatus, target: BuyRequestStatus) -> bool:
    return target in ALLOWED_BUY_REQUEST_TRANSITIONS.get(current, set())
