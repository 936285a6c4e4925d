"""
Races driven from real threads against a file-backed SQLite database.
Each thread owns its session, as request handlers do.
"""
import threading
from decimal import Decimal

from app.core.errors import AlreadyOwned, TransactionInProgress
from app.models.enums import ACTIVE_BUY_REQUEST_STATUSES
from app.models.buy_request import BuyRequest
from app.services.auth_service import principal_for
from app.services.buy_request_service import BuyRequestService
from app.services.dispute_service import DisputeService
from app.services.land_registry_service import LandRegistryService
from app.services.ownership_transfer_service import OwnershipTransferService


def _race(session_factory, fns):
    barrier = threading.Barrier(len(fns))
    results = [None] * len(fns)

    def run(i, fn):
        session = session_factory()
        try:
            barrier.wait()
            results[i] = ("ok", fn(session))
        except Exception as exc:
            results[i] = ("error", exc)
        finally:
            session.close()

    threads = [threading.Thread(target=run, args=(i, fn)) for i, fn in enumerate(fns)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def test_concurrent_initiate_admits_exactly_one(db, session_factory, listed_land, make_user):
    buyers = [make_user(), make_user()]
    land_id = listed_land.id

    def initiate(buyer):
        return lambda s: BuyRequestService().initiate(
            s, actor=principal_for(buyer), land_id=land_id, proposed_price=Decimal("4900000")
        ).id

    results = _race(session_factory, [initiate(b) for b in buyers])

    oks = [r for r in results if r[0] == "ok"]
    errors = [r[1] for r in results if r[0] == "error"]
    assert len(oks) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], TransactionInProgress)

    active = db.query(BuyRequest).filter(
        BuyRequest.land_id == land_id, BuyRequest.status.in_(ACTIVE_BUY_REQUEST_STATUSES)
    ).all()
    assert len(active) == 1


def test_concurrent_claim_assigns_one_owner(db, session_factory, land, make_user):
    claimants = [make_user(), make_user()]
    land_id = land.id

    def claim(user):
        return lambda s: LandRegistryService().claim(s, actor=principal_for(user), land_id=land_id).current_owner_id

    results = _race(session_factory, [claim(u) for u in claimants])

    oks = [r[1] for r in results if r[0] == "ok"]
    errors = [r[1] for r in results if r[0] == "error"]
    assert len(oks) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], AlreadyOwned)

    history = LandRegistryService().history(db, land_id)
    assert len(history) == 1
    assert history[0].owner_id == oks[0]


def _record_locks(monkeypatch):
    taken = []
    land_lock = LandRegistryService.get_for_update
    request_lock = BuyRequestService.get_for_update

    def lock_land(self, db, land_id):
        taken.append("land")
        return land_lock(self, db, land_id)

    def lock_request(self, db, request_id):
        taken.append("request")
        return request_lock(self, db, request_id)

    monkeypatch.setattr(LandRegistryService, "get_for_update", lock_land)
    monkeypatch.setattr(BuyRequestService, "get_for_update", lock_request)
    return taken


def test_seller_confirm_locks_land_before_request(db, listed_land, seller, buyer, monkeypatch):
    req = BuyRequestService().initiate(
        db, actor=principal_for(buyer), land_id=listed_land.id, proposed_price=Decimal("4900000")
    )
    taken = _record_locks(monkeypatch)

    BuyRequestService().seller_confirm(db, actor=principal_for(seller), request_id=req.id)

    assert taken == ["land", "request"]


def test_admin_decisions_and_dispute_resolution_share_lock_order(
    db, admin, buyer, pending_admin_request, monkeypatch
):
    taken = _record_locks(monkeypatch)
    OwnershipTransferService().reject(
        db, actor=principal_for(admin), request_id=pending_admin_request.id, reason="price dispute"
    )
    assert taken == ["land", "request"]

    req = BuyRequestService().initiate(
        db,
        actor=principal_for(buyer),
        land_id=pending_admin_request.land_id,
        proposed_price=Decimal("4700000"),
    )
    disputes = DisputeService()
    disputes.mark_disputed(
        db, actor=principal_for(admin), land_id=req.land_id, reason="Boundary claim by neighbour"
    )
    del taken[:]

    disputes.resolve(db, actor=principal_for(admin), land_id=req.land_id, resolution="Survey confirmed")

    assert taken == ["land", "request"]
