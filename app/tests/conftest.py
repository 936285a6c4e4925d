import os

# settings are read at import time by app.db.session
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

# FORCE model registration
import app.models  # noqa

from app.core.rate_limit import OTP_SEND_LIMITER
from app.db.base import Base
from app.db.session import build_engine
from app.models.enums import LandType, UserRole, VerificationStatus
from app.models.user import User
from app.services.auth_service import principal_for
from app.services.buy_request_service import BuyRequestService
from app.services.land_registry_service import LandRegistryService
from app.services.listing_service import MarketplaceService


@pytest.fixture(scope="function")
def engine(tmp_path):
    # file-backed so several sessions (and threads) see the same database
    eng = build_engine(f"sqlite:///{tmp_path / 'registry.db'}")
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _reset_otp_limiter():
    OTP_SEND_LIMITER.reset()
    yield
    OTP_SEND_LIMITER.reset()


# ─────────────────────────────────────────────
# FACTORIES
# ─────────────────────────────────────────────


def create_user(
    db,
    *,
    role=UserRole.USER,
    verified=True,
    email=None,
    full_name=None,
    password_hash="x",
):
    uid = uuid.uuid4()
    u = User(
        id=uid,
        full_name=full_name or f"User {uid.hex[:6]}",
        email=email or f"{uid.hex[:10]}@example.com",
        password_hash=password_hash,
        role=role.value,
        verification_status=(VerificationStatus.VERIFIED if verified else VerificationStatus.PENDING).value,
        email_verified=True,
        profile_json={},
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def create_land(db, admin, **overrides):
    fields = {
        "state": "Karnataka",
        "district": "Mysuru",
        "taluka": "Hunsur",
        "village": "Bilikere",
        "survey_number": "101/2",
        "pincode": "571105",
        "area_acres": Decimal("2"),
        "area_sqft": Decimal("87120"),
        "land_type": LandType.AGRICULTURAL.value,
    }
    fields.update(overrides)
    return LandRegistryService().create_land(db, actor=principal_for(admin), fields=fields)


@pytest.fixture
def admin(db):
    return create_user(db, role=UserRole.ADMIN, full_name="Registry Admin")


@pytest.fixture
def seller(db):
    return create_user(db, full_name="Asha Seller")


@pytest.fixture
def buyer(db):
    return create_user(db, full_name="Ravi Buyer")


@pytest.fixture
def land(db, admin):
    return create_land(db, admin)


@pytest.fixture
def listed_land(db, land, seller):
    """Claimed by the seller and listed FOR_SALE at 5,000,000."""
    LandRegistryService().claim(db, actor=principal_for(seller), land_id=land.id)
    return MarketplaceService().list_for_sale(
        db,
        actor=principal_for(seller),
        land_id=land.id,
        asking_price=Decimal("5000000"),
        description="Fertile plot near the highway",
    )


@pytest.fixture
def pending_admin_request(db, listed_land, seller, buyer):
    """A buy request the seller has already confirmed."""
    svc = BuyRequestService()
    req = svc.initiate(
        db,
        actor=principal_for(buyer),
        land_id=listed_land.id,
        proposed_price=Decimal("4800000"),
        message="Interested",
    )
    return svc.seller_confirm(db, actor=principal_for(seller), request_id=req.id)


@pytest.fixture
def make_user(db):
    def _make(**kwargs):
        return create_user(db, **kwargs)

    return _make


@pytest.fixture
def make_land(db, admin):
    def _make(**overrides):
        return create_land(db, admin, **overrides)

    return _make


# ─────────────────────────────────────────────
# API
# ─────────────────────────────────────────────


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from app.db.session import get_db
    from app.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def auth_header():
    from app.core.security import create_access_token

    def _header(user):
        token = create_access_token(
            subject=str(user.id),
            claims={"user_id": str(user.id), "role": user.role, "display_name": user.full_name},
        )
        return {"Authorization": f"Bearer {token}"}

    return _header
