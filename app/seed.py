from decimal import Decimal

from sqlalchemy.orm import Session

import app.models  # noqa: F401
from app.core.security import hash_password
from app.db.session import SessionLocal
from app.models.enums import LandType, UserRole, VerificationStatus
from app.models.user import User
from app.services.auth_service import principal_for
from app.services.land_registry_service import LandRegistryService
from app.services.user_directory import UserDirectory

SEED_PASSWORD = "password123"


def _user(db: Session, directory: UserDirectory, *, email: str, full_name: str, role: UserRole) -> User:
    existing = directory.get_by_email(db, email)
    if existing:
        return existing

    user = User(
        full_name=full_name,
        email=email,
        password_hash=hash_password(SEED_PASSWORD),
        role=role.value,
        verification_status=VerificationStatus.VERIFIED.value,
        email_verified=True,
        profile_json={},
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def seed():
    db: Session = SessionLocal()
    directory = UserDirectory()
    registry = LandRegistryService(directory=directory)

    admin = _user(db, directory, email="admin@registry.local", full_name="Registry Admin", role=UserRole.ADMIN)
    _user(db, directory, email="seller@registry.local", full_name="Seed Seller", role=UserRole.USER)
    _user(db, directory, email="buyer@registry.local", full_name="Seed Buyer", role=UserRole.USER)

    parcels = [
        {"village": "Hebbal", "survey_number": "12/3", "area_acres": Decimal("2.5"), "area_sqft": Decimal("108900")},
        {"village": "Yelahanka", "survey_number": "44", "area_acres": Decimal("1"), "area_sqft": Decimal("43560")},
    ]
    for p in parcels:
        registry.create_land(
            db,
            actor=principal_for(admin),
            fields={
                "state": "Karnataka",
                "district": "Bengaluru Urban",
                "taluka": "Bengaluru North",
                "pincode": "560024",
                "land_type": LandType.AGRICULTURAL.value,
                **p,
            },
        )

    db.close()


if __name__ == "__main__":
    seed()
