# app/services/auth_service.py
from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import DuplicateIdentifier, NotFound, ValidationError
from app.core.security import hash_password, verify_password
from app.models.enums import OtpPurpose, UserRole, VerificationStatus
from app.models.user import User
from app.policies.rbac import Principal
from app.services.otp_service import OtpService
from app.services.user_directory import UserDirectory

MIN_PASSWORD_LENGTH = 8

_directory = UserDirectory()


def principal_for(user: User) -> Principal:
    return Principal(
        user_id=str(user.id),
        role=UserRole(user.role),
        display_name=user.full_name,
    )


def _check_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")


def register(
    db: Session,
    *,
    full_name: str,
    email: str,
    password: str,
    otp: str,
    phone: Optional[str] = None,
    otp_service: Optional[OtpService] = None,
) -> User:
    """
    Creates a USER (or ADMIN for configured admin emails) after the
    registration code is verified. KYC starts PENDING.
    """
    email = (email or "").strip().lower()
    full_name = (full_name or "").strip()
    if not full_name:
        raise ValidationError("full_name is required.")
    _check_password(password)

    if _directory.get_by_email(db, email) is not None:
        raise DuplicateIdentifier("An account with this email already exists.")

    (otp_service or OtpService()).verify_code(db, email=email, purpose=OtpPurpose.REGISTRATION, code=otp)

    admins = {e.strip().lower() for e in get_settings().admin_emails}
    user = User(
        full_name=full_name,
        email=email,
        password_hash=hash_password(password),
        role=(UserRole.ADMIN if email in admins else UserRole.USER).value,
        verification_status=VerificationStatus.PENDING.value,
        email_verified=True,
        phone=(phone or "").strip() or None,
        profile_json={},
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateIdentifier("An account with this email already exists.") from exc
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> Principal | None:
    user = _directory.get_by_email(db, email or "")
    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return principal_for(user)


def reset_password(
    db: Session,
    *,
    email: str,
    otp: str,
    new_password: str,
    otp_service: Optional[OtpService] = None,
) -> User:
    _check_password(new_password)
    user = _directory.get_by_email(db, email or "")
    if not user or not user.is_active:
        raise NotFound("User not found.")

    (otp_service or OtpService()).verify_code(
        db, email=user.email, purpose=OtpPurpose.PASSWORD_RESET, code=otp
    )

    user.password_hash = hash_password(new_password)
    db.commit()
    db.refresh(user)
    return user
