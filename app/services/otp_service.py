# app/services/otp_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import ValidationError
from app.core.rate_limit import OTP_SEND_LIMITER, InMemoryRateLimiter
from app.core.security import generate_otp_code, hash_otp_code
from app.models.enums import OtpPurpose
from app.models.otp_challenge import OtpChallenge

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


def _aware(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


class OtpRateLimited(ValidationError):
    code = "OTP_RATE_LIMITED"
    status_code = 429


class OtpService:
    """
    One-time codes for registration and password reset.

    A new send supersedes any outstanding code for the same email/purpose.
    Codes expire after `otp_ttl_minutes` and burn after `otp_max_attempts`
    wrong guesses. Only the hash is stored.
    """

    def __init__(self, limiter: Optional[InMemoryRateLimiter] = None) -> None:
        self.limiter = limiter or OTP_SEND_LIMITER

    def send_code(self, db: Session, *, email: str, purpose: OtpPurpose) -> str:
        """
        Returns the plain code so the caller can hand it to the notifier.
        """
        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValidationError("A valid email address is required.")
        if not self.limiter.allow(email, f"otp:{purpose.value}"):
            raise OtpRateLimited("Too many codes requested; wait a minute and retry.")

        settings = get_settings()
        now = _now()
        code = generate_otp_code()

        db.execute(
            update(OtpChallenge)
            .where(
                OtpChallenge.email == email,
                OtpChallenge.purpose == purpose.value,
                OtpChallenge.consumed_at.is_(None),
            )
            .values(consumed_at=now)
        )
        db.add(
            OtpChallenge(
                email=email,
                purpose=purpose.value,
                code_hash=hash_otp_code(email, code),
                attempts=0,
                expires_at=now + timedelta(minutes=settings.otp_ttl_minutes),
            )
        )
        db.commit()
        logger.info("otp issued email=%s purpose=%s", email, purpose.value)
        return code

    def verify_code(self, db: Session, *, email: str, purpose: OtpPurpose, code: str) -> None:
        """
        Consumes the outstanding code or raises ValidationError.
        """
        email = (email or "").strip().lower()
        settings = get_settings()
        now = _now()

        challenge = db.execute(
            select(OtpChallenge)
            .where(
                OtpChallenge.email == email,
                OtpChallenge.purpose == purpose.value,
                OtpChallenge.consumed_at.is_(None),
            )
            .order_by(OtpChallenge.created_at.desc())
        ).scalars().first()

        if challenge is None:
            raise ValidationError("No verification code pending; request a new one.")
        if _aware(challenge.expires_at) <= now:
            challenge.consumed_at = now
            db.commit()
            raise ValidationError("Verification code expired; request a new one.")
        if challenge.attempts >= settings.otp_max_attempts:
            challenge.consumed_at = now
            db.commit()
            raise ValidationError("Too many wrong attempts; request a new code.")

        if challenge.code_hash != hash_otp_code(email, code or ""):
            challenge.attempts += 1
            db.commit()
            raise ValidationError("Invalid verification code.")

        challenge.consumed_at = now
        db.commit()
