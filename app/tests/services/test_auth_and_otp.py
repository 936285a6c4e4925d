from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import get_settings
from app.core.errors import DuplicateIdentifier, ValidationError
from app.core.rate_limit import InMemoryRateLimiter
from app.models.enums import OtpPurpose, UserRole, VerificationStatus
from app.models.otp_challenge import OtpChallenge
from app.services import auth_service
from app.services.otp_service import OtpRateLimited, OtpService


def _register(db, email="new.user@example.com", password="s3cret-pass"):
    code = OtpService().send_code(db, email=email, purpose=OtpPurpose.REGISTRATION)
    return auth_service.register(db, full_name="New User", email=email, password=password, otp=code)


def test_register_with_valid_code(db):
    user = _register(db, email="New.User@Example.com")
    assert user.email == "new.user@example.com"
    assert user.role == UserRole.USER.value
    assert user.verification_status == VerificationStatus.PENDING.value
    assert user.email_verified is True

    principal = auth_service.authenticate(db, "new.user@example.com", "s3cret-pass")
    assert principal is not None
    assert principal.user_id == str(user.id)
    assert auth_service.authenticate(db, "new.user@example.com", "wrong-pass") is None


def test_register_rejects_wrong_code(db):
    OtpService().send_code(db, email="a@example.com", purpose=OtpPurpose.REGISTRATION)
    with pytest.raises(ValidationError):
        auth_service.register(db, full_name="A", email="a@example.com", password="s3cret-pass", otp="000000x")


def test_register_twice_is_duplicate(db):
    _register(db)
    with pytest.raises(DuplicateIdentifier):
        _register(db)


def test_admin_emails_register_as_admin(db, monkeypatch):
    monkeypatch.setattr(get_settings(), "admin_emails", ["root@registry.local"])
    user = _register(db, email="root@registry.local")
    assert user.role == UserRole.ADMIN.value


def test_code_is_single_use(db):
    svc = OtpService()
    code = svc.send_code(db, email="b@example.com", purpose=OtpPurpose.REGISTRATION)
    svc.verify_code(db, email="b@example.com", purpose=OtpPurpose.REGISTRATION, code=code)
    with pytest.raises(ValidationError):
        svc.verify_code(db, email="b@example.com", purpose=OtpPurpose.REGISTRATION, code=code)


def test_code_is_bound_to_purpose(db):
    svc = OtpService()
    code = svc.send_code(db, email="c@example.com", purpose=OtpPurpose.REGISTRATION)
    with pytest.raises(ValidationError):
        svc.verify_code(db, email="c@example.com", purpose=OtpPurpose.PASSWORD_RESET, code=code)


def test_new_code_supersedes_old(db):
    svc = OtpService()
    old = svc.send_code(db, email="d@example.com", purpose=OtpPurpose.REGISTRATION)
    new = svc.send_code(db, email="d@example.com", purpose=OtpPurpose.REGISTRATION)
    if old != new:
        with pytest.raises(ValidationError):
            svc.verify_code(db, email="d@example.com", purpose=OtpPurpose.REGISTRATION, code=old)
    else:
        svc.verify_code(db, email="d@example.com", purpose=OtpPurpose.REGISTRATION, code=new)


def test_expired_code_is_refused(db):
    svc = OtpService()
    code = svc.send_code(db, email="e@example.com", purpose=OtpPurpose.REGISTRATION)
    challenge = db.query(OtpChallenge).filter(OtpChallenge.email == "e@example.com").one()
    challenge.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    db.commit()

    with pytest.raises(ValidationError):
        svc.verify_code(db, email="e@example.com", purpose=OtpPurpose.REGISTRATION, code=code)


def test_too_many_wrong_attempts_burns_the_code(db):
    svc = OtpService()
    code = svc.send_code(db, email="f@example.com", purpose=OtpPurpose.REGISTRATION)
    for _ in range(get_settings().otp_max_attempts):
        with pytest.raises(ValidationError):
            svc.verify_code(db, email="f@example.com", purpose=OtpPurpose.REGISTRATION, code="bad")
    with pytest.raises(ValidationError):
        svc.verify_code(db, email="f@example.com", purpose=OtpPurpose.REGISTRATION, code=code)


def test_send_is_rate_limited_per_email(db):
    svc = OtpService(limiter=InMemoryRateLimiter(capacity=2, refill_per_sec=0.0))
    svc.send_code(db, email="g@example.com", purpose=OtpPurpose.REGISTRATION)
    svc.send_code(db, email="g@example.com", purpose=OtpPurpose.REGISTRATION)
    with pytest.raises(OtpRateLimited):
        svc.send_code(db, email="g@example.com", purpose=OtpPurpose.REGISTRATION)
    # other addresses have their own bucket
    svc.send_code(db, email="h@example.com", purpose=OtpPurpose.REGISTRATION)


def test_password_reset_with_code(db):
    _register(db, email="i@example.com")
    code = OtpService().send_code(db, email="i@example.com", purpose=OtpPurpose.PASSWORD_RESET)
    auth_service.reset_password(db, email="i@example.com", otp=code, new_password="another-pass")

    assert auth_service.authenticate(db, "i@example.com", "s3cret-pass") is None
    assert auth_service.authenticate(db, "i@example.com", "another-pass") is not None


def test_short_password_is_refused(db):
    with pytest.raises(ValidationError):
        auth_service.register(db, full_name="J", email="j@example.com", password="short", otp="123456")
