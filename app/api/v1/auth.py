#app/api/v1/auth.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.api.v1.responses import user_resp
from app.core.auth_deps import get_current_principal
from app.core.config import get_settings
from app.core.security import create_access_token
from app.db.session import get_db
from app.models.enums import OtpPurpose
from app.policies.rbac import Principal
from app.schemas.auth import (
    LoginRequest,
    OtpSendRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
)
from app.schemas.users import UserResponse
from app.services import auth_service
from app.services.audit_service import AuditAction, audit_event
from app.services.notification_service import get_notifier
from app.services.otp_service import OtpService
from app.services.user_directory import UserDirectory

router = APIRouter(prefix="/auth")


def _token(principal: Principal) -> str:
    return create_access_token(
        subject=principal.user_id,
        claims={
            "user_id": principal.user_id,
            "role": principal.role.value,
            "display_name": principal.display_name,
        },
    )


@router.post("/otp/send", status_code=202)
def send_otp(
    req: OtpSendRequest,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
):
    code = OtpService().send_code(db, email=req.email, purpose=req.purpose)
    ttl = get_settings().otp_ttl_minutes
    background.add_task(
        get_notifier().send,
        req.email.strip().lower(),
        "Your verification code",
        f"Your {req.purpose.value.lower().replace('_', ' ')} code is {code}. It expires in {ttl} minutes.",
    )
    return {"status": "sent", "expiresInMinutes": ttl}


@router.post("/register", response_model=UserResponse, status_code=201)
def register(
    request: Request,
    req: RegisterRequest,
    db: Session = Depends(get_db),
):
    user = auth_service.register(
        db,
        full_name=req.full_name,
        email=req.email,
        password=req.password,
        otp=req.otp,
        phone=req.phone,
    )
    audit_event(
        db,
        request=request,
        actor=auth_service.principal_for(user),
        action=AuditAction.USER_REGISTERED,
        details={"userId": str(user.id), "role": user.role},
    )
    return user_resp(user)


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    principal = auth_service.authenticate(db, req.email, req.password)
    if not principal:
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    return TokenResponse(access_token=_token(principal))


@router.post("/reset-password")
def reset_password(
    request: Request,
    req: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    user = auth_service.reset_password(db, email=req.email, otp=req.otp, new_password=req.new_password)
    audit_event(
        db,
        request=request,
        actor=auth_service.principal_for(user),
        action=AuditAction.PASSWORD_RESET,
        details={"userId": str(user.id)},
    )
    return {"status": "password reset"}


@router.get("/me", response_model=UserResponse)
def get_me(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = UserDirectory().get_user_row(db, uuid.UUID(principal.user_id))
    return user_resp(user)
