from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from app.models.enums import OtpPurpose


class OtpSendRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    purpose: OtpPurpose = OtpPurpose.REGISTRATION


class RegisterRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=256)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=8)
    otp: str = Field(..., min_length=4, max_length=12, description="code from /auth/otp/send")
    phone: Optional[str] = Field(default=None, max_length=32)


class LoginRequest(BaseModel):
    email: str
    password: str


class ResetPasswordRequest(BaseModel):
    email: str
    otp: str
    new_password: str = Field(..., min_length=8)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
