from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from app.models.enums import VerificationStatus


class UserResponse(BaseModel):
    userId: str
    fullName: str
    email: str
    role: str
    verificationStatus: str
    emailVerified: bool
    isActive: bool
    phone: Optional[str] = None
    createdAtIso: Optional[str] = None


class UserVerificationRequest(BaseModel):
    status: VerificationStatus
