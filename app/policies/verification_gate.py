# app/policies/verification_gate.py
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import NotVerified
from app.models.enums import VerificationStatus
from app.services.user_directory import UserDirectory


class UserVerificationGate:
    """
    Is this user KYC-verified right now?

    Reads the directory on every call; the answer is never cached across
    operations because an admin can change it between two requests.
    """

    def __init__(self, directory: Optional[UserDirectory] = None) -> None:
        self.directory = directory or UserDirectory()

    def is_verified(self, db: Session, user_id: uuid.UUID) -> bool:
        user = self.directory.get_user(db, user_id)
        return user.verification_status == VerificationStatus.VERIFIED

    def require_verified(self, db: Session, user_id: uuid.UUID, *, purpose: str) -> None:
        if not self.is_verified(db, user_id):
            raise NotVerified(f"User must be VERIFIED to {purpose}.")
