# app/services/user_directory.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFound, ValidationError
from app.models.enums import UserRole, VerificationStatus
from app.models.user import User
from app.policies.rbac import ACTION_REVIEW_VERIFICATION, Principal, require_action


@dataclass(frozen=True)
class UserRecord:
    id: uuid.UUID
    verification_status: VerificationStatus
    role: UserRole
    full_name: str
    email: str


def _now():
    return datetime.now(timezone.utc)


class UserDirectory:
    """
    Narrow read/write view of the users table used by the land workflows.
    """

    def get_user_row(self, db: Session, user_id: uuid.UUID) -> User:
        user = db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not user:
            raise NotFound(f"User {user_id} not found.")
        return user

    def get_user(self, db: Session, user_id: uuid.UUID) -> UserRecord:
        u = self.get_user_row(db, user_id)
        return UserRecord(
            id=u.id,
            verification_status=VerificationStatus(u.verification_status),
            role=UserRole(u.role),
            full_name=u.full_name,
            email=u.email,
        )

    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.execute(
            select(User).where(User.email == email.strip().lower())
        ).scalar_one_or_none()

    def list_users(
        self,
        db: Session,
        *,
        verification_status: Optional[VerificationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[User]:
        stmt = select(User).order_by(User.created_at.asc(), User.email.asc())
        if verification_status is not None:
            stmt = stmt.where(User.verification_status == verification_status.value)
        return db.execute(stmt.limit(limit).offset(offset)).scalars().all()

    def set_verification_status(
        self,
        db: Session,
        *,
        actor: Principal,
        user_id: uuid.UUID,
        status: VerificationStatus,
    ) -> User:
        require_action(actor, ACTION_REVIEW_VERIFICATION)
        if status == VerificationStatus.PENDING:
            raise ValidationError("Verification review must resolve to VERIFIED or REJECTED.")

        user = self.get_user_row(db, user_id)
        user.verification_status = status.value
        user.updated_at = _now()
        db.commit()
        db.refresh(user)
        return user
