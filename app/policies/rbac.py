#app/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Set

from app.core.errors import Unauthorized
from app.models.enums import UserRole


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole
    display_name: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# --- Core action constants ---
ACTION_CLAIM_LAND = "CLAIM_LAND"
ACTION_MANAGE_LISTING = "MANAGE_LISTING"
ACTION_REQUEST_PURCHASE = "REQUEST_PURCHASE"
ACTION_REGISTER_LAND = "REGISTER_LAND"
ACTION_REVIEW_VERIFICATION = "REVIEW_VERIFICATION"
ACTION_SETTLE_TRANSACTION = "SETTLE_TRANSACTION"
ACTION_DIGITALIZE = "DIGITALIZE"
ACTION_MANAGE_DISPUTE = "MANAGE_DISPUTE"

_USER_ACTIONS = {
    ACTION_CLAIM_LAND,
    ACTION_MANAGE_LISTING,
    ACTION_REQUEST_PURCHASE,
}


def allowed_actions(role: UserRole) -> Set[str]:
    """
    Pure RBAC: which actions a role may attempt.
    Ownership and verification are checked separately by the services.
    """

    if role == UserRole.USER:
        return set(_USER_ACTIONS)

    if role == UserRole.ADMIN:
        return _USER_ACTIONS | {
            ACTION_REGISTER_LAND,
            ACTION_REVIEW_VERIFICATION,
            ACTION_SETTLE_TRANSACTION,
            ACTION_DIGITALIZE,
            ACTION_MANAGE_DISPUTE,
        }

    return set()


def require_action(principal: Principal, action: str) -> None:
    if action not in allowed_actions(principal.role):
        raise Unauthorized(
            f"Role {principal.role.value} not permitted for action {action}."
        )
