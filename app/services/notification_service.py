# app/services/notification_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    to: str
    subject: str
    body: str


Sender = Callable[[Message], None]


def log_sender(message: Message) -> None:
    logger.info("notification to=%s subject=%s", message.to, message.subject)


class NotificationService:
    """
    Outbound email-ish messages. Delivery goes through a pluggable sender;
    the default one only logs. Routes schedule `send` on BackgroundTasks so
    delivery never runs inside a state transition.
    """

    def __init__(self, sender: Optional[Sender] = None) -> None:
        self.sender = sender or log_sender

    def send(self, to: str, subject: str, body: str) -> None:
        try:
            self.sender(Message(to=to, subject=subject, body=body))
        except Exception:
            # delivery failure must not surface to a request that already committed
            logger.exception("notification delivery failed to=%s subject=%s", to, subject)

    def send_many(self, recipients: Iterable[str], subject: str, body: str) -> None:
        for to in recipients:
            self.send(to, subject, body)

    def emails_for(self, db: Session, user_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, str]:
        ids: List[uuid.UUID] = [u for u in user_ids if u is not None]
        if not ids:
            return {}
        rows = db.execute(select(User.id, User.email).where(User.id.in_(ids))).all()
        return {r.id: r.email for r in rows}


_default = NotificationService()


def get_notifier() -> NotificationService:
    return _default
