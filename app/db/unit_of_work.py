# app/db/unit_of_work.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConcurrentModification


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Commit everything staged inside the block as one database transaction.

    Versioned rows (Land, BuyRequest) are written with
    `UPDATE ... WHERE id = :id AND version = :seen`; a zero-row update means
    another writer got there first and surfaces as ConcurrentModification.
    Any failure rolls the whole block back.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrentModification(
            "The record was modified by another request; reload and retry."
        ) from exc
    except Exception:
        db.rollback()
        raise
