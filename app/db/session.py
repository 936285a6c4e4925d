from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings

settings = get_settings()

DATABASE_URL = settings.database_url  # fail fast if missing


def build_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        # sessions are handed across threads by the server's worker pool
        connect_args = {"check_same_thread": False, "timeout": 30}
        return create_engine(url, connect_args=connect_args, future=True)

    return create_engine(
        url,
        pool_pre_ping=True,
        future=True,
    )


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
