# Database engine, session factory and the declarative Base shared by
# every model. Request handlers get a session through get_db(); jobs
# open their own with SessionLocal().

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings


def _engine_kwargs(url: str) -> dict:
    kwargs: dict = {"echo": settings.DB_ECHO, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True
    return kwargs


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, *, timeout_seconds: int | None = None) -> Iterator[Session]:
    """Run a block of writes as one unit.

    Commits when the block exits cleanly; on any exception the session is
    rolled back and the exception re-raised, so callers never observe a
    partially applied ledger change.
    """
    try:
        if timeout_seconds and db.get_bind().dialect.name == "postgresql":
            db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_seconds) * 1000}"))
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
