from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import DEFAULT_DATABASE_CONFIG, DatabaseConfig


def build_engine(config: DatabaseConfig = DEFAULT_DATABASE_CONFIG) -> Engine:
    connect_args = {}
    if config.url.startswith("sqlite"):
        # FastAPI runs sync handlers on a threadpool
        connect_args["check_same_thread"] = False
    return create_engine(config.url, echo=config.echo, future=True, connect_args=connect_args)


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit everything written inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
