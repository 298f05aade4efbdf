"""
Offline script to re-derive every oyster's aggregates.

Usage:
    python -m oyster_backend.ratings.backfill
"""
from __future__ import annotations

from ..db.models import Base
from ..db.session import SessionLocal, engine
from .aggregator import recalculate_all_ratings


def run_backfill() -> int:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        return recalculate_all_ratings(db)


if __name__ == "__main__":
    count = run_backfill()
    print(f"Recalculated ratings for {count} oysters")
