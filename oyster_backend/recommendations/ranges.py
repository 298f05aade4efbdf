from __future__ import annotations

import logging

import numpy as np
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.models import ATTRIBUTES, FAVORABLE_RATINGS, FlavorRange, Review, User
from ..db.session import atomic
from ..errors import UserNotFound
from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .models import FlavorRangeOut

logger = logging.getLogger(__name__)


def update_flavor_ranges(
    db: Session,
    user_id: str,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
) -> bool:
    """Store min/max/median of each trait over the user's favorable reviews.

    Skipped until the user has enough favorable reviews. Missing review values
    are ignored; a trait with no values at all gets no range.
    """
    if db.get(User, user_id) is None:
        raise UserNotFound(user_id)

    reviews = db.execute(
        select(Review).where(Review.user_id == user_id, Review.rating.in_(FAVORABLE_RATINGS))
    ).scalars().all()
    if len(reviews) < config.min_reviews_for_ranges:
        return False

    ranges = {}
    for name in ATTRIBUTES:
        values = np.array([r.attribute(name) for r in reviews if r.attribute(name) is not None], dtype=float)
        if values.size:
            ranges[name] = (float(values.min()), float(values.max()), float(np.median(values)))

    with atomic(db):
        db.execute(delete(FlavorRange).where(FlavorRange.user_id == user_id))
        for name, (low, high, median) in ranges.items():
            db.add(FlavorRange(
                user_id=user_id, attribute=name,
                min_value=low, max_value=high, median_value=median,
            ))

    logger.info("Updated flavor ranges for user %s from %d reviews", user_id, len(reviews))
    return True


def get_flavor_ranges(db: Session, user_id: str) -> dict[str, FlavorRangeOut]:
    if db.get(User, user_id) is None:
        raise UserNotFound(user_id)
    rows = db.execute(select(FlavorRange).where(FlavorRange.user_id == user_id)).scalars().all()
    return {
        row.attribute: FlavorRangeOut(min=row.min_value, max=row.max_value, median=row.median_value)
        for row in rows
    }
