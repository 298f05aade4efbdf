from __future__ import annotations

import logging
from typing import Mapping

import numpy as np
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..attributes import resolve_attribute, validate_attributes
from ..db.models import ATTRIBUTES, FAVORABLE_RATINGS, Favorite, Review, ReviewRating, User
from ..db.session import atomic
from ..errors import UserNotFound
from .cache import DEFAULT_CACHE, RecommendationCache
from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .models import FlavorProfile, PreferenceSource, PreferenceVector

logger = logging.getLogger(__name__)


def _get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound(user_id)
    return user


def _baseline_values(user: User) -> list[float | None]:
    return [user.baseline(name) for name in ATTRIBUTES]


def get_preference_vector(
    db: Session,
    user_id: str,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
) -> PreferenceVector | None:
    """Return the user's flavor preferences, or ``None`` if nothing is known.

    Priority:
    1. The explicit baseline, when all five traits are set.
    2. A weighted mean over the user's favorable reviews; favorited oysters
       count 1.5x. Missing review values fall back to the oyster's aggregate,
       then its seed value.
    3. ``None``, which sends the caller to the top-rated fallback.
    """
    user = _get_user(db, user_id)

    baseline = _baseline_values(user)
    if all(v is not None for v in baseline):
        return PreferenceVector(
            profile=FlavorProfile.from_values(dict(zip(ATTRIBUTES, baseline))),
            source=PreferenceSource.baseline,
        )

    reviews = db.execute(
        select(Review)
        .options(selectinload(Review.item))
        .where(Review.user_id == user_id, Review.rating.in_(FAVORABLE_RATINGS))
    ).scalars().all()
    if not reviews:
        return None

    favorites = set(
        db.execute(select(Favorite.item_id).where(Favorite.user_id == user_id)).scalars()
    )

    rows = np.array([
        [
            resolve_attribute(r.attribute(name), r.item.aggregate(name), r.item.seed(name))
            for name in ATTRIBUTES
        ]
        for r in reviews
    ], dtype=float)
    weights = np.array([
        config.favorite_weight if r.item_id in favorites else config.default_weight
        for r in reviews
    ])
    averaged = weights @ rows / weights.sum()

    return PreferenceVector(
        profile=FlavorProfile.from_values(averaged),
        source=PreferenceSource.reviews,
    )


def set_baseline(
    db: Session,
    user_id: str,
    profile: FlavorProfile,
    cache: RecommendationCache = DEFAULT_CACHE,
) -> None:
    values = profile.model_dump()
    validate_attributes(values)
    user = _get_user(db, user_id)

    with atomic(db):
        for name in ATTRIBUTES:
            setattr(user, f"baseline_{name}", values[name])

    cache.invalidate(user_id)
    logger.info("Set baseline profile for user %s", user_id)


def apply_review_to_baseline(
    db: Session,
    user_id: str,
    rating: ReviewRating | str,
    attributes: Mapping[str, float | None],
    cache: RecommendationCache = DEFAULT_CACHE,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
) -> bool:
    """Fold a favorable review into the user's baseline profile.

    Without a baseline, one is created only from a review that rates all five
    traits. Otherwise each supplied trait moves toward the review by 0.4
    (LOVE_IT) or 0.3 (LIKE_IT). Returns whether the baseline changed.
    """
    rating = ReviewRating(rating)
    if rating not in FAVORABLE_RATINGS:
        return False

    supplied = {name: attributes.get(name) for name in ATTRIBUTES}
    validate_attributes(supplied)
    user = _get_user(db, user_id)

    if all(v is None for v in _baseline_values(user)):
        if any(v is None for v in supplied.values()):
            return False
        set_baseline(db, user_id, FlavorProfile.from_values(supplied), cache=cache)
        logger.info("Created initial baseline from review for user %s", user_id)
        return True

    weight = config.love_it_nudge if rating is ReviewRating.LOVE_IT else config.like_it_nudge
    updates: dict[str, float] = {}
    for name, value in supplied.items():
        current = user.baseline(name)
        if value is not None and current is not None:
            updates[name] = current * (1 - weight) + value * weight

    if not updates:
        return False

    with atomic(db):
        for name, value in updates.items():
            setattr(user, f"baseline_{name}", value)

    cache.invalidate(user_id)
    logger.info("Nudged baseline for user %s toward %s review", user_id, rating.value)
    return True
