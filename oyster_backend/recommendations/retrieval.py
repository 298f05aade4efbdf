from __future__ import annotations

import logging

import numpy as np
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..attributes import clamp, resolve_attribute
from ..db.models import ATTRIBUTES, Item, Review
from .cache import DEFAULT_CACHE, RecommendationCache
from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .models import (
    FlavorProfile,
    ItemOut,
    PreferenceSource,
    RecommendationItem,
    RecommendationReason,
)
from .preferences import get_preference_vector

logger = logging.getLogger(__name__)


def item_profile(item: Item) -> np.ndarray:
    """Current flavor vector of an oyster: aggregate where known, else seed."""
    return np.array(
        [resolve_attribute(item.aggregate(name), item.seed(name)) for name in ATTRIBUTES],
        dtype=float,
    )


def similarity(item: Item, profile: FlavorProfile) -> float:
    """Match percentage between an oyster and a preference profile.

    Each trait contributes ``1 - |item - pref| / 10``; the mean is scaled to
    0-100 and clamped.
    """
    distances = np.abs(item_profile(item) - profile.as_array()) / 10
    return clamp(float(np.mean(1 - distances)) * 100, 0.0, 100.0)


def top_rated(db: Session, limit: int) -> list[RecommendationItem]:
    """Highest ``overall_score`` oysters with at least one review."""
    items = db.execute(
        select(Item)
        .where(Item.review_count >= 1)
        .order_by(Item.overall_score.desc(), Item.id)
        .limit(limit)
    ).scalars().all()
    return [
        RecommendationItem(item=ItemOut.model_validate(item), reason=RecommendationReason.top_rated)
        for item in items
    ]


def _rank_candidates(
    db: Session,
    user_id: str,
    profile: FlavorProfile,
    reason: RecommendationReason,
) -> list[RecommendationItem]:
    reviewed = select(Review.item_id).where(Review.user_id == user_id)
    candidates = db.execute(select(Item).where(Item.id.not_in(reviewed))).scalars().all()

    scored = sorted(
        ((similarity(item, profile), item) for item in candidates),
        key=lambda pair: (-pair[0], pair[1].id),
    )
    return [
        RecommendationItem(item=ItemOut.model_validate(item), similarity=score, reason=reason)
        for score, item in scored
    ]


def recommend(
    db: Session,
    user_id: str,
    limit: int = 10,
    cache: RecommendationCache = DEFAULT_CACHE,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
) -> list[RecommendationItem]:
    """Rank unreviewed oysters by closeness to the user's flavor preferences.

    Users with no known preferences get the top-rated list instead, which is
    never cached. Personalized rankings are cached whole and sliced per call.
    """
    cached = cache.get(user_id)
    if cached is not None:
        logger.debug("Cache hit for user %s", user_id)
        return list(cached[:limit])

    preferences = get_preference_vector(db, user_id, config=config)
    if preferences is None:
        logger.info("No preferences for user %s, falling back to top rated", user_id)
        return top_rated(db, limit)

    reason = (
        RecommendationReason.baseline_match
        if preferences.source is PreferenceSource.baseline
        else RecommendationReason.personalized
    )
    ranked = _rank_candidates(db, user_id, preferences.profile, reason)
    cache.set(user_id, ranked)

    logger.info("Ranked %d oysters for user %s (%s)", len(ranked), user_id, reason.value)
    return ranked[:limit]
