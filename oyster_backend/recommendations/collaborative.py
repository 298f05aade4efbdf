"""
User-to-user collaborative filtering and the hybrid blend.

Users are compared by cosine similarity over the ordinal ratings (4 for
LOVE_IT down to 1 for WHATEVER) they gave to oysters both of them reviewed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd
from sklearn.metrics.pairwise import cosine_similarity
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..db.models import FAVORABLE_RATINGS, Review, ReviewRating, User
from ..errors import UserNotFound
from ..ratings.config import DEFAULT_RATING_CONFIG, RatingConfig
from .cache import DEFAULT_CACHE, RecommendationCache
from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .models import ItemOut, RecommendationItem, RecommendationReason
from .retrieval import recommend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimilarUser:
    user_id: str
    similarity: float


def _ratings_frame(reviews, rating_config: RatingConfig) -> pd.DataFrame:
    """Pivot (user, item, rating) rows into a user x item matrix of points."""
    rows = [
        {"user_id": user_id, "item_id": item_id, "points": rating_config.rating_points[rating]}
        for user_id, item_id, rating in reviews
    ]
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows).pivot_table(
        index="user_id", columns="item_id", values="points", aggfunc="first",
    )


def find_similar_users(
    db: Session,
    user_id: str,
    limit: int = 10,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
    rating_config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> list[SimilarUser]:
    if db.get(User, user_id) is None:
        raise UserNotFound(user_id)

    own = db.execute(
        select(Review.item_id).where(Review.user_id == user_id)
    ).scalars().all()
    if len(own) < config.min_reviews_for_similarity:
        return []

    reviews = db.execute(
        select(Review.user_id, Review.item_id, Review.rating).where(
            Review.item_id.in_(own),
            Review.user_id.is_not(None),
        )
    ).all()
    matrix = _ratings_frame(reviews, rating_config)
    if user_id not in matrix.index:
        return []
    target = matrix.loc[user_id]

    similar: list[SimilarUser] = []
    for peer_id, peer in matrix.drop(index=user_id).iterrows():
        common = target.notna() & peer.notna()
        if common.sum() < config.min_common_items:
            continue
        score = float(cosine_similarity(
            target[common].to_numpy().reshape(1, -1),
            peer[common].to_numpy().reshape(1, -1),
        )[0, 0])
        if score > config.min_user_similarity:
            similar.append(SimilarUser(user_id=str(peer_id), similarity=score))

    similar.sort(key=lambda s: (-s.similarity, s.user_id))
    return similar[:limit]


def collaborative_recommendations(
    db: Session,
    user_id: str,
    limit: int = 10,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
) -> list[RecommendationItem]:
    """Oysters that similar users liked and the target has not reviewed."""
    peers = find_similar_users(db, user_id, config.similar_user_pool, config=config)
    if not peers:
        return []
    peer_similarity = {p.user_id: p.similarity for p in peers}

    reviewed = select(Review.item_id).where(Review.user_id == user_id)
    liked = db.execute(
        select(Review)
        .options(selectinload(Review.item))
        .where(
            Review.user_id.in_(list(peer_similarity)),
            Review.rating.in_(FAVORABLE_RATINGS),
            Review.item_id.not_in(reviewed),
        )
    ).scalars().all()

    scores: dict[str, dict] = {}
    for review in liked:
        weight = (
            config.love_it_collaborative_weight
            if review.rating is ReviewRating.LOVE_IT
            else config.like_it_collaborative_weight
        )
        entry = scores.setdefault(review.item_id, {"item": review.item, "score": 0.0, "count": 0})
        entry["score"] += peer_similarity[review.user_id] * weight
        entry["count"] += 1

    ranked = sorted(scores.values(), key=lambda e: (-e["score"], e["item"].id))[:limit]
    logger.info("Generated %d collaborative recommendations for user %s", len(ranked), user_id)
    return [
        RecommendationItem(
            item=ItemOut.model_validate(e["item"]),
            reason=RecommendationReason.collaborative,
            collaborative_score=e["score"],
            similar_user_count=e["count"],
        )
        for e in ranked
    ]


def hybrid_recommendations(
    db: Session,
    user_id: str,
    limit: int = 10,
    cache: RecommendationCache = DEFAULT_CACHE,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
) -> list[RecommendationItem]:
    """Blend attribute similarity (0.6) with normalized collaborative score (0.4).

    Oysters found by both methods are tagged ``hybrid``; the rest keep the
    reason of the list they came from.
    """
    attribute_based = recommend(db, user_id, limit * 2, cache=cache, config=config)
    collaborative = collaborative_recommendations(db, user_id, limit * 2, config=config)

    merged: dict[str, RecommendationItem] = {}
    for rec in attribute_based:
        attribute_score = rec.similarity / 100 if rec.similarity else 0.0
        merged[rec.item.id] = rec.model_copy(update={
            "collaborative_score": 0.0,
            "hybrid_score": attribute_score * config.hybrid_attribute_weight,
        })

    if collaborative:
        max_score = max(rec.collaborative_score for rec in collaborative)
        for rec in collaborative:
            normalized = rec.collaborative_score / max_score if max_score > 0 else 0.0
            existing = merged.get(rec.item.id)
            if existing is not None:
                merged[rec.item.id] = existing.model_copy(update={
                    "collaborative_score": normalized,
                    "similar_user_count": rec.similar_user_count,
                    "hybrid_score": existing.hybrid_score + normalized * config.hybrid_collaborative_weight,
                    "reason": RecommendationReason.hybrid,
                })
            else:
                merged[rec.item.id] = rec.model_copy(update={
                    "collaborative_score": normalized,
                    "hybrid_score": normalized * config.hybrid_collaborative_weight,
                })

    ranked = sorted(merged.values(), key=lambda r: (-r.hybrid_score, r.item.id))[:limit]
    logger.info("Generated %d hybrid recommendations for user %s", len(ranked), user_id)
    return ranked
