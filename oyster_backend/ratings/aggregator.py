from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..attributes import clamp
from ..db.models import ATTRIBUTES, Item, Review, ReviewRating
from ..db.session import atomic
from ..errors import ItemNotFound
from .config import DEFAULT_RATING_CONFIG, RatingConfig
from .models import RatingStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewSample:
    """One review's contribution: its rating, subscores and combined weight."""

    rating: ReviewRating
    values: dict[str, float | None]
    weight: float


@dataclass(frozen=True)
class ItemAggregates:
    review_count: int
    attributes: dict[str, float]
    avg_rating: float
    overall_score: float


def user_rating_weight(review_count: int, config: RatingConfig = DEFAULT_RATING_CONFIG) -> float:
    """Confidence ramp: 0 with no reviews, linear up to the ceiling at N reviews."""
    if review_count <= 0:
        return 0.0
    if review_count >= config.min_reviews_for_weight:
        return config.user_rating_weight
    return (review_count / config.min_reviews_for_weight) * config.user_rating_weight


def _weighted_mean(values: Sequence[float], weights: Sequence[float]) -> float | None:
    w = np.asarray(weights, dtype=float)
    total = float(w.sum())
    if total <= 0:
        return None
    return float(np.dot(np.asarray(values, dtype=float), w) / total)


def blend_attribute(
    seed_value: float,
    samples: Sequence[tuple[float | None, float]],
    user_weight: float,
) -> float:
    """Blend a seed value with the weighted mean of the supplied review values.

    *samples* are ``(value, weight)`` pairs; ``None`` values are skipped. With
    no usable values the seed is returned unchanged.
    """
    present = [(v, w) for v, w in samples if v is not None]
    if not present:
        return seed_value
    user_avg = _weighted_mean([v for v, _ in present], [w for _, w in present])
    if user_avg is None:
        return seed_value
    return (1 - user_weight) * seed_value + user_weight * user_avg


def weighted_rating(samples: Sequence[ReviewSample], config: RatingConfig = DEFAULT_RATING_CONFIG) -> float:
    if not samples:
        return 0.0
    avg = _weighted_mean(
        [config.rating_points[s.rating] for s in samples],
        [s.weight for s in samples],
    )
    return avg if avg is not None else 0.0


def overall_score(
    avg_rating: float,
    attributes: Sequence[float],
    review_count: int,
    config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> float:
    if review_count <= 0:
        return config.neutral_score
    rating_component = avg_rating / config.max_rating_points * 10
    attribute_component = float(np.mean(attributes))
    score = config.rating_share * rating_component + config.attribute_share * attribute_component
    return clamp(score, 0.0, 10.0)


def compute_aggregates(
    seeds: dict[str, float],
    samples: Sequence[ReviewSample],
    config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> ItemAggregates:
    """Full re-derivation of an oyster's aggregates from its seed and reviews."""
    review_count = len(samples)
    uw = user_rating_weight(review_count, config)

    attributes = {
        name: blend_attribute(
            seeds[name],
            [(s.values.get(name), s.weight) for s in samples],
            uw,
        )
        for name in ATTRIBUTES
    }
    avg_rating = weighted_rating(samples, config)
    return ItemAggregates(
        review_count=review_count,
        attributes=attributes,
        avg_rating=avg_rating,
        overall_score=overall_score(avg_rating, list(attributes.values()), review_count, config),
    )


def _sample_from_review(review: Review, config: RatingConfig) -> ReviewSample:
    credibility = review.user.credibility_score if review.user is not None else config.anonymous_credibility
    return ReviewSample(
        rating=review.rating,
        values={name: review.attribute(name) for name in ATTRIBUTES},
        weight=review.weighted_score * credibility,
    )


def recalculate_item_rating(
    db: Session,
    item_id: str,
    config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> ItemAggregates:
    """Recompute and persist every aggregate of one oyster in a single write."""
    item = db.get(Item, item_id)
    if item is None:
        raise ItemNotFound(item_id)

    reviews = db.execute(
        select(Review).options(selectinload(Review.user)).where(Review.item_id == item_id)
    ).scalars().all()

    aggregates = compute_aggregates(
        {name: item.seed(name) for name in ATTRIBUTES},
        [_sample_from_review(r, config) for r in reviews],
        config,
    )

    with atomic(db):
        item.review_count = aggregates.review_count
        for name, value in aggregates.attributes.items():
            setattr(item, f"avg_{name}", value)
        item.avg_rating = aggregates.avg_rating
        item.overall_score = aggregates.overall_score

    logger.info(
        "Recalculated ratings for oyster %s (%d reviews, score %.2f)",
        item_id, aggregates.review_count, aggregates.overall_score,
    )
    return aggregates


def recalculate_all_ratings(db: Session, config: RatingConfig = DEFAULT_RATING_CONFIG) -> int:
    item_ids = db.execute(select(Item.id).order_by(Item.id)).scalars().all()
    logger.info("Recalculating ratings for %d oysters", len(item_ids))
    for item_id in item_ids:
        recalculate_item_rating(db, item_id, config=config)
    logger.info("All oyster ratings recalculated")
    return len(item_ids)


def get_rating_stats(
    db: Session,
    item_id: str,
    config: RatingConfig = DEFAULT_RATING_CONFIG,
) -> RatingStats:
    item = db.get(Item, item_id)
    if item is None:
        raise ItemNotFound(item_id)

    ratings = db.execute(
        select(Review.rating).where(Review.item_id == item_id)
    ).scalars().all()
    breakdown = {r.value: 0 for r in ReviewRating}
    for rating in ratings:
        breakdown[rating.value] += 1

    uw = user_rating_weight(item.review_count, config)
    return RatingStats(
        review_count=item.review_count,
        avg_rating=item.avg_rating,
        overall_score=item.overall_score,
        rating_breakdown=breakdown,
        user_weight=uw,
        seed_weight=1 - uw,
    )
