from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..attributes import validate_attributes
from ..db.models import ATTRIBUTES, Item, Review, ReviewRating, User
from ..db.session import atomic
from ..errors import DuplicateReview, ItemNotFound, NotReviewOwner, ReviewNotFound, UserNotFound
from ..ratings.aggregator import recalculate_item_rating
from ..recommendations.cache import DEFAULT_CACHE, RecommendationCache
from ..recommendations.preferences import apply_review_to_baseline
from ..recommendations.ranges import update_flavor_ranges
from ..voting.ledger import recalculate_user_credibility

logger = logging.getLogger(__name__)

# Default for optional edits the caller did not send
UNCHANGED: Any = object()


def _shift_user_counters(
    db: Session,
    user_id: str,
    review_delta: int,
    agree_delta: int = 0,
    disagree_delta: int = 0,
) -> None:
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            review_count=User.review_count + review_delta,
            total_agrees=User.total_agrees + agree_delta,
            total_disagrees=User.total_disagrees + disagree_delta,
        )
        .execution_options(synchronize_session=False)
    )


def _owned_review(db: Session, review_id: str, user_id: str) -> Review:
    review = db.get(Review, review_id)
    if review is None:
        raise ReviewNotFound(review_id)
    if review.user_id != user_id:
        raise NotReviewOwner(review_id)
    return review


def _refresh_author_state(
    db: Session,
    user_id: str,
    rating: ReviewRating,
    attributes: Mapping[str, float | None],
    cache: RecommendationCache,
) -> None:
    apply_review_to_baseline(db, user_id, rating, attributes, cache=cache)
    update_flavor_ranges(db, user_id)
    cache.invalidate(user_id)


def create_review(
    db: Session,
    item_id: str,
    rating: ReviewRating | str,
    attributes: Mapping[str, float | None] | None = None,
    user_id: str | None = None,
    notes: str | None = None,
    cache: RecommendationCache = DEFAULT_CACHE,
) -> Review:
    """Insert a review and propagate it through every derived value.

    The insert and the author's review counter share one transaction; the
    credibility and rating recomputes follow as their own writes.
    """
    rating = ReviewRating(rating)
    values = {name: (attributes or {}).get(name) for name in ATTRIBUTES}
    validate_attributes(values)

    if db.get(Item, item_id) is None:
        raise ItemNotFound(item_id)
    if user_id is not None:
        if db.get(User, user_id) is None:
            raise UserNotFound(user_id)
        duplicate = db.execute(
            select(Review.id).where(Review.user_id == user_id, Review.item_id == item_id)
        ).first()
        if duplicate is not None:
            raise DuplicateReview(user_id, item_id)

    review = Review(item_id=item_id, user_id=user_id, rating=rating, notes=notes, **values)
    try:
        with atomic(db):
            db.add(review)
            if user_id is not None:
                _shift_user_counters(db, user_id, review_delta=1)
    except IntegrityError as exc:
        # Lost a race with a concurrent create for the same user and oyster
        raise DuplicateReview(user_id, item_id) from exc

    logger.info("Created review %s on oyster %s by %s", review.id, item_id, user_id or "anonymous")

    if user_id is not None:
        recalculate_user_credibility(db, user_id)
    recalculate_item_rating(db, item_id)
    if user_id is not None:
        _refresh_author_state(db, user_id, rating, values, cache)
    return review


def update_review(
    db: Session,
    review_id: str,
    user_id: str,
    rating: ReviewRating | str | None = None,
    attributes: Mapping[str, float | None] | None = None,
    notes: str | None = UNCHANGED,
    cache: RecommendationCache = DEFAULT_CACHE,
) -> Review:
    """Edit the caller's own review.

    Only keys present in *attributes* change; an explicit ``None`` clears
    that subscore. *notes* works the same way: ``None`` clears them and
    leaving it at ``UNCHANGED`` keeps them.
    """
    changes = dict(attributes or {})
    validate_attributes(changes)
    review = _owned_review(db, review_id, user_id)

    with atomic(db):
        if rating is not None:
            review.rating = ReviewRating(rating)
        for name, value in changes.items():
            setattr(review, name, value)
        if notes is not UNCHANGED:
            review.notes = notes

    logger.info("Updated review %s", review_id)

    recalculate_item_rating(db, review.item_id)
    _refresh_author_state(
        db, user_id, review.rating,
        {name: review.attribute(name) for name in ATTRIBUTES},
        cache,
    )
    return review


def delete_review(
    db: Session,
    review_id: str,
    user_id: str,
    cache: RecommendationCache = DEFAULT_CACHE,
) -> None:
    """Delete the caller's own review along with the votes it received."""
    review = _owned_review(db, review_id, user_id)
    item_id = review.item_id

    with atomic(db):
        _shift_user_counters(
            db, user_id,
            review_delta=-1,
            agree_delta=-review.agree_count,
            disagree_delta=-review.disagree_count,
        )
        db.delete(review)

    logger.info("Deleted review %s on oyster %s", review_id, item_id)

    recalculate_user_credibility(db, user_id)
    recalculate_item_rating(db, item_id)
    update_flavor_ranges(db, user_id)
    cache.invalidate(user_id)
