from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import Review, ReviewVote, User
from ..db.session import atomic
from ..errors import ReviewNotFound, SelfVoteRejected, UserNotFound, VoteNotFound
from ..ratings.aggregator import recalculate_item_rating
from .config import DEFAULT_VOTING_CONFIG, VotingConfig
from .models import CredibilityInfo
from .scoring import credibility_badge, credibility_score, review_weighted_score

logger = logging.getLogger(__name__)


def _find_vote(db: Session, voter_id: str, review_id: str) -> ReviewVote | None:
    return db.execute(
        select(ReviewVote).where(
            ReviewVote.user_id == voter_id,
            ReviewVote.review_id == review_id,
        )
    ).scalar_one_or_none()


def apply_counter_deltas(
    db: Session,
    review_id: str,
    owner_id: str | None,
    agree_delta: int,
    disagree_delta: int,
) -> None:
    """Shift a review's vote counters and its owner's lifetime totals.

    Increments are evaluated by the database (``col = col + n``) so concurrent
    votes on one review serialize on its row lock. Must run inside ``atomic``.
    """
    db.execute(
        update(Review)
        .where(Review.id == review_id)
        .values(
            agree_count=Review.agree_count + agree_delta,
            disagree_count=Review.disagree_count + disagree_delta,
        )
        .execution_options(synchronize_session=False)
    )
    if owner_id is not None:
        db.execute(
            update(User)
            .where(User.id == owner_id)
            .values(
                total_agrees=User.total_agrees + agree_delta,
                total_disagrees=User.total_disagrees + disagree_delta,
            )
            .execution_options(synchronize_session=False)
        )


def cast_vote(
    db: Session,
    voter_id: str,
    review_id: str,
    is_agree: bool,
    config: VotingConfig = DEFAULT_VOTING_CONFIG,
) -> None:
    """Cast or flip a vote on a review.

    A repeat vote with the same polarity is a no-op. A flip moves one count
    from the old bucket to the new one on both the review and its owner.
    """
    review = db.get(Review, review_id)
    if review is None:
        raise ReviewNotFound(review_id)

    owner_id = review.user_id
    # Anonymous reviews have no owner to protect
    if owner_id is not None and owner_id == voter_id:
        raise SelfVoteRejected(review_id)

    if db.get(User, voter_id) is None:
        raise UserNotFound(voter_id)

    item_id = review.item_id

    existing = _find_vote(db, voter_id, review_id)
    if existing is not None and existing.is_agree == is_agree:
        return

    try:
        _write_vote(db, voter_id, review_id, owner_id, is_agree, existing)
    except IntegrityError:
        if existing is not None:
            raise
        # Another request inserted this voter's first vote after our lookup
        existing = _find_vote(db, voter_id, review_id)
        if existing is None:
            raise
        if existing.is_agree == is_agree:
            return
        logger.info("Vote by %s on review %s raced a concurrent insert, flipping", voter_id, review_id)
        _write_vote(db, voter_id, review_id, owner_id, is_agree, existing)

    logger.info(
        "Vote %s by %s on review %s",
        "agree" if is_agree else "disagree", voter_id, review_id,
    )
    _recalculate_after_vote(db, review_id, item_id, owner_id, config)


def _write_vote(
    db: Session,
    voter_id: str,
    review_id: str,
    owner_id: str | None,
    is_agree: bool,
    existing: ReviewVote | None,
) -> None:
    with atomic(db):
        if existing is None:
            db.add(ReviewVote(user_id=voter_id, review_id=review_id, is_agree=is_agree))
            agree_delta, disagree_delta = (1, 0) if is_agree else (0, 1)
        else:
            existing.is_agree = is_agree
            agree_delta, disagree_delta = (1, -1) if is_agree else (-1, 1)
        apply_counter_deltas(db, review_id, owner_id, agree_delta, disagree_delta)


def remove_vote(
    db: Session,
    voter_id: str,
    review_id: str,
    config: VotingConfig = DEFAULT_VOTING_CONFIG,
) -> None:
    vote = _find_vote(db, voter_id, review_id)
    if vote is None:
        raise VoteNotFound(voter_id, review_id)

    owner_id = vote.review.user_id
    item_id = vote.review.item_id
    was_agree = vote.is_agree

    with atomic(db):
        db.delete(vote)
        apply_counter_deltas(
            db, review_id, owner_id,
            -1 if was_agree else 0,
            0 if was_agree else -1,
        )

    logger.info("Vote removed by %s on review %s", voter_id, review_id)
    _recalculate_after_vote(db, review_id, item_id, owner_id, config)


def _recalculate_after_vote(
    db: Session,
    review_id: str,
    item_id: str,
    owner_id: str | None,
    config: VotingConfig,
) -> None:
    """Review score, then author credibility, then the oyster's aggregates."""
    recalculate_review_score(db, review_id, config=config)
    if owner_id is not None:
        recalculate_user_credibility(db, owner_id, config=config)
    recalculate_item_rating(db, item_id)


def recalculate_review_score(
    db: Session,
    review_id: str,
    config: VotingConfig = DEFAULT_VOTING_CONFIG,
) -> None:
    review = db.get(Review, review_id)
    if review is None:
        raise ReviewNotFound(review_id)

    net_vote_score, weighted_score = review_weighted_score(
        review.agree_count, review.disagree_count, config,
    )
    with atomic(db):
        review.net_vote_score = net_vote_score
        review.weighted_score = weighted_score


def recalculate_user_credibility(
    db: Session,
    user_id: str,
    config: VotingConfig = DEFAULT_VOTING_CONFIG,
) -> None:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound(user_id)

    score = credibility_score(
        user.total_agrees, user.total_disagrees, user.review_count, config,
    )
    with atomic(db):
        user.credibility_score = score


def get_votes_for_reviews(
    db: Session,
    user_id: str,
    review_ids: Iterable[str],
) -> dict[str, bool | None]:
    """Map each requested review id to the user's vote, ``None`` if not voted."""
    ids = list(dict.fromkeys(review_ids))
    if not ids:
        return {}
    rows = db.execute(
        select(ReviewVote.review_id, ReviewVote.is_agree).where(
            ReviewVote.user_id == user_id,
            ReviewVote.review_id.in_(ids),
        )
    ).all()
    found = {review_id: is_agree for review_id, is_agree in rows}
    return {rid: found.get(rid) for rid in ids}


def get_credibility(
    db: Session,
    user_id: str,
    config: VotingConfig = DEFAULT_VOTING_CONFIG,
) -> CredibilityInfo:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound(user_id)
    return CredibilityInfo(
        score=user.credibility_score,
        total_agrees=user.total_agrees,
        total_disagrees=user.total_disagrees,
        review_count=user.review_count,
        badge=credibility_badge(user.credibility_score, config),
    )
