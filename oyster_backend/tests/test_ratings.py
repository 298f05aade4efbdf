from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy.orm import sessionmaker

from oyster_backend.db.models import ATTRIBUTES, Item, Review, ReviewRating
from oyster_backend.errors import ItemNotFound
from oyster_backend.ratings.aggregator import (
    ReviewSample,
    blend_attribute,
    compute_aggregates,
    get_rating_stats,
    recalculate_all_ratings,
    recalculate_item_rating,
    user_rating_weight,
    weighted_rating,
)
from oyster_backend.ratings.backfill import run_backfill

SEEDS = {name: 5.0 for name in ATTRIBUTES}


def _sample(rating=ReviewRating.LOVE_IT, value=9.0, weight=1.0):
    return ReviewSample(rating=rating, values={name: value for name in ATTRIBUTES}, weight=weight)


class TestConfidenceRamp:
    def test_zero_reviews_has_no_user_weight(self):
        assert user_rating_weight(0) == 0.0

    def test_ramp_is_linear(self):
        assert user_rating_weight(1) == pytest.approx(0.14)
        assert user_rating_weight(3) == pytest.approx(0.42)

    @pytest.mark.parametrize("count", [5, 6, 50])
    def test_plateau_from_five_reviews(self, count):
        assert user_rating_weight(count) == 0.7


class TestBlend:
    def test_no_values_returns_seed_exactly(self):
        assert blend_attribute(6.3, [(None, 1.0), (None, 1.2)], 0.42) == 6.3

    def test_single_review_with_credibility(self):
        # weight 1.0 * credibility 1.2 does not change a one-sample mean
        assert blend_attribute(5.0, [(9.0, 1.2)], 0.14) == pytest.approx(5.56)

    def test_weights_favor_trusted_reviews(self):
        value = blend_attribute(5.0, [(10.0, 1.5), (2.0, 0.5)], 0.7)
        user_avg = (10.0 * 1.5 + 2.0 * 0.5) / 2.0
        assert value == pytest.approx(0.3 * 5.0 + 0.7 * user_avg)


class TestAggregates:
    def test_no_reviews_equals_seed_and_neutral_score(self):
        result = compute_aggregates(SEEDS, [])
        assert result.attributes == SEEDS
        assert result.avg_rating == 0.0
        assert result.overall_score == 5.0

    def test_one_love_it_review(self):
        result = compute_aggregates(SEEDS, [_sample(weight=1.2)])
        for name in ATTRIBUTES:
            assert result.attributes[name] == pytest.approx(5.56)
        assert result.avg_rating == 4.0
        assert result.overall_score == pytest.approx(0.4 * 10 + 0.6 * 5.56)

    def test_five_uniform_reviews_reach_plateau(self):
        result = compute_aggregates(SEEDS, [_sample(value=10.0) for _ in range(5)])
        for name in ATTRIBUTES:
            assert result.attributes[name] == pytest.approx(8.5)

    def test_weighted_rating_uses_review_weights(self):
        samples = [
            _sample(ReviewRating.LOVE_IT, weight=1.5),
            _sample(ReviewRating.WHATEVER, weight=0.5),
        ]
        assert weighted_rating(samples) == pytest.approx((4 * 1.5 + 1 * 0.5) / 2.0)

    def test_overall_score_bounded(self):
        result = compute_aggregates(SEEDS, [_sample(ReviewRating.WHATEVER, value=1.0) for _ in range(8)])
        assert 0.0 <= result.overall_score <= 10.0


# ── Persistence ──────────────────────────────────────────────────────────


def _add_review(db, item, user=None, rating=ReviewRating.LOVE_IT, **attrs):
    review = Review(item_id=item.id, user_id=user.id if user else None, rating=rating, **attrs)
    db.add(review)
    db.commit()
    return review


def test_recalculate_uses_author_credibility(db, make_item, make_user):
    item = make_item("Fanny Bay")
    critic = make_user("critic", credibility_score=1.2)
    _add_review(db, item, critic, **{name: 9.0 for name in ATTRIBUTES})

    aggregates = recalculate_item_rating(db, item.id)

    db.expire_all()
    stored = db.get(Item, item.id)
    assert aggregates.review_count == 1
    assert stored.review_count == 1
    assert stored.avg_size == pytest.approx(5.56)
    assert stored.avg_rating == 4.0


def test_recalculate_is_idempotent(db, make_item, make_user):
    item = make_item("Beausoleil")
    _add_review(db, item, make_user("a"), rating=ReviewRating.LIKE_IT, size=7.0)
    _add_review(db, item, make_user("b"), rating=ReviewRating.MEH, body=3.0)

    first = recalculate_item_rating(db, item.id)
    second = recalculate_item_rating(db, item.id)
    assert first == second


def test_recalculate_without_reviews_restores_seed(db, make_item):
    item = make_item("Wellfleet", size=7.5, creaminess=3.0)

    recalculate_item_rating(db, item.id)

    db.expire_all()
    stored = db.get(Item, item.id)
    assert stored.avg_size == 7.5
    assert stored.avg_creaminess == 3.0
    assert stored.overall_score == 5.0


def test_anonymous_reviews_count_with_neutral_credibility(db, make_item):
    item = make_item("Malpeque")
    _add_review(db, item, None, rating=ReviewRating.LIKE_IT, size=9.0)

    aggregates = recalculate_item_rating(db, item.id)
    assert aggregates.review_count == 1
    assert aggregates.attributes["size"] == pytest.approx(5.56)


def test_recalculate_missing_item(db):
    with pytest.raises(ItemNotFound):
        recalculate_item_rating(db, "nope")


def test_recalculate_all(db, make_item):
    make_item("One")
    make_item("Two")
    assert recalculate_all_ratings(db) == 2


def test_rating_stats_breakdown(db, make_item, make_user):
    item = make_item("Blue Point")
    _add_review(db, item, make_user("a"), rating=ReviewRating.LOVE_IT)
    _add_review(db, item, make_user("b"), rating=ReviewRating.LOVE_IT)
    _add_review(db, item, make_user("c"), rating=ReviewRating.MEH)
    recalculate_item_rating(db, item.id)

    stats = get_rating_stats(db, item.id)
    assert stats.review_count == 3
    assert stats.rating_breakdown == {"LOVE_IT": 2, "LIKE_IT": 0, "MEH": 1, "WHATEVER": 0}
    assert stats.user_weight == pytest.approx(0.42)
    assert stats.seed_weight == pytest.approx(0.58)


def test_backfill_runs_against_configured_engine(engine, make_item):
    make_item("Backfilled")
    factory = sessionmaker(bind=engine, autoflush=False)
    with patch("oyster_backend.ratings.backfill.engine", engine), \
            patch("oyster_backend.ratings.backfill.SessionLocal", factory):
        assert run_backfill() == 1
