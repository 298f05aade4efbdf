from __future__ import annotations

import pytest

from oyster_backend.db.models import ATTRIBUTES, Item, Review, ReviewRating
from oyster_backend.recommendations.models import FlavorProfile, RecommendationReason
from oyster_backend.recommendations.preferences import set_baseline
from oyster_backend.recommendations.retrieval import recommend, similarity, top_rated


def _profile(value: float = 5.0, **overrides) -> FlavorProfile:
    values = {name: value for name in ATTRIBUTES}
    values.update(overrides)
    return FlavorProfile(**values)


def _item(value: float = 5.0, **overrides) -> Item:
    values = {name: value for name in ATTRIBUTES}
    values.update(overrides)
    return Item(name="candidate", **values)


class TestSimilarity:
    def test_exact_match_is_100(self):
        assert similarity(_item(6.0), _profile(6.0)) == 100.0

    def test_maximal_distance_is_0(self):
        # 10 apart on every trait
        item = _item(0.0)
        assert similarity(item, _profile(10.0)) == 0.0

    def test_partial_distance(self):
        assert similarity(_item(5.0), _profile(5.0, size=10.0)) == pytest.approx(90.0)

    def test_aggregate_overrides_seed(self):
        item = _item(1.0)
        item.avg_size = 9.0
        item.avg_body = 9.0
        item.avg_sweet_brininess = 9.0
        item.avg_flavorfulness = 9.0
        item.avg_creaminess = 9.0
        assert similarity(item, _profile(9.0)) == 100.0


def test_no_preferences_falls_back_to_top_rated(db, make_user, make_item, cache):
    user = make_user()
    make_item("Unreviewed")
    good = make_item("Good")
    better = make_item("Better")
    for item, score in ((good, 7.0), (better, 9.0)):
        item.review_count = 2
        item.overall_score = score
    db.commit()

    recs = recommend(db, user.id, limit=5, cache=cache)
    assert [r.item.name for r in recs] == ["Better", "Good"]
    assert all(r.reason is RecommendationReason.top_rated for r in recs)
    assert all(r.similarity is None for r in recs)
    assert cache.get(user.id) is None


def test_top_rated_breaks_ties_by_id(db, make_item):
    items = [make_item(f"Tie {n}") for n in range(3)]
    for item in items:
        item.review_count = 1
        item.overall_score = 6.0
    db.commit()

    ids = [r.item.id for r in top_rated(db, 3)]
    assert ids == sorted(ids)


def test_baseline_match_ranks_by_similarity(db, make_user, make_item, cache):
    user = make_user()
    near = make_item("Near", size=8.0)
    far = make_item("Far", size=1.0)
    exact = make_item("Exact", size=9.0)
    set_baseline(db, user.id, _profile(5.0, size=9.0), cache=cache)

    recs = recommend(db, user.id, limit=10, cache=cache)

    assert [r.item.id for r in recs] == [exact.id, near.id, far.id]
    assert recs[0].similarity == 100.0
    assert all(r.reason is RecommendationReason.baseline_match for r in recs)


def test_reviewed_items_are_excluded(db, make_user, make_item, cache):
    user = make_user()
    tried = make_item("Tried")
    fresh = make_item("Fresh")
    db.add(Review(item_id=tried.id, user_id=user.id, rating=ReviewRating.LOVE_IT,
                  **{name: 5.0 for name in ATTRIBUTES}))
    db.commit()

    recs = recommend(db, user.id, cache=cache)

    assert [r.item.id for r in recs] == [fresh.id]
    assert recs[0].reason is RecommendationReason.personalized


def test_ties_are_ordered_by_item_id(db, make_user, make_item, cache):
    user = make_user()
    items = [make_item(f"Twin {n}") for n in range(4)]
    set_baseline(db, user.id, _profile(5.0), cache=cache)

    recs = recommend(db, user.id, cache=cache)
    assert [r.item.id for r in recs] == sorted(i.id for i in items)


def test_personalized_results_are_cached_and_sliced(db, make_user, make_item, cache):
    user = make_user()
    for n in range(5):
        make_item(f"Oyster {n}", size=float(n + 1))
    set_baseline(db, user.id, _profile(5.0), cache=cache)

    first = recommend(db, user.id, limit=2, cache=cache)
    assert len(first) == 2
    assert len(cache.get(user.id)) == 5

    second = recommend(db, user.id, limit=4, cache=cache)
    assert second[:2] == first
    assert len(second) == 4


def test_baseline_change_invalidates_cached_ranking(db, make_user, make_item, cache):
    user = make_user()
    small = make_item("Small", size=1.0)
    large = make_item("Large", size=10.0)
    set_baseline(db, user.id, _profile(5.0, size=1.0), cache=cache)
    assert recommend(db, user.id, limit=1, cache=cache)[0].item.id == small.id

    set_baseline(db, user.id, _profile(5.0, size=10.0), cache=cache)
    assert recommend(db, user.id, limit=1, cache=cache)[0].item.id == large.id
