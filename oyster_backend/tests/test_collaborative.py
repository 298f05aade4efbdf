from __future__ import annotations

import math

import pytest

from oyster_backend.db.models import Review, ReviewRating
from oyster_backend.errors import UserNotFound
from oyster_backend.recommendations.collaborative import (
    collaborative_recommendations,
    find_similar_users,
    hybrid_recommendations,
)
from oyster_backend.recommendations.models import RecommendationReason

LOVE, LIKE, MEH, WHATEVER = (
    ReviewRating.LOVE_IT, ReviewRating.LIKE_IT, ReviewRating.MEH, ReviewRating.WHATEVER,
)


def _rate(db, user, item, rating):
    db.add(Review(item_id=item.id, user_id=user.id, rating=rating))


@pytest.fixture
def community(db, make_user, make_item):
    items = {name: make_item(name) for name in "ABCDE"}
    target = make_user("target")
    twin = make_user("twin")
    loose = make_user("loose")
    stranger = make_user("stranger")

    for name, rating in (("A", LOVE), ("B", LIKE), ("C", MEH)):
        _rate(db, target, items[name], rating)
        _rate(db, twin, items[name], rating)
    _rate(db, twin, items["D"], LOVE)

    _rate(db, loose, items["A"], WHATEVER)
    _rate(db, loose, items["B"], LOVE)
    _rate(db, loose, items["E"], LIKE)

    _rate(db, stranger, items["A"], LOVE)
    _rate(db, stranger, items["E"], LOVE)
    db.commit()
    return {"items": items, "target": target, "twin": twin, "loose": loose, "stranger": stranger}


def test_similar_users_need_common_items(db, community):
    similar = find_similar_users(db, community["target"].id)

    by_id = {s.user_id: s.similarity for s in similar}
    assert by_id[community["twin"].id] == pytest.approx(1.0)
    # [4, 3] against [1, 4]
    assert by_id[community["loose"].id] == pytest.approx(16 / (5 * math.sqrt(17)))
    assert community["stranger"].id not in by_id
    assert similar[0].user_id == community["twin"].id


def test_similar_users_require_three_reviews(db, community):
    assert find_similar_users(db, community["twin"].id) != []
    assert find_similar_users(db, community["stranger"].id) == []


def test_similar_users_unknown_user(db):
    with pytest.raises(UserNotFound):
        find_similar_users(db, "ghost")


def test_collaborative_scores_weight_love_it_double(db, community):
    recs = collaborative_recommendations(db, community["target"].id)
    items = community["items"]

    assert [r.item.id for r in recs] == [items["D"].id, items["E"].id]
    d, e = recs
    assert d.collaborative_score == pytest.approx(2.0)
    assert e.collaborative_score == pytest.approx(16 / (5 * math.sqrt(17)))
    assert d.similar_user_count == 1
    assert all(r.reason is RecommendationReason.collaborative for r in recs)


def test_collaborative_empty_without_peers(db, make_user):
    assert collaborative_recommendations(db, make_user("loner").id) == []


def test_hybrid_blends_both_lists(db, community, cache):
    recs = hybrid_recommendations(db, community["target"].id, limit=5, cache=cache)
    by_id = {r.item.id: r for r in recs}
    d = by_id[community["items"]["D"].id]

    assert d.reason is RecommendationReason.hybrid
    assert d.collaborative_score == pytest.approx(1.0)
    assert d.hybrid_score == pytest.approx(d.similarity / 100 * 0.6 + 0.4)
    scores = [r.hybrid_score for r in recs]
    assert scores == sorted(scores, reverse=True)
