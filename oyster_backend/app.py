from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .auth.dependencies import get_current_user_id, require_user
from .db.models import Base
from .db.session import engine, get_db
from .errors import (
    DuplicateReview,
    EngineError,
    InvalidAttributeRange,
    NotFound,
    NotReviewOwner,
    SelfVoteRejected,
)
from .ratings.aggregator import get_rating_stats, recalculate_all_ratings, recalculate_item_rating
from .ratings.models import RatingStats, RecalculateAllResponse
from .recommendations.cache import DEFAULT_CACHE, RecommendationCache, invalidate_cache
from .recommendations.collaborative import collaborative_recommendations, hybrid_recommendations
from .recommendations.models import (
    FlavorProfile,
    FlavorRangeOut,
    PreferenceVector,
    RecommendationResponse,
)
from .recommendations.preferences import get_preference_vector, set_baseline
from .recommendations.ranges import get_flavor_ranges
from .recommendations.retrieval import recommend
from .reviews.models import ReviewCreate, ReviewOut, ReviewUpdate
from .reviews.service import UNCHANGED, create_review, delete_review, update_review
from .voting.ledger import cast_vote, get_credibility, get_votes_for_reviews, remove_vote
from .voting.models import CredibilityInfo, VoteRequest, VoteStatusRequest, VoteStatusResponse

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Oyster Rating & Recommendation API", version="1.0.0", lifespan=lifespan)


def get_cache() -> RecommendationCache:
    return DEFAULT_CACHE


# ── Error translation ────────────────────────────────────────────────────

_STATUS_BY_ERROR: list[tuple[type[EngineError], int]] = [
    (NotFound, 404),
    (SelfVoteRejected, 403),
    (NotReviewOwner, 403),
    (InvalidAttributeRange, 422),
    (DuplicateReview, 409),
]


@app.exception_handler(EngineError)
def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    logger.error("Unmapped engine error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/users/{user_id}/credibility", response_model=CredibilityInfo)
def credibility(user_id: str, db: Session = Depends(get_db)) -> CredibilityInfo:
    return get_credibility(db, user_id)


@app.get("/items/{item_id}/rating-stats", response_model=RatingStats)
def rating_stats(item_id: str, db: Session = Depends(get_db)) -> RatingStats:
    return get_rating_stats(db, item_id)


# ── Reviews ──────────────────────────────────────────────────────────────


@app.post("/reviews", response_model=ReviewOut, status_code=201)
def post_review(
    body: ReviewCreate,
    db: Session = Depends(get_db),
    user_id: str | None = Depends(get_current_user_id),
    cache: RecommendationCache = Depends(get_cache),
) -> ReviewOut:
    review = create_review(
        db, body.item_id, body.rating, body.attributes(),
        user_id=user_id, notes=body.notes, cache=cache,
    )
    return ReviewOut.model_validate(review)


@app.patch("/reviews/{review_id}", response_model=ReviewOut)
def patch_review(
    review_id: str,
    body: ReviewUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
    cache: RecommendationCache = Depends(get_cache),
) -> ReviewOut:
    review = update_review(
        db, review_id, user_id,
        rating=body.rating,
        attributes=body.attributes(),
        notes=body.notes if body.notes_sent() else UNCHANGED,
        cache=cache,
    )
    return ReviewOut.model_validate(review)


@app.delete("/reviews/{review_id}")
def remove_review(
    review_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
    cache: RecommendationCache = Depends(get_cache),
) -> dict[str, str]:
    delete_review(db, review_id, user_id, cache=cache)
    return {"status": "deleted"}


# ── Votes ────────────────────────────────────────────────────────────────


@app.put("/reviews/{review_id}/vote")
def vote(
    review_id: str,
    body: VoteRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
) -> dict[str, str]:
    cast_vote(db, user_id, review_id, body.is_agree)
    return {"status": "recorded"}


@app.delete("/reviews/{review_id}/vote")
def unvote(
    review_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
) -> dict[str, str]:
    remove_vote(db, user_id, review_id)
    return {"status": "removed"}


@app.post("/votes/status", response_model=VoteStatusResponse)
def vote_status(
    body: VoteStatusRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
) -> VoteStatusResponse:
    return VoteStatusResponse(votes=get_votes_for_reviews(db, user_id, body.review_ids))


# ── Preferences & recommendations ────────────────────────────────────────


@app.get("/me/preferences", response_model=PreferenceVector | None)
def my_preferences(
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
) -> PreferenceVector | None:
    return get_preference_vector(db, user_id)


@app.put("/me/baseline")
def put_baseline(
    body: FlavorProfile,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
    cache: RecommendationCache = Depends(get_cache),
) -> dict:
    set_baseline(db, user_id, body, cache=cache)
    return {"status": "ok", "baseline": body.model_dump()}


@app.get("/me/flavor-ranges", response_model=dict[str, FlavorRangeOut])
def my_flavor_ranges(
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
) -> dict[str, FlavorRangeOut]:
    return get_flavor_ranges(db, user_id)


@app.get("/recommendations", response_model=RecommendationResponse)
def recommendations(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
    cache: RecommendationCache = Depends(get_cache),
) -> RecommendationResponse:
    return RecommendationResponse(recommendations=recommend(db, user_id, limit, cache=cache))


@app.get("/recommendations/collaborative", response_model=RecommendationResponse)
def collaborative(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
) -> RecommendationResponse:
    return RecommendationResponse(recommendations=collaborative_recommendations(db, user_id, limit))


@app.get("/recommendations/hybrid", response_model=RecommendationResponse)
def hybrid(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
    cache: RecommendationCache = Depends(get_cache),
) -> RecommendationResponse:
    return RecommendationResponse(
        recommendations=hybrid_recommendations(db, user_id, limit, cache=cache),
    )


# ── Maintenance endpoints ────────────────────────────────────────────────


@app.post("/items/{item_id}/recalculate")
def recalculate_item(
    item_id: str,
    db: Session = Depends(get_db),
    caller_id: str = Depends(require_user),
) -> dict:
    return asdict(recalculate_item_rating(db, item_id))


@app.post("/ratings/recalculate-all", response_model=RecalculateAllResponse)
def recalculate_all(
    db: Session = Depends(get_db),
    caller_id: str = Depends(require_user),
) -> RecalculateAllResponse:
    return RecalculateAllResponse(status="ok", items_recalculated=recalculate_all_ratings(db))


@app.delete("/cache/{user_id}")
def clear_user_cache(
    user_id: str,
    cache: RecommendationCache = Depends(get_cache),
    caller_id: str = Depends(require_user),
) -> dict[str, bool]:
    return {"invalidated": invalidate_cache(user_id, cache=cache)}


@app.get("/cache/stats")
def cache_stats(
    cache: RecommendationCache = Depends(get_cache),
    caller_id: str = Depends(require_user),
) -> dict:
    return cache.stats()
