from __future__ import annotations

from pydantic import BaseModel


class RatingStats(BaseModel):
    review_count: int
    avg_rating: float
    overall_score: float
    rating_breakdown: dict[str, int]
    user_weight: float
    seed_weight: float


class RecalculateAllResponse(BaseModel):
    status: str
    items_recalculated: int
