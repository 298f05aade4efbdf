from __future__ import annotations

from pydantic import BaseModel, Field


class VoteRequest(BaseModel):
    is_agree: bool


class VoteStatusRequest(BaseModel):
    review_ids: list[str] = Field(..., min_length=1, max_length=200)


class VoteStatusResponse(BaseModel):
    votes: dict[str, bool | None]


class CredibilityInfo(BaseModel):
    score: float
    total_agrees: int
    total_disagrees: int
    review_count: int
    badge: str
