from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..db.models import ATTRIBUTES, ReviewRating


class ReviewCreate(BaseModel):
    item_id: str
    rating: ReviewRating
    size: float | None = None
    body: float | None = None
    sweet_brininess: float | None = None
    flavorfulness: float | None = None
    creaminess: float | None = None
    notes: str | None = Field(default=None, max_length=2000)

    def attributes(self) -> dict[str, float | None]:
        return {name: getattr(self, name) for name in ATTRIBUTES}


class ReviewUpdate(BaseModel):
    """Partial edit. Attributes omitted from the payload are left alone."""

    rating: ReviewRating | None = None
    size: float | None = None
    body: float | None = None
    sweet_brininess: float | None = None
    flavorfulness: float | None = None
    creaminess: float | None = None
    notes: str | None = Field(default=None, max_length=2000)

    def attributes(self) -> dict[str, float | None]:
        # Explicit null clears a subscore, so only fields actually sent count
        return {name: getattr(self, name) for name in ATTRIBUTES if name in self.model_fields_set}

    def notes_sent(self) -> bool:
        return "notes" in self.model_fields_set


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    item_id: str
    user_id: str | None
    rating: ReviewRating
    size: float | None = None
    body: float | None = None
    sweet_brininess: float | None = None
    flavorfulness: float | None = None
    creaminess: float | None = None
    notes: str | None = None
    agree_count: int
    disagree_count: int
    net_vote_score: float
    weighted_score: float
    created_at: datetime | None = None
    updated_at: datetime | None = None
