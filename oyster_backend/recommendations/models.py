from __future__ import annotations

from enum import Enum
from typing import Mapping

import numpy as np
from pydantic import BaseModel, ConfigDict

from ..db.models import ATTRIBUTES


class FlavorProfile(BaseModel):
    """Five-trait flavor vector, each trait on the 1-10 scale."""

    model_config = ConfigDict(frozen=True)

    size: float
    body: float
    sweet_brininess: float
    flavorfulness: float
    creaminess: float

    def as_array(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in ATTRIBUTES], dtype=float)

    @classmethod
    def from_values(cls, values: Mapping[str, float] | np.ndarray) -> "FlavorProfile":
        if isinstance(values, np.ndarray):
            return cls(**{name: float(v) for name, v in zip(ATTRIBUTES, values)})
        return cls(**{name: float(values[name]) for name in ATTRIBUTES})


class PreferenceSource(str, Enum):
    baseline = "baseline"
    reviews = "reviews"


class PreferenceVector(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile: FlavorProfile
    source: PreferenceSource


class RecommendationReason(str, Enum):
    top_rated = "top_rated"
    baseline_match = "baseline_match"
    personalized = "personalized"
    collaborative = "collaborative"
    hybrid = "hybrid"


class ItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    origin: str | None = None
    species: str | None = None
    size: float
    body: float
    sweet_brininess: float
    flavorfulness: float
    creaminess: float
    avg_size: float | None = None
    avg_body: float | None = None
    avg_sweet_brininess: float | None = None
    avg_flavorfulness: float | None = None
    avg_creaminess: float | None = None
    avg_rating: float
    review_count: int
    overall_score: float


class RecommendationItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: ItemOut
    similarity: float | None = None
    reason: RecommendationReason
    collaborative_score: float | None = None
    similar_user_count: int | None = None
    hybrid_score: float | None = None


class RecommendationResponse(BaseModel):
    recommendations: list[RecommendationItem]


class FlavorRangeOut(BaseModel):
    min: float
    max: float
    median: float

