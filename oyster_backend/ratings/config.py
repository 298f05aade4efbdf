from __future__ import annotations

from dataclasses import dataclass, field

from ..db.models import ReviewRating


@dataclass(frozen=True)
class RatingConfig:
    # Ceiling for community influence; seed data always keeps the rest
    user_rating_weight: float = 0.7
    # Reviews needed before the ceiling is reached
    min_reviews_for_weight: int = 5

    rating_points: dict[ReviewRating, float] = field(default_factory=lambda: {
        ReviewRating.LOVE_IT: 4.0,
        ReviewRating.LIKE_IT: 3.0,
        ReviewRating.MEH: 2.0,
        ReviewRating.WHATEVER: 1.0,
    })
    max_rating_points: float = 4.0

    # overall = rating_share * rating(0-10) + attribute_share * mean(attributes)
    rating_share: float = 0.4
    attribute_share: float = 0.6
    neutral_score: float = 5.0
    anonymous_credibility: float = 1.0


DEFAULT_RATING_CONFIG = RatingConfig()
