from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class RecommendationConfig:
    cache_ttl_seconds: float = float(os.getenv("RECOMMENDATION_CACHE_TTL", str(24 * 60 * 60)))

    # Preference vector inferred from reviews
    favorite_weight: float = 1.5
    default_weight: float = 1.0

    # Baseline nudge toward a new favorable review
    love_it_nudge: float = 0.4
    like_it_nudge: float = 0.3

    # Collaborative filtering
    min_reviews_for_similarity: int = 3
    min_common_items: int = 2
    min_user_similarity: float = 0.5
    similar_user_pool: int = 20
    love_it_collaborative_weight: float = 2.0
    like_it_collaborative_weight: float = 1.0

    # Hybrid blend
    hybrid_attribute_weight: float = 0.6
    hybrid_collaborative_weight: float = 0.4

    # Flavor ranges need this many favorable reviews
    min_reviews_for_ranges: int = 5


DEFAULT_RECOMMENDATION_CONFIG = RecommendationConfig()
