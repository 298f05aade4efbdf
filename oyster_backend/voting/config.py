from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class VotingConfig:
    agree_weight: float = 1.0
    disagree_weight: float = -0.6

    # Review weight multiplier
    min_weighted_score: float = 0.4
    max_weighted_score: float = 1.5
    vote_score_divisor: float = 10.0

    # Reviewer credibility multiplier
    min_credibility: float = 0.5
    max_credibility: float = 1.5
    neutral_credibility: float = 1.0
    credibility_scale: float = 0.5

    # Badge thresholds, inclusive lower bounds
    expert_threshold: float = 1.3
    trusted_threshold: float = 1.15
    standard_threshold: float = 0.85


DEFAULT_VOTING_CONFIG = VotingConfig()
