from __future__ import annotations

from ..attributes import clamp
from .config import DEFAULT_VOTING_CONFIG, VotingConfig


def review_weighted_score(
    agree_count: int,
    disagree_count: int,
    config: VotingConfig = DEFAULT_VOTING_CONFIG,
) -> tuple[float, float]:
    """Return ``(net_vote_score, weighted_score)`` for a review's vote counts.

    ``net = agrees * 1.0 + disagrees * -0.6`` and the weight is
    ``1 + net / 10`` clamped to [0.4, 1.5].
    """
    net_vote_score = agree_count * config.agree_weight + disagree_count * config.disagree_weight
    weighted = 1.0 + net_vote_score / config.vote_score_divisor
    return net_vote_score, clamp(weighted, config.min_weighted_score, config.max_weighted_score)


def credibility_score(
    total_agrees: int,
    total_disagrees: int,
    review_count: int,
    config: VotingConfig = DEFAULT_VOTING_CONFIG,
) -> float:
    """Reviewer credibility: ``1 + (net votes / review count) * 0.5`` in [0.5, 1.5]."""
    if review_count <= 0:
        return config.neutral_credibility
    bias = (total_agrees - total_disagrees) / review_count
    value = config.neutral_credibility + bias * config.credibility_scale
    return clamp(value, config.min_credibility, config.max_credibility)


def credibility_badge(score: float, config: VotingConfig = DEFAULT_VOTING_CONFIG) -> str:
    if score >= config.expert_threshold:
        return "Expert"
    if score >= config.trusted_threshold:
        return "Trusted"
    if score >= config.standard_threshold:
        return "Standard"
    return "New"
