"""Scoring package exports."""

from config import RELEVANCE_CONFIG, TRUST_CONFIG

from .relevance_scorer import RelevanceScorer, relevance_score
from .trust_scorer import TRUST_MAX, TRUST_MIN, TrustScorer, clamp_trust, trust_score


def create_trust_scorer(overrides=None) -> TrustScorer:
    """Trust scorer with configuration defaults, optionally overridden per key."""
    return TrustScorer({**TRUST_CONFIG, **(overrides or {})})


def create_relevance_scorer(overrides=None) -> RelevanceScorer:
    return RelevanceScorer({**RELEVANCE_CONFIG, **(overrides or {})})


__all__ = [
    "RelevanceScorer",
    "TRUST_MAX",
    "TRUST_MIN",
    "TrustScorer",
    "clamp_trust",
    "create_relevance_scorer",
    "create_trust_scorer",
    "relevance_score",
    "trust_score",
]
