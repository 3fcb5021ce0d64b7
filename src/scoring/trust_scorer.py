# src/scoring/trust_scorer.py
# Source trust scoring
# ====================

"""
Trust is a 0-100 estimate of how reliable a single article is.

It starts from the source: the tier table, or a per-domain override when the
article's host (or the feed's host) is listed in ``DOMAIN_TRUST_OVERRIDES``,
or the explicit ``base_trust_score`` configured on the source. Language in the
title and summary then moves it up (official confirmation, breaking or
exclusive reporting) or down (rumours and hedged wording), and very fresh
articles get a small recency bonus. The result is always clamped to [0, 100].

``score_with_components`` returns the breakdown so a score can be explained.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from config.keywords import BREAKING_TERMS, OFFICIAL_TERMS, SPECULATIVE_TERMS
from config.settings import TRUST_CONFIG
from config.sources import domain_trust_override
from src.processing.tagger import contains_any
from src.utils.datetime_utils import hours_between, utc_now

logger = logging.getLogger(__name__)

TRUST_MIN = 0.0
TRUST_MAX = 100.0


def clamp_trust(value: float) -> float:
    return max(TRUST_MIN, min(TRUST_MAX, value))


class TrustScorer:
    """Computes per-article trust from source metadata and wording."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = dict(config or TRUST_CONFIG)
        self.tier_scores: Dict[str, float] = dict(self.config["tier_base_scores"])

    def base_score(self, source: Mapping[str, Any], article_url: str = "") -> float:
        """
        Domain override beats an explicit source score, which beats the tier.

        The article link is checked before the feed URL so aggregator feeds
        that link out to official sites inherit that site's trust.
        """
        for url in (article_url, source.get("url", "")):
            override = domain_trust_override(url)
            if override is not None:
                return float(override)
        explicit = source.get("base_trust_score")
        if explicit is not None:
            return float(explicit)
        return float(self.tier_scores.get(source.get("tier"), self.config["default_base_score"]))

    def language_adjustment(self, text: str) -> Dict[str, float]:
        lowered = text.lower()
        return {
            "official": self.config["official_bonus"] if contains_any(lowered, OFFICIAL_TERMS) else 0.0,
            "breaking": self.config["breaking_bonus"] if contains_any(lowered, BREAKING_TERMS) else 0.0,
            "speculative": -self.config["speculative_penalty"]
            if contains_any(lowered, SPECULATIVE_TERMS)
            else 0.0,
        }

    def recency_bonus(self, published_at: Optional[datetime], now: Optional[datetime] = None) -> float:
        if published_at is None:
            return 0.0
        age_hours = hours_between(now or utc_now(), published_at)
        if age_hours < 1:
            return self.config["recency_bonus_hour"]
        if age_hours < 24:
            return self.config["recency_bonus_day"]
        return 0.0

    def score_with_components(
        self,
        source: Mapping[str, Any],
        text: str,
        published_at: Optional[datetime] = None,
        article_url: str = "",
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        base = self.base_score(source, article_url)
        adjustments = self.language_adjustment(text)
        recency = self.recency_bonus(published_at, now)
        raw = base + sum(adjustments.values()) + recency
        return {
            "trust_score": round(clamp_trust(raw), 2),
            "components": {"base": base, **adjustments, "recency": recency},
            "unclamped": raw,
        }

    def score(
        self,
        source: Mapping[str, Any],
        text: str,
        published_at: Optional[datetime] = None,
        article_url: str = "",
        now: Optional[datetime] = None,
    ) -> float:
        return self.score_with_components(source, text, published_at, article_url, now)[
            "trust_score"
        ]


_default_scorer: Optional[TrustScorer] = None


def trust_score(
    source: Mapping[str, Any],
    text: str,
    published_at: Optional[datetime] = None,
    article_url: str = "",
    now: Optional[datetime] = None,
) -> float:
    """Module-level shortcut using the configured trust table."""
    global _default_scorer
    if _default_scorer is None:
        _default_scorer = TrustScorer()
    return _default_scorer.score(source, text, published_at, article_url, now)
