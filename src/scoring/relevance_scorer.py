# src/scoring/relevance_scorer.py
# Per-viewer relevance scoring
# ============================

"""
Relevance is computed at read time for one viewer and never stored.

    trust / 10
  + category bonus when the article's category is one the viewer prefers
  + team, player and league bonuses, one per matching id, summed without a cap
  + fixed bonuses for featured and breaking articles
  + a stepped recency bonus
  + a popularity bonus from the view count tiers
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from config.settings import RELEVANCE_CONFIG
from src.contracts.ranking import ViewerPreferences
from src.utils.datetime_utils import ensure_utc, hours_between, utc_now


def _overlap(article_ids: Optional[Iterable[Any]], preferred: Iterable[Any]) -> int:
    preferred_set = set(preferred)
    if not article_ids or not preferred_set:
        return 0
    return len(set(article_ids) & preferred_set)


class RelevanceScorer:
    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = dict(config or RELEVANCE_CONFIG)
        # (age ceiling hours, bonus) ascending
        self.recency_steps = sorted(self.config["recency_steps"])
        # (view floor, bonus) descending
        self.popularity_tiers = sorted(self.config["popularity_tiers"], reverse=True)

    def components(
        self,
        article: Mapping[str, Any],
        prefs: Optional[ViewerPreferences] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, float]:
        prefs = prefs or ViewerPreferences()
        cfg = self.config

        trust = article.get("trust_score")
        trust = cfg["missing_trust"] if trust is None else float(trust)

        parts = {
            "trust": trust / cfg["trust_divisor"],
            "category": cfg["category_match"]
            if article.get("category") in set(prefs.preferred_categories)
            else 0.0,
            "teams": cfg["team_match"] * _overlap(article.get("team_ids"), prefs.preferred_team_ids),
            "players": cfg["player_match"]
            * _overlap(article.get("player_ids"), prefs.preferred_player_ids),
            "leagues": cfg["league_match"]
            * _overlap(article.get("league_ids"), prefs.preferred_league_ids),
            "featured": cfg["featured_bonus"] if article.get("is_featured") else 0.0,
            "breaking": cfg["breaking_bonus"] if article.get("is_breaking") else 0.0,
            "recency": self._recency(article.get("published_at"), now),
            "popularity": self._popularity(article.get("view_count") or 0),
        }
        return parts

    def score(
        self,
        article: Mapping[str, Any],
        prefs: Optional[ViewerPreferences] = None,
        now: Optional[datetime] = None,
    ) -> float:
        return round(sum(self.components(article, prefs, now).values()), 4)

    def _recency(self, published_at: Optional[datetime], now: Optional[datetime]) -> float:
        if published_at is None:
            return 0.0
        age_hours = hours_between(now or utc_now(), ensure_utc(published_at))
        for ceiling, bonus in self.recency_steps:
            if age_hours < ceiling:
                return bonus
        return 0.0

    def _popularity(self, view_count: int) -> float:
        for floor, bonus in self.popularity_tiers:
            if view_count > floor:
                return bonus
        return 0.0


def relevance_score(
    article: Mapping[str, Any],
    prefs: Optional[ViewerPreferences] = None,
    now: Optional[datetime] = None,
    config: Optional[Dict[str, Any]] = None,
) -> float:
    return RelevanceScorer(config).score(article, prefs, now)
