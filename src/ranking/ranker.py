"""Serve-time personalized ranking over the stored article pool."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import cmp_to_key
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from config.settings import NEWS_CONFIG, RANKING_CONFIG
from src.contracts import (
    ArticleFilters,
    ArticleListResult,
    Pagination,
    ViewerPreferences,
    empty_result,
)
from src.scoring.relevance_scorer import RelevanceScorer
from src.utils.datetime_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

_EPOCH_KEY = float("-inf")


def _published_key(article: Mapping[str, Any]) -> float:
    published = article.get("published_at")
    if published is None:
        return _EPOCH_KEY
    return ensure_utc(published).timestamp()


def compare_ranked(a: Mapping[str, Any], b: Mapping[str, Any], tie_threshold: float = 5.0) -> int:
    """
    Negative when ``a`` ranks first.

    Scores closer than ``tie_threshold`` are ordered newest first; otherwise
    the higher score wins. This is not a total order (80, 83, 86 chain), so
    the result depends on the input order, which is always newest first.
    """
    delta = float(a["relevance_score"]) - float(b["relevance_score"])
    if abs(delta) < tie_threshold:
        newer = _published_key(b) - _published_key(a)
        return (newer > 0) - (newer < 0)
    return -1 if delta > 0 else 1


def rank_articles(
    articles: Sequence[Dict[str, Any]], tie_threshold: float = 5.0
) -> List[Dict[str, Any]]:
    """Sort scored articles; each needs ``relevance_score`` and ``published_at``."""
    newest_first = sorted(articles, key=_published_key, reverse=True)
    return sorted(
        newest_first, key=cmp_to_key(lambda a, b: compare_ranked(a, b, tie_threshold))
    )


def apply_translation(article: Dict[str, Any], language: Optional[str]) -> Dict[str, Any]:
    """Swap in ``translations[language]`` when the article has one."""
    translations = article.pop("translations", None) or {}
    entry = translations.get(language.lower()) if language else None
    if not entry or not entry.get("title"):
        article["is_translated"] = False
        return article
    article["original_title"] = article["title"]
    article["original_summary"] = article.get("summary") or ""
    article["title"] = entry["title"]
    article["summary"] = entry.get("summary") or article["original_summary"]
    article["is_translated"] = True
    return article


class PersonalizedRanker:
    """Loads the candidate pool, scores it for one viewer and pages the result."""

    def __init__(
        self,
        db_manager,
        config: Optional[Dict[str, Any]] = None,
        scorer: Optional[RelevanceScorer] = None,
        default_language: Optional[str] = None,
    ):
        self.db_manager = db_manager
        self.config = dict(config or RANKING_CONFIG)
        self.scorer = scorer or RelevanceScorer()
        self.default_language = (default_language or NEWS_CONFIG["default_language"]).lower()

    def _validate(
        self, filters: Optional[Mapping[str, Any]], pagination: Optional[Mapping[str, Any]]
    ) -> Optional[Tuple[ArticleFilters, Pagination]]:
        try:
            parsed_filters = ArticleFilters.model_validate(dict(filters or {}))
            page = dict(pagination or {})
            page.setdefault("limit", self.config["default_limit"])
            parsed_page = Pagination.model_validate(page)
        except ValidationError as exc:
            logger.info(f"Rejected article query: {exc.error_count()} invalid values")
            return None
        return parsed_filters, parsed_page

    def list_articles(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        prefs: Optional[ViewerPreferences] = None,
        pagination: Optional[Mapping[str, Any]] = None,
        language: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ArticleListResult:
        """
        Ranked page of articles for one viewer.

        Invalid filters or pagination give an empty result. The whole
        candidate pool is scored and sorted before ``offset``/``limit`` apply,
        and ``total`` is the size of that pool.
        """
        validated = self._validate(filters, pagination)
        if validated is None:
            return empty_result()
        parsed_filters, page = validated
        prefs = prefs or ViewerPreferences()
        if parsed_filters.team_ids:
            # Teams asked for in the query score like followed teams.
            merged = list(dict.fromkeys([*prefs.preferred_team_ids, *parsed_filters.team_ids]))
            prefs = prefs.model_copy(update={"preferred_team_ids": merged})
        limit = min(page.limit, int(self.config["max_limit"]))
        now = now or utc_now()

        candidates = self.db_manager.query_candidates(
            parsed_filters,
            int(self.config["candidate_pool_size"]),
            blocked_sources=prefs.blocked_sources,
        )
        for article in candidates:
            article["relevance_score"] = self.scorer.score(article, prefs, now)
        ranked = rank_articles(candidates, float(self.config["tie_threshold"]))

        language = (language or prefs.language or self.default_language).lower()
        window = ranked[page.offset : page.offset + limit]
        articles = [
            apply_translation(article, None if language == self.default_language else language)
            for article in window
        ]
        return {
            "articles": articles,
            "total": len(ranked),
            "has_more": page.offset + limit < len(ranked),
        }

    def view_tracking_ids(self, result: ArticleListResult) -> List[int]:
        """Ids of the top served articles whose views get recorded."""
        top_n = int(self.config["view_tracking_top_n"])
        return [article["id"] for article in result["articles"][:top_n] if article.get("id")]
