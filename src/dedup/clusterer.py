# src/dedup/clusterer.py
# Near-duplicate clustering for one collection run
# ================================================

"""
Groups articles from one run that report the same event and picks one
representative per group.

Similarity is checked in a fixed order so cheap tests short-circuit the rest:

1. publication times further apart than the window are never similar
2. title word Jaccard at or above the title threshold is similar
3. otherwise keyword overlap over title + summary must exceed the overlap
   threshold *and* title Jaccard must exceed the lower floor

Clustering is a single pass in arrival order. Each article is compared with
the representative (first member) of every open cluster, in the order the
clusters were opened, and joins the first one it matches. Because only the
first member is compared, and similarity is not transitive, a different
arrival order can produce different clusters.

After clustering, the member with the best quality score becomes the
representative; on ties the earliest member wins.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from config.keywords import STOPWORDS
from config.settings import DEDUP_CONFIG
from src.utils.datetime_utils import ensure_utc, hours_between, utc_now

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


def generate_cluster_id() -> str:
    return str(uuid.uuid4())


def title_words(title: str) -> Set[str]:
    return set((title or "").lower().split())


def title_jaccard(title_a: str, title_b: str) -> float:
    words_a = title_words(title_a)
    words_b = title_words(title_b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def extract_keywords(text: str, min_length: int = 3) -> Set[str]:
    cleaned = _NON_ALNUM_RE.sub(" ", (text or "").lower())
    return {word for word in cleaned.split() if len(word) >= min_length and word not in STOPWORDS}


def keyword_overlap(keywords_a: Set[str], keywords_b: Set[str]) -> float:
    """Shared keywords over the smaller set; 0 when either side has none."""
    smaller = min(len(keywords_a), len(keywords_b))
    if smaller == 0:
        return 0.0
    return len(keywords_a & keywords_b) / smaller


class ArticleClusterer:
    """Single-pass, representative-only clustering with configurable thresholds."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        cfg = dict(config or DEDUP_CONFIG)
        self.time_window_hours = float(cfg["time_window_hours"])
        self.title_threshold = float(cfg["title_similarity_threshold"])
        self.overlap_threshold = float(cfg["keyword_overlap_threshold"])
        self.title_floor = float(cfg["keyword_title_floor"])
        self.min_keyword_length = int(cfg.get("min_keyword_length", 3))

    def _keywords(self, article: Mapping[str, Any]) -> Set[str]:
        text = f"{article.get('title') or ''} {article.get('summary') or ''}"
        return extract_keywords(text, self.min_keyword_length)

    def is_similar(self, a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
        published_a = a.get("published_at")
        published_b = b.get("published_at")
        if published_a is not None and published_b is not None:
            if abs(hours_between(published_a, published_b)) > self.time_window_hours:
                return False

        jaccard = title_jaccard(a.get("title", ""), b.get("title", ""))
        if jaccard >= self.title_threshold:
            return True

        overlap = keyword_overlap(self._keywords(a), self._keywords(b))
        return overlap > self.overlap_threshold and jaccard > self.title_floor

    def cluster(self, articles: Sequence[Mapping[str, Any]]) -> List[List[Mapping[str, Any]]]:
        """Member lists in cluster-opening order; members in arrival order."""
        clusters: List[List[Mapping[str, Any]]] = []
        for article in articles:
            for members in clusters:
                if self.is_similar(members[0], article):
                    members.append(article)
                    break
            else:
                clusters.append([article])
        return clusters


def quality_score(article: Mapping[str, Any], now: Optional[datetime] = None) -> float:
    """
    Editorial quality used to choose a cluster representative.

    Up to 40 points from trust, 20 for a summary in the 100-500 character
    range (10 for anything longer than 50), up to 20 for freshness losing
    2 per hour, and 5 each for a 30-120 character title and a digit in it.
    """
    score = float(article.get("trust_score") or 0.0) / 100.0 * 40.0

    summary_length = len(article.get("summary") or "")
    if 100 < summary_length < 500:
        score += 20
    elif summary_length > 50:
        score += 10

    published_at = article.get("published_at")
    if published_at is not None:
        age_hours = hours_between(now or utc_now(), ensure_utc(published_at))
        score += max(0.0, 20.0 - age_hours * 2.0)

    title = article.get("title") or ""
    if 30 < len(title) < 120:
        score += 5
    if any(char.isdigit() for char in title):
        score += 5
    return score


def select_representative(
    members: Sequence[Mapping[str, Any]], now: Optional[datetime] = None
) -> int:
    """Index of the highest quality member; the first one wins a tie."""
    best_index = 0
    best_score = quality_score(members[0], now)
    for index in range(1, len(members)):
        candidate = quality_score(members[index], now)
        if candidate > best_score:
            best_index, best_score = index, candidate
    return best_index


def source_label(article: Mapping[str, Any]) -> str:
    name = article.get("source_name") or article.get("source_id") or "unknown"
    return f"{name} [{article.get('source_tier') or 'unknown'}]"


def build_representative(
    members: Sequence[Mapping[str, Any]], now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Representative dict for one cluster.

    ``duplicate_sources`` lists the other members' labels by descending trust,
    skipping members published by the representative's own source: the list
    names corroborating outlets, so it can be shorter than ``duplicate_count``
    when one outlet published the story twice.
    """
    rep_index = select_representative(members, now)
    representative = dict(members[rep_index])
    others = [member for index, member in enumerate(members) if index != rep_index]
    corroborating = [
        member for member in others if member.get("source_id") != representative.get("source_id")
    ]
    corroborating.sort(key=lambda member: float(member.get("trust_score") or 0.0), reverse=True)

    representative["cluster_id"] = generate_cluster_id()
    representative["duplicate_count"] = len(members) - 1
    representative["duplicate_sources"] = [source_label(member) for member in corroborating]
    return representative


def cluster_articles(
    articles: Sequence[Mapping[str, Any]], config: Optional[Dict[str, Any]] = None
) -> List[List[Mapping[str, Any]]]:
    return ArticleClusterer(config).cluster(articles)


def deduplicate(
    articles: Sequence[Mapping[str, Any]],
    config: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """One representative per cluster, in cluster-opening order."""
    if not articles:
        return []
    clusterer = ArticleClusterer(config)
    return [build_representative(members, now) for members in clusterer.cluster(articles)]


def is_similar(
    a: Mapping[str, Any], b: Mapping[str, Any], config: Optional[Dict[str, Any]] = None
) -> bool:
    return ArticleClusterer(config).is_similar(a, b)
