from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.contracts import ViewerPreferences
from src.scoring import RelevanceScorer, create_relevance_scorer, relevance_score

NOW = datetime(2026, 5, 16, 12, 0, tzinfo=timezone.utc)


def _article(**overrides):
    article = {
        "trust_score": 80.0,
        "category": "general",
        "team_ids": [],
        "player_ids": [],
        "league_ids": [],
        "is_featured": False,
        "is_breaking": False,
        "published_at": NOW - timedelta(days=3),
        "view_count": 0,
    }
    article.update(overrides)
    return article


def test_full_breakdown_for_a_followed_team() -> None:
    scorer = RelevanceScorer()
    prefs = ViewerPreferences(preferred_team_ids=[33, 40], preferred_categories=["transfer"])
    article = _article(
        category="transfer",
        team_ids=[33, 40, 42],
        published_at=NOW - timedelta(minutes=30),
        view_count=600,
    )
    parts = scorer.components(article, prefs, NOW)
    assert parts["trust"] == 8.0
    assert parts["category"] == 20.0
    assert parts["teams"] == 60.0
    assert parts["recency"] == 30.0
    assert parts["popularity"] == 10.0
    assert scorer.score(article, prefs, NOW) == 128.0


def test_missing_trust_uses_neutral_value() -> None:
    article = _article(trust_score=None, published_at=None)
    assert relevance_score(article, None, NOW) == 5.0


def test_player_and_league_matches_sum_without_cap() -> None:
    prefs = ViewerPreferences(preferred_player_ids=[1, 2, 3], preferred_league_ids=[39])
    article = _article(player_ids=[1, 2, 3], league_ids=[39])
    assert RelevanceScorer().score(article, prefs, NOW) == 8.0 + 75.0 + 15.0


def test_featured_and_breaking_bonuses() -> None:
    article = _article(is_featured=True, is_breaking=True)
    assert RelevanceScorer().score(article, ViewerPreferences(), NOW) == 8.0 + 50.0 + 40.0


@pytest.mark.parametrize(
    ("age", "bonus"),
    [
        (timedelta(minutes=59), 30.0),
        (timedelta(hours=1), 20.0),
        (timedelta(hours=5, minutes=59), 20.0),
        (timedelta(hours=23), 10.0),
        (timedelta(hours=24), 0.0),
    ],
)
def test_recency_steps(age: timedelta, bonus: float) -> None:
    parts = RelevanceScorer().components(_article(published_at=NOW - age), None, NOW)
    assert parts["recency"] == bonus


@pytest.mark.parametrize(
    ("views", "bonus"),
    [(0, 0.0), (100, 0.0), (101, 5.0), (501, 10.0), (1000, 10.0), (1001, 15.0)],
)
def test_popularity_tiers(views: int, bonus: float) -> None:
    parts = RelevanceScorer().components(_article(view_count=views), None, NOW)
    assert parts["popularity"] == bonus


def test_naive_published_at_is_treated_as_utc() -> None:
    naive = (NOW - timedelta(minutes=10)).replace(tzinfo=None)
    parts = RelevanceScorer().components(_article(published_at=naive), None, NOW)
    assert parts["recency"] == 30.0


def test_create_relevance_scorer_overrides() -> None:
    scorer = create_relevance_scorer({"team_match": 100.0})
    prefs = ViewerPreferences(preferred_team_ids=[42])
    assert scorer.components(_article(team_ids=[42]), prefs, NOW)["teams"] == 100.0
