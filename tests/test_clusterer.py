from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from hypothesis import given, settings
from hypothesis import strategies as st

from src.dedup import (
    ArticleClusterer,
    cluster_articles,
    deduplicate,
    extract_keywords,
    is_similar,
    keyword_overlap,
    quality_score,
    title_jaccard,
)

NOW = datetime(2026, 5, 16, 12, 0, tzinfo=timezone.utc)
DEDUP = {
    "time_window_hours": 4.0,
    "title_similarity_threshold": 0.85,
    "keyword_overlap_threshold": 0.7,
    "keyword_title_floor": 0.5,
    "min_keyword_length": 3,
}

LONG_SUMMARY = (
    "Chelsea have completed the signing of the Argentina midfielder after "
    "agreeing a fee with Benfica, and the player has signed a long contract "
    "running until the end of the decade."
)


def _article(title, source_id="bbc_sport", hours_ago=1.0, **extra):
    article = {
        "title": title,
        "summary": "",
        "url": f"https://example.com/{uuid.uuid4().hex}",
        "source_id": source_id,
        "source_name": source_id.replace("_", " ").title(),
        "source_tier": "tier1",
        "trust_score": 80.0,
        "published_at": NOW - timedelta(hours=hours_ago),
    }
    article.update(extra)
    return article


def test_title_jaccard_and_keyword_helpers() -> None:
    assert title_jaccard("Arsenal win derby", "arsenal WIN derby") == 1.0
    assert title_jaccard("", "") == 0.0
    assert extract_keywords("The Gunners, at Arsenal: 2-1 win!") == {"gunners", "arsenal", "win"}
    assert keyword_overlap(set(), {"arsenal"}) == 0.0
    assert keyword_overlap({"arsenal", "derby"}, {"arsenal", "derby", "north", "london"}) == 1.0


def test_high_title_jaccard_is_similar() -> None:
    a = _article("Chelsea agree fee for Enzo Fernandez from Benfica")
    b = _article("Chelsea agree fee for Enzo Fernandez from Benfica today")
    assert title_jaccard(a["title"], b["title"]) >= 0.85
    assert is_similar(a, b, DEDUP)


def test_time_window_is_checked_first() -> None:
    a = _article("Chelsea agree fee for Enzo Fernandez", hours_ago=0.5)
    b = _article("Chelsea agree fee for Enzo Fernandez", hours_ago=5.0)
    assert not is_similar(a, b, DEDUP)


def test_keyword_fallback_needs_overlap_and_title_floor() -> None:
    a = _article("Chelsea sign Enzo Fernandez record fee")
    b = _article("Chelsea sign Enzo Fernandez British record")
    assert 0.5 < title_jaccard(a["title"], b["title"]) < 0.85
    assert is_similar(a, b, DEDUP)

    # same titles, but long unrelated summaries drag the keyword overlap down
    a["summary"] = "midfield engine arrives alongside youngsters backed heavily"
    b["summary"] = "supporters celebrated outside stamford bridge tonight loudly"
    assert not is_similar(a, b, DEDUP)


def test_low_title_jaccard_is_not_similar_even_with_shared_keywords() -> None:
    a = _article("Man United sign new striker", summary="United striker deal agreed")
    b = _article("Manchester United complete striker deal", summary="United striker deal agreed")
    assert title_jaccard(a["title"], b["title"]) < 0.5
    assert not is_similar(a, b, DEDUP)


def test_deduplicate_keeps_best_representative_and_lists_other_sources() -> None:
    bbc = _article("Chelsea agree fee for Enzo Fernandez from Benfica", "bbc_sport", trust_score=90.0)
    sky = _article(
        "Chelsea agree fee for Enzo Fernandez from Benfica",
        "sky_sports",
        trust_score=95.0,
        summary=LONG_SUMMARY,
    )
    other = _article("Liverpool confirm Salah contract extension", "the_guardian")

    unique = deduplicate([bbc, sky, other], DEDUP, NOW)

    assert [item["source_id"] for item in unique] == ["sky_sports", "the_guardian"]
    representative = unique[0]
    assert representative["duplicate_count"] == 1
    assert representative["duplicate_sources"] == ["Bbc Sport [tier1]"]
    assert unique[1]["duplicate_count"] == 0
    assert unique[1]["duplicate_sources"] == []
    assert representative["cluster_id"] != unique[1]["cluster_id"]
    uuid.UUID(representative["cluster_id"])


def test_duplicate_sources_skip_own_source_and_sort_by_trust() -> None:
    title = "Arsenal confirm Declan Rice signing from West Ham"
    first = _article(title, "bbc_sport", trust_score=95.0, summary=LONG_SUMMARY)
    same_source = _article(title, "bbc_sport", trust_score=70.0)
    low = _article(title, "goal", trust_score=60.0)
    high = _article(title, "the_athletic", trust_score=92.0)

    (representative,) = deduplicate([first, same_source, low, high], DEDUP, NOW)

    assert representative["url"] == first["url"]
    assert representative["duplicate_count"] == 3
    assert representative["duplicate_sources"] == ["The Athletic [tier1]", "Goal [tier1]"]
    assert len(representative["duplicate_sources"]) < representative["duplicate_count"]


def test_official_source_wins_over_tier3_for_same_event() -> None:
    title = "Premier League confirm kick-off times for final round"
    tier3 = _article(
        title, "goal", source_name="Goal", source_tier="tier3", trust_score=55.0, summary=LONG_SUMMARY
    )
    official = _article(
        title,
        "premier_league",
        hours_ago=1.2,
        source_name="Premier League",
        source_tier="official",
        trust_score=100.0,
        summary=LONG_SUMMARY,
    )

    (representative,) = deduplicate([tier3, official], DEDUP, NOW)

    assert representative["source_id"] == "premier_league"
    assert representative["duplicate_count"] == 1
    assert representative["duplicate_sources"] == ["Goal [tier3]"]


def test_quality_tie_keeps_first_member() -> None:
    a = _article("Spurs appoint new head coach", "bbc_sport")
    b = dict(a, url="https://example.com/other", source_id="sky_sports", source_name="Sky Sports")
    (representative,) = deduplicate([a, b], DEDUP, NOW)
    assert representative["source_id"] == "bbc_sport"


def test_quality_score_components() -> None:
    article = {
        "trust_score": 100.0,
        "summary": "x" * 150,
        "published_at": NOW,
        "title": "Arsenal 2-1 Chelsea: Saka scores late winner",
    }
    assert quality_score(article, NOW) == 40 + 20 + 20 + 5 + 5
    older = dict(article, published_at=NOW - timedelta(hours=15), summary="x" * 60)
    assert quality_score(older, NOW) == 40 + 10 + 0 + 5 + 5


def test_clustering_depends_on_arrival_order() -> None:
    title = "Kane hat-trick sends Bayern top of Bundesliga"
    a = _article(title, "bbc_sport", hours_ago=6.0)
    b = _article(title, "sky_sports", hours_ago=3.0)
    c = _article(title, "espn", hours_ago=0.0)

    forward = cluster_articles([a, b, c], DEDUP)
    assert [[m["source_id"] for m in members] for members in forward] == [
        ["bbc_sport", "sky_sports"],
        ["espn"],
    ]
    middle_first = cluster_articles([b, a, c], DEDUP)
    assert [[m["source_id"] for m in members] for members in middle_first] == [
        ["sky_sports", "bbc_sport", "espn"],
    ]


def test_deduplicate_empty_input() -> None:
    assert deduplicate([], DEDUP, NOW) == []


VOCAB = ["arsenal", "chelsea", "sign", "striker", "derby", "win", "injury", "kane", "fee", "loan"]


@st.composite
def articles(draw):
    words = draw(st.lists(st.sampled_from(VOCAB), min_size=1, max_size=6))
    return _article(
        " ".join(words),
        draw(st.sampled_from(["bbc_sport", "sky_sports", "goal"])),
        hours_ago=draw(st.floats(min_value=0, max_value=10, allow_nan=False)),
        trust_score=draw(st.floats(min_value=0, max_value=100, allow_nan=False)),
    )


@given(articles(), articles())
@settings(max_examples=150)
def test_similarity_is_symmetric(a, b) -> None:
    clusterer = ArticleClusterer(DEDUP)
    assert clusterer.is_similar(a, b) == clusterer.is_similar(b, a)
    assert clusterer.is_similar(a, a)


@given(st.lists(articles(), max_size=12))
@settings(max_examples=100)
def test_every_article_lands_in_exactly_one_cluster(batch) -> None:
    unique = deduplicate(batch, DEDUP, NOW)
    assert len(unique) <= len(batch)
    assert sum(item["duplicate_count"] + 1 for item in unique) == len(batch)
    batch_urls = {item["url"] for item in batch}
    assert {item["url"] for item in unique} <= batch_urls
    assert len({item["url"] for item in unique}) == len(unique)
