from __future__ import annotations

from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FIXED_NOW, rss_feed, rss_item
from main import FootballNewsSystem, create_api_app
from src.collectors import FeedFetcher
from src.storage.database import DatabaseManager

pytestmark = pytest.mark.e2e

SOURCES = ["bbc_sport", "sky_sports", "the_guardian"]

FETCH_CONFIG = {
    "request_timeout_seconds": 2,
    "max_concurrent_requests": 4,
    "max_items_per_source": 20,
    "user_agent": "futnews-test/1.0",
    "accept_header": "application/rss+xml",
}

FEEDS = {
    "feeds.bbci.co.uk": rss_feed(
        [
            rss_item(
                "Arsenal beat Chelsea 2-0 at the Emirates",
                "https://www.bbc.co.uk/sport/football/arsenal-chelsea",
                "Goals from Saka and Odegaard settled the derby.",
                published=FIXED_NOW - timedelta(hours=1),
            ),
            rss_item(
                "Liverpool confirm signing of Dutch midfielder",
                "https://www.bbc.co.uk/sport/football/liverpool-signing",
                "The deal is worth a reported 40m.",
                published=FIXED_NOW - timedelta(hours=3),
            ),
        ],
        title="BBC Sport - Football",
    ),
    "www.skysports.com": rss_feed(
        [
            rss_item(
                "Arsenal beat Chelsea 2-0 at the Emirates",
                "https://www.skysports.com/football/news/arsenal-chelsea",
                "Arsenal stay top after the derby win.",
                published=FIXED_NOW - timedelta(minutes=50),
            ),
        ],
        title="Sky Sports Football",
    ),
}


def _handler(request: httpx.Request) -> httpx.Response:
    body = FEEDS.get(request.url.host)
    if body is None:
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(200, text=body, headers={"Content-Type": "application/rss+xml"})


@pytest.fixture()
def system(db_manager: DatabaseManager) -> FootballNewsSystem:
    fetcher = FeedFetcher(FETCH_CONFIG, transport=httpx.MockTransport(_handler))
    instance = FootballNewsSystem(db_manager=db_manager, fetcher=fetcher)
    assert instance.initialize() is True
    yield instance
    instance.stop_scheduler()


def test_collection_run_end_to_end(system: FootballNewsSystem) -> None:
    summary = system.run_collection_cycle(SOURCES, now=FIXED_NOW)
    assert summary["fetched"] == 3
    assert summary["unique_after_dedup"] == 2
    assert summary["saved"] == 2
    assert summary["sources_succeeded"] == 2
    assert summary["sources_failed"] == 1
    assert summary["duration_ms"] >= 0

    db = system.db_manager
    assert db.count_articles() == 2
    assert db.get_article_by_url("https://www.bbc.co.uk/sport/football/liverpool-signing")["category"] == "transfer"

    stored = [
        db.get_article_by_url(url)
        for url in (
            "https://www.bbc.co.uk/sport/football/arsenal-chelsea",
            "https://www.skysports.com/football/news/arsenal-chelsea",
        )
    ]
    representative = [article for article in stored if article is not None]
    assert len(representative) == 1
    assert representative[0]["duplicate_count"] == 1

    (log,) = db.get_recent_collection_logs(5)
    assert log["trigger"] == "manual"
    assert log["saved"] == 2
    assert len(log["errors"]) == 1
    assert log["errors"][0].startswith("the_guardian: ")

    guardian = {source["id"]: source for source in db.get_sources()}["the_guardian"]
    assert guardian["consecutive_failures"] == 1


def test_second_run_saves_nothing_new(system: FootballNewsSystem) -> None:
    system.run_collection_cycle(SOURCES, now=FIXED_NOW)
    again = system.run_collection_cycle(SOURCES, now=FIXED_NOW)
    assert again["fetched"] == 3
    assert again["unique_after_dedup"] == 2
    assert again["saved"] == 0
    assert system.db_manager.count_articles() == 2


def test_dry_run_writes_nothing(system: FootballNewsSystem) -> None:
    summary = system.run_collection_cycle(SOURCES, dry_run=True, now=FIXED_NOW)
    assert summary["unique_after_dedup"] == 2
    assert summary["saved"] == 0
    assert system.db_manager.count_articles() == 0
    assert system.db_manager.get_recent_collection_logs(5) == []


def test_category_override_filters_before_dedup(system: FootballNewsSystem) -> None:
    summary = system.run_collection_cycle(SOURCES, category="transfer", now=FIXED_NOW)
    assert summary["fetched"] == 3
    assert summary["unique_after_dedup"] == 1
    assert summary["saved"] == 1

    with pytest.raises(ValueError):
        system.run_collection_cycle(SOURCES, category="gossip", now=FIXED_NOW)


def test_uninitialized_system_refuses_to_run(db_manager: DatabaseManager) -> None:
    with pytest.raises(RuntimeError):
        FootballNewsSystem(db_manager=db_manager).run_collection_cycle()


def test_scheduler_keys(system: FootballNewsSystem) -> None:
    scheduler = system.start_scheduler()
    assert "collection" in scheduler.active_keys()
    assert "retention" in scheduler.active_keys()
    system.start_scheduler()
    assert len(scheduler.scheduler.get_jobs()) == len(scheduler.active_keys())


def test_api_app_reads_what_the_pipeline_wrote(system: FootballNewsSystem) -> None:
    system.run_collection_cycle(SOURCES, now=FIXED_NOW)
    client = TestClient(create_api_app(system))

    body = client.get("/v1/articles").json()
    assert body["total"] == 2
    urls = {article["url"] for article in body["articles"]}
    assert "https://www.bbc.co.uk/sport/football/liverpool-signing" in urls

    transfers = client.get("/v1/articles", params={"category": "transfer"}).json()
    assert transfers["total"] == 1
