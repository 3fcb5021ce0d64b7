"""Concurrent fetching over httpx.MockTransport: isolation, ordering and logging."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import httpx
import pytest

from conftest import FIXED_NOW, rss_feed, rss_item
from src.collectors import FeedFetcher, looks_like_feed

FETCH_CONFIG = {
    "request_timeout_seconds": 0.2,
    "max_concurrent_requests": 4,
    "max_items_per_source": 20,
    "user_agent": "futnews-test/1.0",
    "accept_header": "application/rss+xml",
}


class StubModuleLogger:
    """Captures structured log payloads for assertions."""

    def __init__(self) -> None:
        self.records: list[tuple[str, Dict[str, Any]]] = []

    def info(self, payload: Dict[str, Any]) -> None:
        self.records.append(("info", payload))

    def warning(self, payload: Dict[str, Any]) -> None:
        self.records.append(("warning", payload))

    def error(self, payload: Dict[str, Any]) -> None:
        self.records.append(("error", payload))

    def debug(self, payload: Dict[str, Any]) -> None:
        self.records.append(("debug", payload))


class StubLoggerFactory:
    def __init__(self) -> None:
        self.module_logger = StubModuleLogger()
        self.started: List[str] = []

    def create_module_logger(self, name: str) -> StubModuleLogger:
        return self.module_logger

    def log_source_start(self, source_id: str, url: str) -> None:
        self.started.append(source_id)


def _source(url: str) -> Dict[str, Any]:
    return {"name": url, "url": url, "tier": "tier2"}


def _feed(prefix: str, count: int = 2) -> str:
    return rss_feed(
        [rss_item(f"{prefix} story {n}", f"https://{prefix}.example.com/{n}") for n in range(count)]
    )


async def _handler(request: httpx.Request) -> httpx.Response:
    host = request.url.host
    if host == "ok.example.com":
        return httpx.Response(200, text=_feed("ok"))
    if host == "slow.example.com":
        await asyncio.sleep(5)
        return httpx.Response(200, text=_feed("slow"))
    if host == "broken.example.com":
        return httpx.Response(503, text="unavailable")
    if host == "html.example.com":
        return httpx.Response(200, text="<!DOCTYPE html><html><body>Hello</body></html>")
    if host == "garbage.example.com":
        return httpx.Response(200, text="<?xml version='1.0'?><rss><channel><title>cut off")
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture()
def factory() -> StubLoggerFactory:
    return StubLoggerFactory()


@pytest.fixture()
def fetcher(factory: StubLoggerFactory) -> FeedFetcher:
    return FeedFetcher(FETCH_CONFIG, transport=httpx.MockTransport(_handler), logger_factory=factory)


@pytest.mark.anyio
async def test_failures_are_isolated_per_source(fetcher: FeedFetcher) -> None:
    sources = {
        "ok": _source("https://ok.example.com/rss"),
        "slow": _source("https://slow.example.com/rss"),
        "broken": _source("https://broken.example.com/rss"),
        "html": _source("https://html.example.com/rss"),
        "down": _source("https://down.example.com/rss"),
    }
    result = await fetcher.fetch_all_async(sources, now=FIXED_NOW)

    assert [article["title"] for article in result["articles"]] == ["ok story 0", "ok story 1"]
    stats = result["source_results"]
    assert stats["ok"]["success"] is True
    assert stats["ok"]["status_code"] == 200
    assert stats["ok"]["articles_found"] == 2
    assert stats["slow"]["success"] is False
    assert "Timed out" in stats["slow"]["error_message"]
    assert stats["broken"]["status_code"] == 503
    assert stats["broken"]["error_message"] == "HTTP 503"
    assert "not an RSS or Atom" in stats["html"]["error_message"]
    assert stats["down"]["error_message"].startswith("ConnectError")

    assert result["stats"]["sources_succeeded"] == 1
    assert result["stats"]["sources_failed"] == 4
    assert result["stats"]["total_articles_found"] == 2


@pytest.mark.anyio
async def test_articles_follow_registry_order_not_completion_order() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "first.example.com":
            await asyncio.sleep(0.05)
        prefix = request.url.host.split(".")[0]
        return httpx.Response(200, text=_feed(prefix, 1))

    fetcher = FeedFetcher(
        FETCH_CONFIG, transport=httpx.MockTransport(handler), logger_factory=StubLoggerFactory()
    )
    sources = {
        "first": _source("https://first.example.com/rss"),
        "second": _source("https://second.example.com/rss"),
    }
    result = await fetcher.fetch_all_async(sources, now=FIXED_NOW)
    assert [article["source_id"] for article in result["articles"]] == ["first", "second"]


@pytest.mark.anyio
async def test_request_headers_are_sent() -> None:
    seen: Dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, text=_feed("ok", 1))

    fetcher = FeedFetcher(
        FETCH_CONFIG, transport=httpx.MockTransport(handler), logger_factory=StubLoggerFactory()
    )
    await fetcher.fetch_all_async({"ok": _source("https://ok.example.com/rss")}, now=FIXED_NOW)
    assert seen["user-agent"] == "futnews-test/1.0"
    assert seen["accept"] == "application/rss+xml"


@pytest.mark.anyio
async def test_unparseable_xml_is_a_source_failure(fetcher: FeedFetcher) -> None:
    sources = {"garbage": _source("https://garbage.example.com/rss")}
    result = await fetcher.fetch_all_async(sources, now=FIXED_NOW)
    assert result["articles"] == []
    garbage = result["source_results"]["garbage"]
    assert garbage["success"] is False
    assert garbage["error_message"].startswith("Malformed feed")
    assert result["stats"]["total_sources_processed"] == 1


@pytest.mark.anyio
async def test_structured_logs_carry_run_context(
    fetcher: FeedFetcher, factory: StubLoggerFactory
) -> None:
    sources = {
        "ok": _source("https://ok.example.com/rss"),
        "broken": _source("https://broken.example.com/rss"),
    }
    await fetcher.fetch_all_async(sources, now=FIXED_NOW, session_id="session-42", trace_id="trace-99")

    events = {}
    for level, payload in factory.module_logger.records:
        events.setdefault(payload["event"], []).append((level, payload))

    _level, start = events["fetcher.batch.start"][0]
    assert start["trace_id"] == "trace-99"
    assert start["collector_type"] == "FeedFetcher"
    finished = {payload["source_id"]: level for level, payload in events["fetcher.source.finished"]}
    assert finished == {"ok": "info", "broken": "warning"}
    assert events["fetcher.batch.completed"][0][1]["session_id"] == "session-42"
    assert sorted(factory.started) == ["broken", "ok"]
    assert fetcher._active_trace_id is None
    assert fetcher._active_session_id is None


def test_fetch_all_runs_without_an_event_loop(fetcher: FeedFetcher) -> None:
    result = fetcher.fetch_all({"ok": _source("https://ok.example.com/rss")}, now=FIXED_NOW)
    assert len(result["articles"]) == 2
    assert all(article["published_at"] == FIXED_NOW for article in result["articles"])


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ("\ufeff  \n<?xml version='1.0'?><rss/>", True),
        ("<rss version='2.0'><channel/></rss>", True),
        ("<feed xmlns='http://www.w3.org/2005/Atom'/>", True),
        ("<!DOCTYPE html><html><body>Not found</body></html>", False),
        ("", False),
    ],
)
def test_looks_like_feed(body: str, expected: bool) -> None:
    assert looks_like_feed(body) is expected
