# src/collectors/feed_fetcher.py
# Concurrent feed fetching
# ========================

"""
Fetches every configured feed concurrently and turns each body into raw
article records.

One source failing (timeout, non-2xx status, a body that is not XML, a feed
feedparser cannot recover) is recorded in that source's stats and never
affects the others. Articles come back grouped in registry order so the
downstream clustering sees a stable arrival order.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

from config.settings import COLLECTION_CONFIG
from src.contracts import RawArticle

from .base_collector import BaseCollector, empty_source_stats
from .feed_normalizer import FeedParseError, normalize_feed

MAX_FEED_BYTES = 10 * 1024 * 1024
XML_MARKERS = ("<?xml", "<rss", "<feed")
# Feed roots sit near the top; sniffing a prefix avoids scanning large bodies.
SNIFF_CHARS = 4096


class FeedFetchError(Exception):
    """A single feed could not be retrieved or was not XML."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def looks_like_feed(body: str) -> bool:
    head = body.lstrip("\ufeff \t\r\n")[:SNIFF_CHARS].lower()
    return any(marker in head for marker in XML_MARKERS)


class FeedFetcher(BaseCollector):
    """
    Bounded-concurrency fetcher over httpx.

    ``transport`` is handed to ``httpx.AsyncClient`` and exists so tests can
    plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger_factory=None,
    ):
        super().__init__(logger_factory)
        self.config = dict(config or COLLECTION_CONFIG)
        self.transport = transport
        self.timeout = float(self.config["request_timeout_seconds"])
        self.max_items = int(self.config.get("max_items_per_source", 20))

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.config["user_agent"],
            "Accept": self.config["accept_header"],
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
        }

    async def _download(
        self, client: httpx.AsyncClient, source_id: str, url: str
    ) -> Tuple[str, int]:
        response = await client.get(url)
        status = response.status_code
        if not response.is_success:
            raise FeedFetchError(f"HTTP {status}", status)
        if len(response.content) > MAX_FEED_BYTES:
            raise FeedFetchError(f"Feed larger than {MAX_FEED_BYTES} bytes", status)
        body = response.text
        if not looks_like_feed(body):
            raise FeedFetchError("Response is not an RSS or Atom document", status)
        self._emit_log(
            "debug",
            "fetcher.feed.downloaded",
            source_id=source_id,
            details={"status_code": response.status_code, "bytes": len(response.content)},
        )
        return body, status

    async def _process_source_async(
        self,
        client: httpx.AsyncClient,
        source_id: str,
        source_config: Dict[str, Any],
        now: datetime,
    ) -> Dict[str, Any]:
        stats = empty_source_stats(source_id)
        self.logger_factory.log_source_start(source_id, source_config["url"])
        articles: List[RawArticle] = []
        start = time.time()
        try:
            body, stats["status_code"] = await asyncio.wait_for(
                self._download(client, source_id, source_config["url"]), timeout=self.timeout
            )
            articles = normalize_feed(body, source_id, self.max_items, now)
            stats["articles_found"] = len(articles)
            stats["success"] = True
        except asyncio.TimeoutError:
            stats["error_message"] = f"Timed out after {self.timeout:g}s"
        except FeedFetchError as exc:
            stats["status_code"] = exc.status_code
            stats["error_message"] = str(exc)
        except FeedParseError as exc:
            stats["error_message"] = str(exc)
        except httpx.HTTPError as exc:
            stats["error_message"] = f"{exc.__class__.__name__}: {exc}"
        finally:
            stats["processing_time"] = round(time.time() - start, 3)

        level = "info" if stats["success"] else "warning"
        self._emit_log(
            level,
            "fetcher.source.finished",
            source_id=source_id,
            latency=stats["processing_time"],
            details={
                "success": stats["success"],
                "articles_found": stats["articles_found"],
                "error": stats["error_message"],
            },
        )
        return {"stats": stats, "articles": articles}

    async def fetch_all_async(
        self,
        sources_config: Dict[str, Dict[str, Any]],
        *,
        now: Optional[datetime] = None,
        session_id: Optional[str] = None,
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Fetch and normalize every source.

        Returns ``articles`` (flattened in registry order), ``source_results``
        keyed by source id, and the aggregate ``stats``.
        """
        self._set_runtime_context(session_id=session_id, trace_id=trace_id)
        self.start_time = datetime.now(timezone.utc)
        now = now or self.start_time
        self._reset_stats()
        self._emit_log(
            "info", "fetcher.batch.start", latency=0.0, details={"sources": len(sources_config)}
        )

        outcomes: Dict[str, Dict[str, Any]] = {}
        sem = asyncio.Semaphore(int(self.config["max_concurrent_requests"]))

        async with httpx.AsyncClient(
            headers=self._headers(),
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=self.transport,
        ) as client:

            async def run_one(sid: str, cfg: Dict[str, Any]):
                try:
                    async with sem:
                        outcome = await self._process_source_async(client, sid, cfg, now)
                except Exception as exc:  # pragma: no cover - last line per source
                    self._emit_log(
                        "error",
                        "fetcher.source.exception",
                        source_id=sid,
                        details={"error": str(exc)},
                    )
                    stats = empty_source_stats(sid)
                    stats["error_message"] = f"Unexpected error: {exc}"
                    outcome = {"stats": stats, "articles": []}
                outcomes[sid] = outcome

            await asyncio.gather(*(run_one(sid, cfg) for sid, cfg in sources_config.items()))

        articles: List[RawArticle] = []
        source_results: Dict[str, Dict[str, Any]] = {}
        for source_id in sources_config:
            outcome = outcomes[source_id]
            source_results[source_id] = outcome["stats"]
            articles.extend(outcome["articles"])
            self._update_global_stats(outcome["stats"])

        self.stats["processing_time_seconds"] = round(
            (datetime.now(timezone.utc) - self.start_time).total_seconds(), 3
        )
        self._emit_log(
            "info",
            "fetcher.batch.completed",
            latency=self.stats["processing_time_seconds"],
            details={key: value for key, value in self.stats.items() if key != "processing_time_seconds"},
        )
        self._reset_runtime_context()
        return {"articles": articles, "source_results": source_results, "stats": self.get_stats()}

    def fetch_all(
        self,
        sources_config: Dict[str, Dict[str, Any]],
        *,
        now: Optional[datetime] = None,
        session_id: Optional[str] = None,
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Blocking wrapper for callers outside an event loop."""
        return asyncio.run(
            self.fetch_all_async(sources_config, now=now, session_id=session_id, trace_id=trace_id)
        )
