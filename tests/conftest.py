"""Shared fixtures: temporary databases, fixed clocks and feed builders."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.storage.database import DatabaseManager  # noqa: E402

FIXED_NOW = datetime(2026, 5, 16, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "e2e: end-to-end pipeline tests")


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def db_manager(tmp_path: Path) -> DatabaseManager:
    manager = DatabaseManager({"type": "sqlite", "path": tmp_path / "futnews-test.db"})
    yield manager
    manager.engine.dispose()


def make_article(**overrides: Any) -> Dict[str, Any]:
    """Canonical article dict as produced by the tagger and trust scorer."""
    article: Dict[str, Any] = {
        "title": "Arsenal beat Chelsea in London derby",
        "summary": "Arsenal won 2-1 at the Emirates on Saturday.",
        "url": "https://www.bbc.co.uk/sport/football/1",
        "guid": None,
        "source_id": "bbc_sport",
        "source_name": "BBC Sport",
        "source_tier": "tier1",
        "trust_score": 90.0,
        "category": "match",
        "tags": ["Match"],
        "team_ids": [42, 49],
        "league_ids": [],
        "player_ids": [],
        "published_at": FIXED_NOW - timedelta(hours=1),
        "image_url": None,
        "is_breaking": False,
        "is_featured": False,
        "duplicate_count": 0,
        "duplicate_sources": [],
    }
    article.update(overrides)
    return article


def rss_item(
    title: str,
    link: str,
    description: str = "",
    published: Optional[datetime] = None,
    guid: Optional[str] = None,
    extra: str = "",
) -> str:
    parts = [f"<title>{title}</title>", f"<link>{link}</link>"]
    if description:
        parts.append(f"<description><![CDATA[{description}]]></description>")
    if published is not None:
        parts.append(f"<pubDate>{format_datetime(published)}</pubDate>")
    if guid:
        parts.append(f'<guid isPermaLink="false">{guid}</guid>')
    if extra:
        parts.append(extra)
    return "<item>" + "".join(parts) + "</item>"


def rss_feed(items: Iterable[str], title: str = "Test feed") -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">'
        f"<channel><title>{title}</title><link>https://example.com/</link>"
        + "".join(items)
        + "</channel></rss>"
    )


def atom_feed(entries: Iterable[Mapping[str, str]]) -> str:
    body = []
    for entry in entries:
        body.append(
            "<entry>"
            f"<title>{entry['title']}</title>"
            f'<link rel="alternate" href="{entry["link"]}"/>'
            f"<id>{entry.get('id', entry['link'])}</id>"
            f"<updated>{entry.get('updated', '2026-05-16T10:00:00Z')}</updated>"
            f"<summary>{entry.get('summary', '')}</summary>"
            "</entry>"
        )
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<feed xmlns="http://www.w3.org/2005/Atom">'
        "<title>Atom test</title><id>urn:test</id><updated>2026-05-16T10:00:00Z</updated>"
        + "".join(body)
        + "</feed>"
    )
