# src/collectors/feed_normalizer.py
"""RSS/Atom body -> list of RawArticle dicts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import feedparser

from src.contracts import RawArticle
from src.utils.datetime_utils import clamp_published_at, utc_now
from src.utils.text_cleaner import first_image_src

DEFAULT_MAX_ITEMS = 20


class FeedParseError(ValueError):
    """The body could not be read as a feed at all."""


def _is_acceptable_bozo(parsed: Any) -> bool:
    # feedparser flags recoverable problems (wrong declared encoding, loose
    # markup) as bozo but still returns entries; those feeds are usable.
    return bool(parsed.get("entries"))


def _entry_link(entry: Dict[str, Any]) -> str:
    link = (entry.get("link") or "").strip()
    if link:
        return link
    for candidate in entry.get("links") or []:
        href = (candidate.get("href") or "").strip()
        if href and candidate.get("rel", "alternate") == "alternate":
            return href
    return ""


def _entry_description(entry: Dict[str, Any]) -> str:
    summary = entry.get("summary") or entry.get("description") or ""
    if summary:
        return summary
    contents = entry.get("content") or []
    if contents:
        return contents[0].get("value") or ""
    return ""


def _entry_published(entry: Dict[str, Any]) -> Any:
    for key in ("published_parsed", "updated_parsed"):
        if entry.get(key):
            return entry[key]
    return entry.get("published") or entry.get("updated") or entry.get("pubDate")


def _entry_image(entry: Dict[str, Any], description: str) -> Optional[str]:
    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or []:
            url = media.get("url")
            if url and (key == "media_thumbnail" or media.get("medium", "image") == "image"):
                return url
    for enclosure in entry.get("enclosures") or []:
        if (enclosure.get("type") or "").startswith("image/") and enclosure.get("href"):
            return enclosure["href"]
    return first_image_src(description)


def _is_absolute_http(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def normalize_feed(
    body: str,
    source_id: str,
    max_items: int = DEFAULT_MAX_ITEMS,
    now: Optional[datetime] = None,
) -> List[RawArticle]:
    """
    Extract canonical fields from an RSS ``item`` or Atom ``entry`` list.

    Items without a title or an absolute link are skipped. Publication
    times in the future, missing or unparseable become ``now``.

    Raises:
        FeedParseError: the body is not a feed feedparser can recover.
    """
    parsed = feedparser.parse(body)
    if parsed.bozo and not _is_acceptable_bozo(parsed):
        raise FeedParseError(f"Malformed feed: {parsed.get('bozo_exception')}")

    now = now or utc_now()
    articles: List[RawArticle] = []
    for entry in parsed.entries[:max_items]:
        title = (entry.get("title") or "").strip()
        link = _entry_link(entry)
        if not title or not link or not _is_absolute_http(link):
            continue

        description = _entry_description(entry)
        raw_published = _entry_published(entry)
        published_at, _ = clamp_published_at(raw_published, now)
        articles.append(
            {
                "title": title,
                "description": description,
                "url": link,
                "guid": (entry.get("id") or "").strip() or link,
                "raw_published_at": raw_published,
                "published_at": published_at,
                "source_id": source_id,
                "image_url": _entry_image(entry, description),
                "feed_tags": [tag.get("term") for tag in entry.get("tags") or [] if tag.get("term")],
            }
        )
    return articles
