# src/processing/tagger.py
# Cleaning, categorisation and entity tagging
# ===========================================

"""
Pure text -> tag functions over the tables in ``config.keywords``.

Nothing here keeps state or performs I/O, so every function can be called on
any string and tested in isolation. ``tag_article`` is the one the pipeline
uses; the smaller functions are public for reuse by the scorer and tests.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Dict, Iterable, List, Mapping, Sequence, Set

from config.keywords import (
    BREAKING_TITLE_TERMS,
    CATEGORY_KEYWORDS,
    CATEGORY_PRECEDENCE,
    DEFAULT_CATEGORY,
    LEAGUE_ALIASES,
    LEAGUE_TAGS,
    PLAYER_ALIASES,
    TAG_KEYWORDS,
    TEAM_ALIASES,
)
from src.utils.text_cleaner import clean_feed_text


@lru_cache(maxsize=1024)
def _phrase_pattern(phrase: str) -> re.Pattern:
    # Word boundaries that also work for phrases starting/ending in non-word chars.
    return re.compile(r"(?<![\w])" + re.escape(phrase) + r"(?![\w])")


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """True when ``text`` (already lower-cased) contains any phrase as whole words."""
    return any(_phrase_pattern(phrase).search(text) for phrase in phrases)


def clean_text(raw: str) -> str:
    return clean_feed_text(raw)


def classify_category(
    text: str,
    keywords: Mapping[str, Sequence[str]] = CATEGORY_KEYWORDS,
    precedence: Sequence[str] = CATEGORY_PRECEDENCE,
) -> str:
    """First category in ``precedence`` whose keywords occur; else general."""
    lowered = text.lower()
    for category in precedence:
        if contains_any(lowered, keywords.get(category, ())):
            return category
    return DEFAULT_CATEGORY


def extract_entity_ids(text: str, aliases: Mapping[int, Sequence[str]]) -> Set[int]:
    """Every id with at least one alias present. Overlapping aliases all count."""
    lowered = text.lower()
    return {entity_id for entity_id, names in aliases.items() if contains_any(lowered, names)}


def extract_tags(text: str) -> Set[str]:
    lowered = text.lower()
    tags = {
        LEAGUE_TAGS[league_id]
        for league_id in extract_entity_ids(lowered, LEAGUE_ALIASES)
        if league_id in LEAGUE_TAGS
    }
    tags.update(tag for tag, words in TAG_KEYWORDS.items() if contains_any(lowered, words))
    return tags


def is_breaking_title(title: str) -> bool:
    return contains_any(title.lower(), BREAKING_TITLE_TERMS)


def tag_text(title: str, summary: str = "") -> Dict[str, object]:
    """Category, tags and entity ids for an already cleaned title and summary."""
    text = f"{title} {summary}".strip()
    return {
        "category": classify_category(text),
        "tags": sorted(extract_tags(text)),
        "team_ids": sorted(extract_entity_ids(text, TEAM_ALIASES)),
        "league_ids": sorted(extract_entity_ids(text, LEAGUE_ALIASES)),
        "player_ids": sorted(extract_entity_ids(text, PLAYER_ALIASES)),
        "is_breaking": is_breaking_title(title),
    }


def tag_article(raw: Mapping[str, object]) -> Dict[str, object]:
    """
    Clean a normalizer record and attach its tags.

    Source-provided feed tags are kept alongside the detected ones.
    """
    title = clean_text(str(raw.get("title") or ""))
    summary = clean_text(str(raw.get("description") or ""))
    tagged = tag_text(title, summary)
    feed_tags: List[str] = [
        clean_text(str(tag)) for tag in raw.get("feed_tags") or () if str(tag).strip()
    ]
    tagged["tags"] = sorted(set(tagged["tags"]) | set(feed_tags))
    tagged.update(
        {
            "title": title,
            "summary": summary,
            "url": raw.get("url"),
            "guid": raw.get("guid") or raw.get("url"),
            "source_id": raw.get("source_id"),
            "published_at": raw.get("published_at"),
            "image_url": raw.get("image_url"),
        }
    )
    return tagged
