# src/collectors/__init__.py
"""Feed fetching and normalization."""

from .base_collector import BaseCollector, empty_source_stats
from .feed_fetcher import FeedFetcher, FeedFetchError, looks_like_feed
from .feed_normalizer import FeedParseError, normalize_feed

__all__ = [
    "BaseCollector",
    "FeedFetcher",
    "FeedFetchError",
    "FeedParseError",
    "empty_source_stats",
    "looks_like_feed",
    "normalize_feed",
]
