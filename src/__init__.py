"""
Main package of the football news pipeline.

Holds the functional modules: collectors, tagging, scoring, dedup,
storage, ranking, scheduling and the HTTP surface.
"""

from config.version import PROJECT_VERSION, PYTHON_REQUIRES_SPECIFIER

from .collectors import FeedFetcher, normalize_feed
from .contracts import ArticleFilters, RunSummary, ViewerPreferences
from .dedup import deduplicate
from .processing import tag_article
from .ranking import PersonalizedRanker, rank_articles
from .scheduler import CollectionScheduler
from .scoring import RelevanceScorer, TrustScorer
from .storage import DatabaseManager, RetentionSweeper, get_database_manager
from .utils import get_logger, setup_logging

__version__ = PROJECT_VERSION
__description__ = "Football news ingestion, deduplication and personalized ranking"

__package_info__ = {
    "name": "futnews",
    "version": __version__,
    "description": __description__,
    "python_requires": PYTHON_REQUIRES_SPECIFIER,
}

__all__ = [
    "ArticleFilters",
    "CollectionScheduler",
    "DatabaseManager",
    "FeedFetcher",
    "PersonalizedRanker",
    "RelevanceScorer",
    "RetentionSweeper",
    "RunSummary",
    "TrustScorer",
    "ViewerPreferences",
    "deduplicate",
    "get_database_manager",
    "get_logger",
    "normalize_feed",
    "rank_articles",
    "setup_logging",
    "tag_article",
]
