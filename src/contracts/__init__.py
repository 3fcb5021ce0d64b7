"""Shared contracts for validated pipeline payloads."""

from .article import CanonicalArticleModel, CanonicalArticlePayload, RawArticle
from .ranking import (
    ArticleFilters,
    ArticleListResult,
    Pagination,
    RankedArticle,
    ViewerPreferences,
    empty_result,
)
from .run import CollectRequest, RunSummary, SourceFetchStats

__all__ = [
    "ArticleFilters",
    "ArticleListResult",
    "CanonicalArticleModel",
    "CanonicalArticlePayload",
    "CollectRequest",
    "Pagination",
    "RankedArticle",
    "RawArticle",
    "RunSummary",
    "SourceFetchStats",
    "ViewerPreferences",
    "empty_result",
]
