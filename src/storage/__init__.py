"""
Storage package: persistence gateway, ORM models and retention.
"""

from .database import DatabaseManager, get_database_manager
from .models import (
    Article,
    ArticleView,
    Base,
    CollectionLog,
    Source,
    ViewerPreference,
    create_all_tables,
)
from .retention import RetentionSweeper

__all__ = [
    "get_database_manager",
    "DatabaseManager",
    "Base",
    "Article",
    "ArticleView",
    "CollectionLog",
    "Source",
    "ViewerPreference",
    "RetentionSweeper",
    "create_all_tables",
]
