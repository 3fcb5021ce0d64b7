# src/storage/models.py
# Data models for the football news pipeline
# ==========================================

"""
SQLAlchemy models owned by the storage collaborator.

- Article: one row per unique URL, the cluster representative of a run
- Source: registry state and fetch statistics per feed
- ArticleView: per-viewer view history, unique per (article, viewer)
- ViewerPreference: stored preferences used when a request names a viewer
- CollectionLog: one row per collection run with its summary counters
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class Article(Base):
    """Canonical, deduplicated article."""

    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Global identity; re-collection never inserts a second row for a URL
    url = Column(String(1000), unique=True, nullable=False, index=True)
    guid = Column(String(1000), index=True)

    title = Column(String(500), nullable=False)
    summary = Column(Text)
    image_url = Column(String(1000))

    source_id = Column(String(50), nullable=False, index=True)
    source_name = Column(String(100), nullable=False)
    source_tier = Column(String(10), nullable=False)
    trust_score = Column(Float, nullable=False, default=50.0)

    category = Column(String(20), nullable=False, default="general", index=True)
    tags = Column(JSON, default=list)
    team_ids = Column(JSON, default=list)
    league_ids = Column(JSON, default=list)
    player_ids = Column(JSON, default=list)

    # Never later than the collection time
    published_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Clustering
    cluster_id = Column(String(36))
    duplicate_count = Column(Integer, default=0, nullable=False)
    duplicate_sources = Column(JSON, default=list)

    view_count = Column(Integer, default=0, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    is_breaking = Column(Boolean, default=False, nullable=False)

    # {lang: {"title": ..., "summary": ...}} written by the translation collaborator
    translations = Column(JSON, default=dict)

    views = relationship("ArticleView", back_populates="article", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_articles_category_published", "category", "published_at"),
        Index("idx_articles_retention", "is_featured", "published_at"),
    )

    def __repr__(self):
        return f"<Article(id={self.id}, title='{self.title[:50]}...', source='{self.source_id}')>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary or "",
            "url": self.url,
            "guid": self.guid,
            "image_url": self.image_url,
            "source_id": self.source_id,
            "source_name": self.source_name,
            "source_tier": self.source_tier,
            "trust_score": self.trust_score,
            "category": self.category,
            "tags": list(self.tags or []),
            "team_ids": list(self.team_ids or []),
            "league_ids": list(self.league_ids or []),
            "player_ids": list(self.player_ids or []),
            "published_at": self.published_at,
            "created_at": self.created_at,
            "cluster_id": self.cluster_id,
            "duplicate_count": self.duplicate_count or 0,
            "duplicate_sources": list(self.duplicate_sources or []),
            "view_count": self.view_count or 0,
            "is_featured": bool(self.is_featured),
            "is_breaking": bool(self.is_breaking),
            "translations": dict(self.translations or {}),
        }


class Source(Base):
    """Registry entry plus fetch statistics."""

    __tablename__ = "sources"

    id = Column(String(50), primary_key=True)  # same id as config/sources.py
    name = Column(String(100), nullable=False)
    url = Column(String(500), nullable=False)
    tier = Column(String(10), nullable=False)
    base_trust_score = Column(Float, nullable=False)
    focus = Column(String(20), default="general")
    is_active = Column(Boolean, default=True)

    last_fetched_at = Column(DateTime(timezone=True))
    last_successful_fetch = Column(DateTime(timezone=True))
    total_fetches = Column(Integer, default=0)
    failed_fetches = Column(Integer, default=0)
    consecutive_failures = Column(Integer, default=0)
    total_articles_found = Column(Integer, default=0)
    error_message = Column(Text)

    def __repr__(self):
        return f"<Source(id='{self.id}', tier='{self.tier}', active={self.is_active})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "tier": self.tier,
            "base_trust_score": self.base_trust_score,
            "focus": self.focus,
            "active": bool(self.is_active),
            "last_fetched_at": _iso(self.last_fetched_at),
            "consecutive_failures": self.consecutive_failures or 0,
            "error_message": self.error_message,
        }


class ArticleView(Base):
    """One row per (article, viewer); re-serving the same article is a no-op."""

    __tablename__ = "article_views"

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_id = Column(
        Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    viewer_id = Column(String(100), nullable=False, index=True)
    viewed_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    article = relationship("Article", back_populates="views")

    __table_args__ = (UniqueConstraint("article_id", "viewer_id", name="uq_article_viewer"),)


class ViewerPreference(Base):
    __tablename__ = "viewer_preferences"

    viewer_id = Column(String(100), primary_key=True)
    preferred_team_ids = Column(JSON, default=list)
    preferred_player_ids = Column(JSON, default=list)
    preferred_league_ids = Column(JSON, default=list)
    preferred_categories = Column(JSON, default=list)
    blocked_sources = Column(JSON, default=list)
    language = Column(String(10))
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "viewer_id": self.viewer_id,
            "preferred_team_ids": list(self.preferred_team_ids or []),
            "preferred_player_ids": list(self.preferred_player_ids or []),
            "preferred_league_ids": list(self.preferred_league_ids or []),
            "preferred_categories": list(self.preferred_categories or []),
            "blocked_sources": list(self.blocked_sources or []),
            "language": self.language,
        }


class CollectionLog(Base):
    """Summary of one collection run."""

    __tablename__ = "collection_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trigger = Column(String(20), nullable=False, default="manual")
    started_at = Column(DateTime(timezone=True), nullable=False)
    fetched = Column(Integer, default=0)
    unique_after_dedup = Column(Integer, default=0)
    saved = Column(Integer, default=0)
    sources_succeeded = Column(Integer, default=0)
    sources_failed = Column(Integer, default=0)
    deleted_expired = Column(Integer, default=0)
    duration_ms = Column(Integer, default=0)
    errors = Column(JSON, default=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "trigger": self.trigger,
            "started_at": _iso(self.started_at),
            "fetched": self.fetched,
            "unique_after_dedup": self.unique_after_dedup,
            "saved": self.saved,
            "sources_succeeded": self.sources_succeeded,
            "sources_failed": self.sources_failed,
            "deleted_expired": self.deleted_expired,
            "duration_ms": self.duration_ms,
            "errors": list(self.errors or []),
        }


def create_all_tables(engine):
    Base.metadata.create_all(engine)

