"""Contracts for articles moving through one collection run."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TypedDict
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from futnews.config_schema import ARTICLE_CATEGORIES, SOURCE_TIERS


class RawArticle(TypedDict, total=False):
    """Normalizer output; lives only inside one run."""

    title: str
    description: str
    url: str
    guid: str
    raw_published_at: Any
    published_at: datetime
    source_id: str
    image_url: Optional[str]
    feed_tags: List[str]


class CanonicalArticlePayload(TypedDict, total=False):
    """Tagged, scored article dict handled by the deduplicator and storage."""

    title: str
    summary: str
    url: str
    guid: str
    source_id: str
    source_name: str
    source_tier: str
    trust_score: float
    category: str
    tags: List[str]
    team_ids: List[int]
    league_ids: List[int]
    player_ids: List[int]
    published_at: datetime
    image_url: Optional[str]
    is_breaking: bool
    is_featured: bool
    cluster_id: str
    duplicate_count: int
    duplicate_sources: List[str]


class CanonicalArticleModel(BaseModel):
    """Validates a representative before it reaches the persistence gateway."""

    url: str
    guid: str | None = None
    title: str = Field(min_length=1)
    summary: str = ""
    source_id: str = Field(min_length=1)
    source_name: str = Field(min_length=1)
    source_tier: str
    trust_score: float = Field(ge=0.0, le=100.0)
    category: str = "general"
    tags: List[str] = Field(default_factory=list)
    team_ids: List[int] = Field(default_factory=list)
    league_ids: List[int] = Field(default_factory=list)
    player_ids: List[int] = Field(default_factory=list)
    published_at: datetime
    image_url: str | None = None
    is_breaking: bool = False
    is_featured: bool = False
    cluster_id: str | None = None
    duplicate_count: int = Field(default=0, ge=0)
    duplicate_sources: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"url must be an absolute http(s) URL, got '{value}'")
        return value

    @field_validator("source_tier")
    @classmethod
    def check_tier(cls, value: str) -> str:
        if value not in SOURCE_TIERS:
            raise ValueError(f"source_tier must be one of {SOURCE_TIERS}, got '{value}'")
        return value

    @field_validator("category")
    @classmethod
    def check_category(cls, value: str) -> str:
        if value not in ARTICLE_CATEGORIES:
            raise ValueError(f"category must be one of {ARTICLE_CATEGORIES}, got '{value}'")
        return value

    @field_validator("published_at", mode="before")
    @classmethod
    def ensure_datetime(cls, value: Any) -> datetime:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        raise TypeError("published_at must be a datetime instance")

    @field_validator("tags", "team_ids", "league_ids", "player_ids", mode="before")
    @classmethod
    def dedupe_sorted(cls, value: Any) -> List[Any]:
        if value is None:
            return []
        return sorted(set(value))

    def model_dump_for_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="python")
