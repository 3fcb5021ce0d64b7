"""Contracts for the read path: filters, viewer preferences, pagination."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from futnews.config_schema import ARTICLE_CATEGORIES
from src.utils.datetime_utils import parse_feed_datetime

ALL_CATEGORIES = "all"


def _split_ids(value: Any) -> Any:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class ViewerPreferences(BaseModel):
    """What a viewer follows; supplied by the account collaborator."""

    viewer_id: Optional[str] = None
    preferred_team_ids: List[int] = Field(default_factory=list)
    preferred_player_ids: List[int] = Field(default_factory=list)
    preferred_league_ids: List[int] = Field(default_factory=list)
    preferred_categories: List[str] = Field(default_factory=list)
    blocked_sources: List[str] = Field(default_factory=list)
    language: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "preferred_team_ids",
        "preferred_player_ids",
        "preferred_league_ids",
        "preferred_categories",
        "blocked_sources",
        mode="before",
    )
    @classmethod
    def split_csv(cls, value: Any) -> Any:
        return _split_ids(value)

    @field_validator("language")
    @classmethod
    def lower_language(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else None


class ArticleFilters(BaseModel):
    """Hard filters applied before scoring. Invalid values raise."""

    category: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    search: Optional[str] = Field(default=None, max_length=200)
    team_ids: List[int] = Field(default_factory=list)
    excluded_sources: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "" or value.lower() == ALL_CATEGORIES:
            return None
        normalized = value.lower()
        if normalized not in ARTICLE_CATEGORIES:
            raise ValueError(f"unknown category '{value}'")
        return normalized

    @field_validator("from_date", "to_date", mode="before")
    @classmethod
    def parse_dates(cls, value: Any) -> Optional[datetime]:
        if value is None or value == "":
            return None
        parsed = parse_feed_datetime(value)
        if parsed is None:
            raise ValueError(f"invalid date '{value}'")
        return parsed

    @field_validator("search")
    @classmethod
    def blank_search(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator("team_ids", "excluded_sources", mode="before")
    @classmethod
    def split_csv(cls, value: Any) -> Any:
        return _split_ids(value)

    @model_validator(mode="after")
    def check_range(self) -> "ArticleFilters":
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError("from_date must be earlier than to_date")
        return self


class Pagination(BaseModel):
    limit: int = Field(default=20, ge=1)
    offset: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid")


class RankedArticle(TypedDict, total=False):
    id: int
    title: str
    summary: str
    url: str
    source_name: str
    source_tier: str
    trust_score: float
    category: str
    published_at: datetime
    relevance_score: float
    is_translated: bool
    original_title: str
    original_summary: str


class ArticleListResult(TypedDict):
    articles: List[Dict[str, Any]]
    total: int
    has_more: bool


def empty_result() -> ArticleListResult:
    return {"articles": [], "total": 0, "has_more": False}
