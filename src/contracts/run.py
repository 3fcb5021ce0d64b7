"""Contracts for per-source stats and run summaries."""

from __future__ import annotations

from typing import List, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field


class SourceFetchStats(TypedDict, total=False):
    source_id: str
    success: bool
    status_code: Optional[int]
    articles_found: int
    articles_saved: int
    error_message: Optional[str]
    processing_time: float


class RunSummary(BaseModel):
    """What a collection run returns to its trigger."""

    fetched: int = Field(default=0, ge=0)
    unique_after_dedup: int = Field(default=0, ge=0)
    saved: int = Field(default=0, ge=0)
    sources_succeeded: int = Field(default=0, ge=0)
    sources_failed: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid")


class CollectRequest(BaseModel):
    """Optional overrides for an on-demand run."""

    sources: Optional[List[str]] = None
    category: Optional[str] = None

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)
