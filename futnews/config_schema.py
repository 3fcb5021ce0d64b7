"""Declarative configuration schema for the football news pipeline."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveFloat,
    PositiveInt,
    PrivateAttr,
    field_validator,
    model_validator,
)

SOURCE_TIERS = ("official", "tier1", "tier2", "tier3")
ARTICLE_CATEGORIES = ("general", "transfer", "injury", "match", "analysis")


class SchemaError(ValueError):
    """Raised when the configuration schema definition is invalid."""


class StrictModel(BaseModel):
    """Base model enforcing strict validation rules."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
    )


class AppSettings(StrictModel):
    """Top-level runtime metadata."""

    environment: str = Field(
        default="development",
        description="Normalized deployment environment name.",
        examples=["production"],
    )
    debug: bool = Field(
        default=False,
        description="When true, enables verbose logging.",
    )
    timezone: str = Field(
        default="UTC",
        description="Timezone used for user-facing timestamps.",
        examples=["Europe/London"],
    )

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"development", "production", "staging", "test"}:
            raise ValueError(
                "environment must be one of: development, staging, production, test"
            )
        return normalized


class PathsConfig(StrictModel):
    """Filesystem layout settings."""

    data_dir: Path = Field(
        default=Path("data"),
        description="Root directory for persistent runtime artefacts.",
        examples=["/var/lib/futnews"],
    )
    logs_dir: Path = Field(
        default=Path("logs"),
        description="Directory where operational logs are written.",
        examples=["/var/log/futnews"],
    )

    @model_validator(mode="after")
    def _ensure_child_paths(self) -> "PathsConfig":
        base = self.data_dir if self.data_dir.is_absolute() else self.data_dir.resolve()
        object.__setattr__(self, "data_dir", base)
        if not self.logs_dir.is_absolute():
            object.__setattr__(self, "logs_dir", (base / self.logs_dir).resolve())
        return self


class DatabaseConfig(StrictModel):
    """Database connectivity parameters."""

    driver: str = Field(
        default="sqlite",
        description="Database backend driver to use.",
        examples=["postgresql"],
    )
    path: Optional[Path] = Field(
        default=Path("data/futnews.db"),
        description="Filesystem path for SQLite database files.",
    )
    host: Optional[str] = Field(
        default=None,
        description="Hostname for the SQL server when using a network backend.",
        examples=["db.internal"],
    )
    port: Optional[int] = Field(
        default=None,
        description="TCP port for the SQL server backend.",
        examples=[5432],
    )
    name: str = Field(default="futnews", description="Database name or schema.")
    user: Optional[str] = Field(
        default=None,
        description="Database username for authenticated connections.",
    )
    password: Optional[str] = Field(
        default=None,
        description="Database password; treated as secret.",
    )
    connect_timeout: PositiveInt = Field(
        default=10, description="Seconds to wait when establishing a connection."
    )
    pool_size: PositiveInt = Field(
        default=10, description="Number of persistent connections per worker."
    )
    max_overflow: PositiveInt = Field(
        default=5,
        description="How many extra connections can be opened temporarily.",
    )
    pool_timeout: PositiveInt = Field(
        default=30,
        description="Seconds to wait when the pool is exhausted before failing.",
    )
    pool_recycle: PositiveInt = Field(
        default=1_800,
        description="Seconds after which pooled connections are recycled.",
    )

    @model_validator(mode="after")
    def _validate_backend(self) -> "DatabaseConfig":
        driver = self.driver.lower()
        if driver not in {"sqlite", "postgresql"}:
            raise ValueError("driver must be either 'sqlite' or 'postgresql'")
        if driver == "sqlite":
            if not self.path:
                raise ValueError("SQLite configuration requires a file path")
        else:
            missing: list[str] = []
            for field_name in ("host", "port", "user"):
                if getattr(self, field_name) in (None, ""):
                    missing.append(field_name)
            if missing:
                raise ValueError(
                    "PostgreSQL configuration requires fields: " + ", ".join(missing)
                )
            if self.port is not None and self.port <= 0:
                raise ValueError("Database port must be a positive integer")
        return self


class CollectionConfig(StrictModel):
    """Feed fetching behaviour."""

    request_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Independent timeout applied to every source fetch.",
    )
    max_concurrent_requests: PositiveInt = Field(
        default=16,
        description="Upper bound on simultaneous feed requests.",
    )
    max_items_per_source: PositiveInt = Field(
        default=20,
        description="Cap on feed items taken from a single source per run.",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; NewsBot/1.0)",
        description="HTTP User-Agent header sent to feed providers.",
    )
    accept_header: str = Field(
        default="application/rss+xml, application/xml, text/xml, */*",
        description="HTTP Accept header sent to feed providers.",
    )
    sweep_before_collect: bool = Field(
        default=True,
        description="Run the retention sweeper at the start of each collection run.",
    )


class DedupConfig(StrictModel):
    """Near-duplicate clustering thresholds."""

    time_window_hours: PositiveFloat = Field(
        default=4.0,
        description="Articles further apart than this are never similar.",
    )
    title_similarity_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Title Jaccard at or above which two articles are similar.",
    )
    keyword_overlap_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Keyword overlap that must be exceeded on the fallback path.",
    )
    keyword_title_floor: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Title Jaccard that must be exceeded on the fallback path.",
    )
    min_keyword_length: PositiveInt = Field(
        default=3,
        description="Shortest token kept as a keyword.",
    )

    @model_validator(mode="after")
    def _check_order(self) -> "DedupConfig":
        if self.keyword_title_floor > self.title_similarity_threshold:
            raise ValueError(
                "keyword_title_floor must not exceed title_similarity_threshold"
            )
        return self


class TrustConfig(StrictModel):
    """Source trust table and language adjustments."""

    tier_base_scores: Dict[str, float] = Field(
        default_factory=lambda: {
            "official": 100.0,
            "tier1": 92.0,
            "tier2": 78.0,
            "tier3": 55.0,
        },
        description="Base trust per source tier.",
    )
    default_base_score: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        description="Base trust for sources without a known tier.",
    )
    official_bonus: float = Field(default=15.0, ge=0.0)
    breaking_bonus: float = Field(default=10.0, ge=0.0)
    speculative_penalty: float = Field(default=20.0, ge=0.0)
    recency_bonus_hour: float = Field(
        default=10.0, ge=0.0, description="Bonus for articles younger than one hour."
    )
    recency_bonus_day: float = Field(
        default=5.0, ge=0.0, description="Bonus for articles younger than one day."
    )

    @field_validator("tier_base_scores")
    @classmethod
    def _check_tiers(cls, value: Dict[str, float]) -> Dict[str, float]:
        missing = [tier for tier in SOURCE_TIERS if tier not in value]
        if missing:
            raise ValueError("tier_base_scores missing tiers: " + ", ".join(missing))
        for tier, score in value.items():
            if not 0.0 <= score <= 100.0:
                raise ValueError(f"trust for tier {tier!r} must be within [0, 100]")
        return value


class RelevanceConfig(StrictModel):
    """Per-viewer relevance weights."""

    trust_divisor: PositiveFloat = Field(
        default=10.0, description="Trust is divided by this before being added."
    )
    missing_trust: float = Field(default=50.0, ge=0.0, le=100.0)
    category_match: float = Field(default=20.0, ge=0.0)
    team_match: float = Field(default=30.0, ge=0.0)
    player_match: float = Field(default=25.0, ge=0.0)
    league_match: float = Field(default=15.0, ge=0.0)
    featured_bonus: float = Field(default=50.0, ge=0.0)
    breaking_bonus: float = Field(default=40.0, ge=0.0)
    recency_steps: Dict[str, float] = Field(
        default_factory=lambda: {"1": 30.0, "6": 20.0, "24": 10.0},
        description="Age ceiling in hours mapped to bonus; first matching step wins.",
    )
    popularity_tiers: Dict[str, float] = Field(
        default_factory=lambda: {"1000": 15.0, "500": 10.0, "100": 5.0},
        description="View count floor mapped to bonus; highest exceeded floor wins.",
    )

    @field_validator("recency_steps", "popularity_tiers")
    @classmethod
    def _check_numeric_keys(cls, value: Dict[str, float]) -> Dict[str, float]:
        for key in value:
            try:
                float(key)
            except ValueError as exc:
                raise ValueError(f"step key {key!r} must be numeric") from exc
        return value


class RankingConfig(StrictModel):
    """Serve-time ranking and pagination."""

    tie_threshold: float = Field(
        default=5.0,
        ge=0.0,
        description="Scores closer than this are ordered by recency instead.",
    )
    candidate_pool_size: PositiveInt = Field(
        default=200, description="Rows loaded before scoring and sorting."
    )
    default_limit: PositiveInt = Field(default=20)
    max_limit: PositiveInt = Field(default=50)
    view_tracking_top_n: int = Field(
        default=5,
        ge=0,
        description="Served articles recorded in a viewer's history per request.",
    )

    @model_validator(mode="after")
    def _check_limits(self) -> "RankingConfig":
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must not exceed max_limit")
        return self


class RetentionConfig(StrictModel):
    """Retention sweeper window."""

    retention_days: PositiveFloat = Field(
        default=6.0,
        description="Non-featured articles older than this are deleted.",
    )


class SchedulerConfig(StrictModel):
    """Background timers."""

    enabled: bool = Field(default=True)
    collection_interval_minutes: PositiveFloat = Field(default=30.0)
    retention_interval_minutes: PositiveFloat = Field(default=60.0)
    category_intervals: Dict[str, PositiveFloat] = Field(
        default_factory=dict,
        description="Optional extra per-category collection timers (minutes).",
        examples=[{"transfer": 10.0}],
    )

    @field_validator("category_intervals")
    @classmethod
    def _check_categories(cls, value: Dict[str, float]) -> Dict[str, float]:
        unknown = [key for key in value if key not in ARTICLE_CATEGORIES]
        if unknown:
            raise ValueError("unknown categories: " + ", ".join(sorted(unknown)))
        return value


class NewsConfig(StrictModel):
    """Presentation-layer settings."""

    default_language: str = Field(
        default="en",
        description="Language served when the request does not name one.",
        examples=["ko"],
    )

    @field_validator("default_language")
    @classmethod
    def _lower_language(cls, value: str) -> str:
        return value.lower()


class LoggingConfig(StrictModel):
    """Logging subsystem configuration."""

    level: str = Field(
        default="INFO",
        description="Minimum log level captured by the collector logger.",
        examples=["DEBUG"],
    )
    file_path: Path = Field(
        default=Path("data/logs/futnews.log"),
        description="Absolute path of the rotating log file.",
    )
    max_file_size_mb: PositiveInt = Field(
        default=10,
        description="Maximum size per log file before rotation (MiB).",
    )
    retention_days: PositiveInt = Field(
        default=30,
        description="Number of days to keep rotated log files.",
    )
    format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {name}:{line} | {message}",
        description="Log formatting template compatible with loguru.",
    )

    @field_validator("level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return normalized

    @model_validator(mode="after")
    def _resolve_path(self) -> "LoggingConfig":
        if not self.file_path.is_absolute():
            self.file_path = self.file_path.resolve()
        return self


class Config(StrictModel):
    """Complete pipeline configuration model."""

    app: AppSettings = Field(default_factory=AppSettings)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    dedup: DedupConfig = Field(default_factory=DedupConfig)
    trust: TrustConfig = Field(default_factory=TrustConfig)
    relevance: RelevanceConfig = Field(default_factory=RelevanceConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    news: NewsConfig = Field(default_factory=NewsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    _metadata: object = PrivateAttr(default=None)


DEFAULT_CONFIG = Config()


def iter_field_docs(
    model: BaseModel | type[BaseModel],
    prefix: str = "",
    *,
    include_defaults: bool = True,
) -> Iterable[dict[str, object]]:
    """Yield flattened schema documentation entries."""

    instance = DEFAULT_CONFIG if isinstance(model, type) else model
    target_model = type(instance) if not isinstance(model, type) else model

    for name, field in target_model.model_fields.items():
        value = getattr(instance, name, field.default)
        key = f"{prefix}{name}" if not prefix else f"{prefix}.{name}"
        is_nested = isinstance(value, BaseModel)
        entry: dict[str, object] = {
            "name": key,
            "type": getattr(field.annotation, "__name__", str(field.annotation)),
            "description": field.description or "",
            "default": None if (is_nested or not include_defaults) else value,
            "examples": field.examples or [],
            "constraints": _describe_constraints(field),
            "is_nested": is_nested,
        }
        yield entry
        if is_nested:
            yield from iter_field_docs(value, key)


def _describe_constraints(field: Any) -> str:
    """Return a human readable description of numeric bounds."""

    comparators = {"ge": ">=", "gt": ">", "le": "<=", "lt": "<"}
    parts: list[str] = []
    for item in getattr(field, "metadata", []):
        for attr, symbol in comparators.items():
            bound = getattr(item, attr, None)
            if bound is not None:
                parts.append(f"{symbol} {bound}")
    return ", ".join(parts)


__all__ = [
    "ARTICLE_CATEGORIES",
    "Config",
    "DEFAULT_CONFIG",
    "SOURCE_TIERS",
    "SchemaError",
    "iter_field_docs",
]
