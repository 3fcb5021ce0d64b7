"""Project configuration facade backed by futnews.config_manager."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from futnews.config_manager import Config, ConfigError, load_config

CONFIG: Config = load_config()

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = CONFIG.paths.data_dir
LOGS_DIR = CONFIG.paths.logs_dir

for directory in (DATA_DIR, LOGS_DIR):
    directory.mkdir(parents=True, exist_ok=True)

ENVIRONMENT = CONFIG.app.environment
DEBUG = CONFIG.app.debug
IS_PRODUCTION = ENVIRONMENT == "production"
IS_STAGING = ENVIRONMENT == "staging"

DATABASE_CONFIG: Dict[str, Any] = CONFIG.database.model_dump(mode="python")
DATABASE_CONFIG["type"] = DATABASE_CONFIG.pop("driver")

COLLECTION_CONFIG: Dict[str, Any] = CONFIG.collection.model_dump(mode="python")
DEDUP_CONFIG: Dict[str, Any] = CONFIG.dedup.model_dump(mode="python")
TRUST_CONFIG: Dict[str, Any] = CONFIG.trust.model_dump(mode="python")
RANKING_CONFIG: Dict[str, Any] = CONFIG.ranking.model_dump(mode="python")
RETENTION_CONFIG: Dict[str, Any] = CONFIG.retention.model_dump(mode="python")
SCHEDULER_CONFIG: Dict[str, Any] = CONFIG.scheduler.model_dump(mode="python")
NEWS_CONFIG: Dict[str, Any] = CONFIG.news.model_dump(mode="python")


def _step_table(steps: Dict[str, float]) -> list[tuple[float, float]]:
    return sorted((float(key), float(value)) for key, value in steps.items())


RELEVANCE_CONFIG: Dict[str, Any] = CONFIG.relevance.model_dump(mode="python")
# Ascending age ceilings: the first ceiling above the article age applies.
RELEVANCE_CONFIG["recency_steps"] = _step_table(RELEVANCE_CONFIG["recency_steps"])
# Descending view floors: the first floor exceeded applies.
RELEVANCE_CONFIG["popularity_tiers"] = list(
    reversed(_step_table(RELEVANCE_CONFIG["popularity_tiers"]))
)

LOGGING_CONFIG: Dict[str, Any] = {
    "level": CONFIG.logging.level,
    "file_path": str(CONFIG.logging.file_path),
    "max_file_size": f"{CONFIG.logging.max_file_size_mb} MB",
    "retention": f"{CONFIG.logging.retention_days} days",
    "format": CONFIG.logging.format,
}


def validate_config(config: Config | None = None) -> None:
    """Execute cross-section consistency checks the schema cannot express."""

    cfg = config or CONFIG
    if cfg.database.driver == "postgresql" and not cfg.database.password:
        raise ConfigError("postgresql configuration missing: password")
    if cfg.ranking.candidate_pool_size < cfg.ranking.max_limit:
        raise ConfigError("ranking.candidate_pool_size must be >= ranking.max_limit")
    if cfg.trust.tier_base_scores["official"] < cfg.trust.tier_base_scores["tier3"]:
        raise ConfigError("trust.tier_base_scores must rank official above tier3")
    if cfg.scheduler.enabled and (
        cfg.scheduler.collection_interval_minutes * 60
        < cfg.collection.request_timeout_seconds
    ):
        raise ConfigError(
            "scheduler.collection_interval_minutes is shorter than one fetch timeout"
        )


__all__ = [
    "BASE_DIR",
    "CONFIG",
    "DATA_DIR",
    "LOGS_DIR",
    "ENVIRONMENT",
    "DEBUG",
    "IS_PRODUCTION",
    "IS_STAGING",
    "DATABASE_CONFIG",
    "COLLECTION_CONFIG",
    "DEDUP_CONFIG",
    "TRUST_CONFIG",
    "RELEVANCE_CONFIG",
    "RANKING_CONFIG",
    "RETENTION_CONFIG",
    "SCHEDULER_CONFIG",
    "NEWS_CONFIG",
    "LOGGING_CONFIG",
    "validate_config",
]
