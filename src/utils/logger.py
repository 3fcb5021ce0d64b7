# src/utils/logger.py
# Logging setup for the football news pipeline
# ============================================

"""
Central loguru configuration.

One console sink, a rotating main log and an error-only log. Components ask
for a bound child logger through ``get_logger().create_module_logger(name)``
and the pipeline uses the domain helpers below so run summaries look the same
whether they come from the scheduler, the CLI or the HTTP trigger.
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from config.settings import DEBUG, LOGGING_CONFIG


class PipelineLogger:
    """
    Process-wide logging configurator.

    ``configure_logging`` is idempotent; the first call wins unless
    ``force=True`` is passed (used by the CLI when ``--log-level`` is given).
    """

    def __init__(self):
        self.is_configured = False
        self.log_file_path: Optional[Path] = None
        self.error_log_path: Optional[Path] = None

    def configure_logging(self, config: Optional[Dict[str, Any]] = None, force: bool = False):
        if self.is_configured and not force:
            logger.debug("Logger already configured, skipping")
            return

        config = config or LOGGING_CONFIG

        logger.remove()
        self._configure_console_handler(config)
        if config.get("file_path"):
            self._configure_file_handlers(config)

        self.is_configured = True
        logger.debug(f"Logging configured: level={config.get('level', 'INFO')}")

    def _configure_console_handler(self, config: Dict[str, Any]):
        if DEBUG:
            console_format = (
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{extra[module]}</cyan> | "
                "<level>{message}</level>"
            )
            console_level = "DEBUG"
        else:
            console_format = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
            console_level = config.get("level", "INFO")

        logger.configure(extra={"module": "futnews"})
        logger.add(
            sys.stdout,
            format=console_format,
            level=console_level,
            colorize=True,
            backtrace=DEBUG,
            diagnose=DEBUG,
        )

    def _configure_file_handlers(self, config: Dict[str, Any]):
        self.log_file_path = Path(config["file_path"])
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        self.error_log_path = self.log_file_path.with_name(
            f"{self.log_file_path.stem}.errors{self.log_file_path.suffix}"
        )

        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{process.id: <6} | "
            "{extra[module]} | "
            "{name}:{function}:{line} | "
            "{message}"
        )

        logger.add(
            str(self.log_file_path),
            format=file_format,
            level=config.get("level", "INFO"),
            rotation=config.get("max_file_size", "10 MB"),
            retention=config.get("retention", "30 days"),
            compression="gz",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
        logger.add(
            str(self.error_log_path),
            format=file_format,
            level="ERROR",
            rotation=config.get("max_file_size", "10 MB"),
            retention=config.get("retention", "30 days"),
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

    def create_module_logger(self, module_name: str) -> Any:
        """Return a loguru logger bound to ``module_name``."""
        if not self.is_configured:
            self.configure_logging()
        return logger.bind(module=module_name)

    def log_system_startup(self, version: str, config_summary: Optional[Dict[str, Any]] = None):
        logger.info("=" * 60)
        logger.info(f"⚽ FOOTBALL NEWS PIPELINE v{version}")
        logger.info("=" * 60)
        for key, value in (config_summary or {}).items():
            logger.info(f"  {key}: {value}")
        if self.log_file_path:
            logger.info(f"Logs written to: {self.log_file_path}")

    def log_source_start(self, source_id: str, url: str):
        logger.debug(f"📡 {source_id}: fetching {url}")

    def log_source_result(self, stats: Dict[str, Any]):
        source_id = stats.get("source_id", "unknown")
        if stats.get("success"):
            logger.info(
                f"✅ {source_id}: {stats.get('articles_found', 0)} items "
                f"in {stats.get('processing_time', 0.0):.2f}s"
            )
        else:
            logger.warning(f"❌ {source_id}: {stats.get('error_message') or 'unknown error'}")

    def log_dedup_summary(self, total: int, clusters: int, largest: int):
        logger.info(
            f"🧩 Dedup: {total} articles -> {clusters} clusters (largest cluster {largest})"
        )

    def log_run_summary(self, summary: Dict[str, Any]):
        logger.info("📈 RUN SUMMARY:")
        for key in (
            "fetched",
            "unique_after_dedup",
            "saved",
            "sources_succeeded",
            "sources_failed",
            "duration_ms",
        ):
            logger.info(f"  • {key}: {summary.get(key, 0)}")

    def log_error_with_context(self, error: Exception, context: Optional[Dict[str, Any]] = None):
        logger.opt(exception=error).error(f"💥 ERROR: {error}")
        for key, value in (context or {}).items():
            logger.error(f"  {key}: {value}")


# Global instance
# ===============
_logger_instance = None


def get_logger() -> PipelineLogger:
    """Singleton accessor; configures logging on first use."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = PipelineLogger()
        _logger_instance.configure_logging()
    return _logger_instance


def setup_logging(config: Optional[Dict[str, Any]] = None) -> PipelineLogger:
    """Configure logging at process start, re-applying ``config`` when given."""
    logger_instance = get_logger()
    if config:
        logger_instance.configure_logging(config, force=True)
    return logger_instance
