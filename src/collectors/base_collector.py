# src/collectors/base_collector.py
# Shared plumbing for feed collectors
# ===================================

"""
Structured logging and per-run statistics shared by every collector.

Every log line a collector emits is a dict with an ``event`` name and the
correlation ids of the run (``trace_id``, ``session_id``), so one run can be
followed across the fetcher, the pipeline and the storage logs.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from src.utils.logger import get_logger

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from src.utils.logger import PipelineLogger


def empty_source_stats(source_id: str) -> Dict[str, Any]:
    return {
        "source_id": source_id,
        "success": False,
        "status_code": None,
        "articles_found": 0,
        "articles_saved": 0,
        "error_message": None,
        "processing_time": 0.0,
    }


class BaseCollector:
    """Logging context and counters; subclasses implement the fetching."""

    def __init__(self, logger_factory: Optional["PipelineLogger"] = None) -> None:
        self.collector_type = self.__class__.__name__
        self.start_time: Optional[datetime] = None
        self.logger_factory: "PipelineLogger" = logger_factory or get_logger()
        self.module_logger = self.logger_factory.create_module_logger(
            f"collectors.{self.collector_type.lower()}"
        )
        self._active_trace_id: Optional[str] = None
        self._active_session_id: Optional[str] = None
        self._reset_stats()

    def _set_runtime_context(self, *, session_id: Optional[str], trace_id: Optional[str]) -> None:
        self._active_session_id = session_id
        self._active_trace_id = trace_id

    def _reset_runtime_context(self) -> None:
        self._active_session_id = None
        self._active_trace_id = None

    def _build_log_payload(
        self,
        event: str,
        *,
        source_id: Optional[str] = None,
        latency: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "event": event,
            "trace_id": self._active_trace_id,
            "session_id": self._active_session_id,
            "source_id": source_id,
            "collector_type": self.collector_type,
            "latency": latency,
        }
        if details:
            payload["details"] = details
        return {key: value for key, value in payload.items() if value is not None}

    def _emit_log(
        self,
        level: str,
        event: str,
        *,
        source_id: Optional[str] = None,
        latency: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload = self._build_log_payload(
            event, source_id=source_id, latency=latency, details=details
        )
        getattr(self.module_logger, level)(payload)

    def _reset_stats(self) -> None:
        self.stats = {
            "total_sources_processed": 0,
            "sources_succeeded": 0,
            "sources_failed": 0,
            "total_articles_found": 0,
            "processing_time_seconds": 0.0,
        }

    def _update_global_stats(self, source_result: Dict[str, Any]) -> None:
        self.stats["total_sources_processed"] += 1
        self.stats["total_articles_found"] += source_result.get("articles_found", 0)
        if source_result.get("success"):
            self.stats["sources_succeeded"] += 1
        else:
            self.stats["sources_failed"] += 1

    def get_stats(self) -> Dict[str, Any]:
        return dict(self.stats)
