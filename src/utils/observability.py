"""Pipeline metrics (prometheus_client) and stage tracing (OpenTelemetry)."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from loguru import logger
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.trace import Status, StatusCode
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from config.observability import OBSERVABILITY_CONFIG


class ObservabilityManager:
    """Owns a private metrics registry and a tracer for the collection pipeline."""

    def __init__(self) -> None:
        self._initialized = False
        self._tracer = None
        self.registry: Optional[CollectorRegistry] = None
        self.stage_latency: Optional[Histogram] = None
        self.run_duration: Optional[Histogram] = None
        self.ingest_sources: Optional[Counter] = None
        self.ingest_articles: Optional[Counter] = None
        self.dedup_articles: Optional[Counter] = None
        self.pipeline_errors: Optional[Counter] = None

    def initialize(
        self, service_name: Optional[str] = None, environment: Optional[str] = None
    ) -> None:
        if self._initialized:
            return

        service_name = service_name or OBSERVABILITY_CONFIG["service_name"]
        environment = environment or OBSERVABILITY_CONFIG.get("environment", "local")
        resource = Resource.create(
            {
                "service.name": service_name,
                "service.namespace": OBSERVABILITY_CONFIG.get("service_namespace", "news"),
                "service.environment": environment,
            }
        )
        tracer_provider = TracerProvider(resource=resource)
        if OBSERVABILITY_CONFIG["tracing"].get("exporter") == "console":
            tracer_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        # A provider of our own, so initialising twice in tests never fights
        # over the global one.
        self._tracer = tracer_provider.get_tracer(service_name)

        self.registry = CollectorRegistry()
        metrics_cfg = OBSERVABILITY_CONFIG["metrics"]
        self.stage_latency = Histogram(
            "futnews_pipeline_stage_latency_seconds",
            "Time spent per pipeline stage",
            labelnames=["stage"],
            buckets=metrics_cfg["stage_latency_buckets_seconds"],
            registry=self.registry,
        )
        self.run_duration = Histogram(
            "futnews_pipeline_run_duration_seconds",
            "Duration of complete collection runs",
            labelnames=["trigger"],
            buckets=metrics_cfg["run_duration_buckets_seconds"],
            registry=self.registry,
        )
        self.ingest_sources = Counter(
            "futnews_ingest_sources_total",
            "Sources fetched by outcome",
            labelnames=["source_id", "outcome"],
            registry=self.registry,
        )
        self.ingest_articles = Counter(
            "futnews_ingest_articles_total",
            "Articles found and saved per source",
            labelnames=["source_id", "status"],
            registry=self.registry,
        )
        self.dedup_articles = Counter(
            "futnews_dedup_articles_total",
            "Articles entering dedup by outcome (representative or duplicate)",
            labelnames=["outcome"],
            registry=self.registry,
        )
        self.pipeline_errors = Counter(
            "futnews_pipeline_errors_total",
            "Errors per stage and class",
            labelnames=["stage", "error_type"],
            registry=self.registry,
        )
        self._initialized = True
        self.log_event(
            stage="observability",
            event="initialized",
            service_name=service_name,
            environment=environment,
        )

    @property
    def tracer(self):
        if not self._tracer:
            raise RuntimeError("ObservabilityManager.initialize must run first")
        return self._tracer

    def log_event(self, stage: str, event: str, **fields: Any) -> None:
        payload = {"stage": stage, "event": event, **fields}
        logger.bind(**payload).debug(event)

    def record_ingestion_result(self, source_id: str, result: Dict[str, Any]) -> None:
        if not self._initialized:
            return
        outcome = "success" if result.get("success") else "error"
        self.ingest_sources.labels(source_id=source_id, outcome=outcome).inc()
        self.ingest_articles.labels(source_id=source_id, status="found").inc(
            result.get("articles_found", 0)
        )
        self.ingest_articles.labels(source_id=source_id, status="saved").inc(
            result.get("articles_saved", 0)
        )
        if not result.get("success"):
            self.record_error("fetch", "source_failure")

    def record_dedup_result(self, total: int, unique: int) -> None:
        if not self._initialized:
            return
        self.dedup_articles.labels(outcome="representative").inc(unique)
        self.dedup_articles.labels(outcome="duplicate").inc(max(0, total - unique))

    def record_run(self, trigger: str, duration_seconds: float) -> None:
        if not self._initialized:
            return
        self.run_duration.labels(trigger=trigger).observe(duration_seconds)

    def record_error(self, stage: str, error_type: str) -> None:
        if not self._initialized:
            return
        normalized = error_type.replace(" ", "_").lower()
        self.pipeline_errors.labels(stage=stage, error_type=normalized).inc()

    @contextmanager
    def instrument_stage(self, stage_name: str, **attributes: Any):
        """Span plus latency histogram around one pipeline stage; errors are re-raised."""
        if not self._initialized:
            raise RuntimeError("ObservabilityManager.initialize must run first")

        start_time = time.perf_counter()
        with self.tracer.start_as_current_span(stage_name, attributes=attributes) as span:
            try:
                yield span
            except Exception as exc:
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                self.record_error(stage_name, type(exc).__name__)
                raise
            finally:
                elapsed = time.perf_counter() - start_time
                self.stage_latency.labels(stage=stage_name).observe(elapsed)
                self.log_event(stage_name, "stage.end", duration_ms=int(elapsed * 1000))

    def export_metrics_snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.registry:
            return {}
        snapshot: Dict[str, List[Dict[str, Any]]] = {}
        for metric in self.registry.collect():
            snapshot[metric.name] = [
                {"name": sample.name, "labels": sample.labels, "value": sample.value}
                for sample in metric.samples
            ]
        return snapshot

    def export_prometheus(self) -> bytes:
        """Text exposition format for a ``/metrics`` endpoint."""
        if not self.registry:
            return b""
        return generate_latest(self.registry)


_observability_instance: Optional[ObservabilityManager] = None


def get_observability() -> ObservabilityManager:
    global _observability_instance
    if _observability_instance is None:
        _observability_instance = ObservabilityManager()
    return _observability_instance
