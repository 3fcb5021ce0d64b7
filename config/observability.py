"""Observability settings: service identity, tracing exporter and metric buckets."""

from __future__ import annotations

from typing import Any, Dict

OBSERVABILITY_CONFIG: Dict[str, Any] = {
    "service_name": "futnews-pipeline",
    "service_namespace": "football-news",
    "environment": "local",
    "tracing": {
        # "console" prints finished spans; "none" keeps spans in-process only
        "exporter": "none",
    },
    "metrics": {
        "stage_latency_buckets_seconds": [0.05, 0.1, 0.5, 1, 2, 5, 10, 30, 60],
        "run_duration_buckets_seconds": [1, 2, 5, 10, 20, 30, 60, 120],
    },
}
