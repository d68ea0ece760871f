"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "bkw_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

ENRICHMENT_RUNS = Counter(
    "bkw_enrichment_runs_total",
    "Enrichment runs by outcome",
    labelnames=("outcome",),
    registry=REGISTRY,
)

ENRICHMENT_DURATION = Histogram(
    "bkw_enrichment_duration_seconds",
    "Wall-clock duration of one enrichment run",
    registry=REGISTRY,
)

ENRICHMENT_IN_FLIGHT = Gauge(
    "bkw_enrichment_in_flight",
    "Enrichment runs currently executing",
    registry=REGISTRY,
)

ML_RETRIES = Counter(
    "bkw_ml_retries_total",
    "Retried ML service calls",
    labelnames=("operation",),
    registry=REGISTRY,
)

ANALYSIS_DURATION = Histogram(
    "bkw_analysis_duration_seconds",
    "Word-frequency analysis duration",
    labelnames=("source",),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "ENRICHMENT_RUNS",
    "ENRICHMENT_DURATION",
    "ENRICHMENT_IN_FLIGHT",
    "ML_RETRIES",
    "ANALYSIS_DURATION",
    "metrics_response",
]
