"""
Prometheus metrics for player persistence.

Every collector is registered on a private ``REGISTRY`` so tests and embedding
processes never clash with the default global registry. Metric names carry the
``world_`` prefix.
"""

import functools
import time
from typing import Callable, Dict, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from worldserver.src.core.logging_config import get_logger

logger = get_logger(__name__)

REGISTRY = CollectorRegistry()

# Pipeline durations are dominated by database round trips
PIPELINE_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)


def _counter(name: str, documentation: str, *labels: str) -> Counter:
    return Counter(f"world_{name}", documentation, list(labels), registry=REGISTRY)


def _pipeline_histogram(name: str, documentation: str) -> Histogram:
    return Histogram(
        f"world_{name}", documentation, buckets=PIPELINE_BUCKETS, registry=REGISTRY
    )


build_info = Info("world_server", "Persistence layer build information", registry=REGISTRY)

# Authentication gate
auth_attempts_total = _counter("auth_attempts_total", "Game world logins by outcome", "status")
auth_failures_total = _counter("auth_failures_total", "Denied game world logins", "reason")

# Presence
players_online = Gauge("world_players_online", "Players currently online", registry=REGISTRY)

# Load and save pipelines
player_loads_total = _counter("player_loads_total", "Load pipeline runs", "depth", "status")
player_saves_total = _counter("player_saves_total", "Save pipeline runs", "status")
facet_failures_total = _counter(
    "facet_failures_total", "Facets that aborted a pipeline", "pipeline", "facet"
)
player_load_duration_seconds = _pipeline_histogram(
    "player_load_duration_seconds", "Time spent in the load pipeline"
)
player_save_duration_seconds = _pipeline_histogram(
    "player_save_duration_seconds", "Time spent in the save pipeline"
)

# Store errors caught by a service
errors_total = _counter("errors_total", "Errors caught by a service", "component", "error_type")


def init_metrics(environment: str = "development") -> None:
    build_info.info(
        {"version": "0.1.0", "service": "world-persistence", "environment": environment}
    )
    logger.info("Prometheus metrics initialized", extra={"environment": environment})


def get_metrics() -> bytes:
    """Render ``REGISTRY`` in the Prometheus text exposition format."""
    return generate_latest(REGISTRY)


def track_time(metric: Histogram, labels: Optional[Dict[str, str]] = None) -> Callable:
    """
    Decorator observing how long the wrapped call took, even when it raises.
    """
    target = metric.labels(**labels) if labels else metric

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                target.observe(time.perf_counter() - started)

        return wrapper

    return decorator


class MetricsHelper:
    """Increment helpers used by the services."""

    @staticmethod
    def track_auth_attempt(status: str):
        auth_attempts_total.labels(status=status).inc()

    @staticmethod
    def track_auth_failure(reason: str):
        auth_failures_total.labels(reason=reason).inc()

    @staticmethod
    def track_player_load(depth: str, status: str):
        player_loads_total.labels(depth=depth, status=status).inc()

    @staticmethod
    def track_player_save(status: str):
        player_saves_total.labels(status=status).inc()

    @staticmethod
    def track_facet_failure(pipeline: str, facet: str):
        """Count the facet whose failure stopped a load or save."""
        facet_failures_total.labels(pipeline=pipeline, facet=facet).inc()

    @staticmethod
    def track_error(component: str, error_type: str):
        errors_total.labels(component=component, error_type=error_type).inc()
