"""
Prometheus Metrics for Observability

Tracks pipeline action latency, run outcomes and HTTP traffic.
Exposes /metrics endpoint for Prometheus scraping.
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

# Pipeline Latency - Per Action
pipeline_action_latency_seconds = Histogram(
    "pipeline_action_latency_seconds",
    "Time spent in each pipeline action",
    labelnames=["action", "status"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Pipeline Runs
pipeline_runs_total = Counter(
    "pipeline_runs_total",
    "Total number of pipeline runs",
    labelnames=["status", "failure_action"]
)

pipeline_actions_per_run = Histogram(
    "pipeline_actions_per_run",
    "Number of actions requested per pipeline run",
    buckets=[1, 2, 3, 4, 5]
)

# Persisted Images
images_saved_total = Counter(
    "images_saved_total",
    "Total number of images written to storage",
    labelnames=["extension", "origin"]
)

# API Request Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    labelnames=["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Application Info
app_info = Info(
    "photo_editor_app",
    "Application information"
)


# =============================================================================
# Helper Functions
# =============================================================================

def set_app_info(version: str, environment: str):
    """Set application info metric."""
    app_info.info({
        "version": version,
        "environment": environment
    })


@contextmanager
def track_action_latency(action: str):
    """
    Context manager to track pipeline action latency.

    Usage:
        with track_action_latency("crop"):
            # do work
    """
    start = time.time()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.time() - start
        pipeline_action_latency_seconds.labels(action=action, status=status).observe(duration)


def record_pipeline_run(status: str, failure_action: str = "none", action_count: int = 0):
    """Record the outcome of a pipeline run."""
    pipeline_runs_total.labels(status=status, failure_action=failure_action).inc()
    if action_count:
        pipeline_actions_per_run.observe(action_count)


def record_image_saved(extension: str, origin: str):
    """Record an image written to storage."""
    images_saved_total.labels(extension=extension, origin=origin).inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
