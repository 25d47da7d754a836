"""
Prometheus Metrics for Observability

Tracks HTTP traffic, backend latency, remote API calls and staged files.
Exposes /metrics endpoint for Prometheus scraping.
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

# Backend latency - per backend and outcome
removal_latency_seconds = Histogram(
    "removal_latency_seconds",
    "Time spent inside the background removal backend",
    labelnames=["backend", "status"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0]
)

removal_requests_total = Counter(
    "removal_requests_total",
    "Background removal requests by final outcome",
    labelnames=["backend", "outcome"]
)

# remove.bg API calls
remote_api_calls_total = Counter(
    "remote_api_calls_total",
    "Total number of remote background removal API calls",
    labelnames=["status", "http_status"]
)

# Staged files currently on disk
staged_files_active = Gauge(
    "staged_files_active",
    "Number of staged upload files currently on disk"
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
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Application Info
app_info = Info(
    "bgremoval_app",
    "Application information"
)


# =============================================================================
# Helper Functions
# =============================================================================

def set_app_info(version: str, environment: str, backend: str):
    """Set application info metric."""
    app_info.info({
        "version": version,
        "environment": environment,
        "backend": backend
    })


@contextmanager
def track_removal_latency(backend: str):
    """
    Context manager to track backend latency.

    Usage:
        with track_removal_latency("rembg"):
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
        removal_latency_seconds.labels(backend=backend, status=status).observe(duration)


def record_removal_outcome(backend: str, outcome: str):
    """Record how a removal request ended (success or error class name)."""
    removal_requests_total.labels(backend=backend, outcome=outcome).inc()


def record_remote_api_call(status: str, http_status: int = 200):
    """Record a remote API call."""
    remote_api_calls_total.labels(
        status=status,
        http_status=str(http_status)
    ).inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
