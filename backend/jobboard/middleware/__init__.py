"""
Middleware Package

Contains FastAPI middleware for:
- Prometheus metrics collection
- Request ID propagation into log records
"""

from jobboard.middleware.metrics import (
    PrometheusMiddleware,
    setup_metrics,
    REQUEST_LATENCY,
    REQUEST_COUNT,
    ACTIVE_REQUESTS,
    APPLICATION_SUBMISSIONS,
    CV_UPLOAD_LATENCY,
)
from jobboard.middleware.logging import RequestIDMiddleware, init_logging

__all__ = [
    "PrometheusMiddleware",
    "setup_metrics",
    "REQUEST_LATENCY",
    "REQUEST_COUNT",
    "ACTIVE_REQUESTS",
    "APPLICATION_SUBMISSIONS",
    "CV_UPLOAD_LATENCY",
    "RequestIDMiddleware",
    "init_logging",
]
