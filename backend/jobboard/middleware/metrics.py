"""
Prometheus Metrics

Exposes, under GET /metrics:
- jobboard_http_request_duration_seconds  latency by route template and status
- jobboard_http_requests_total            request count by route template and status
- jobboard_http_requests_in_flight        requests currently being served
- jobboard_application_submissions_total  /apply attempts by outcome
- jobboard_cv_upload_seconds              time spent storing a CV

Requests that match no route are labelled "unmatched" so that probing
random URLs cannot create new time series.

Usage:
    from jobboard.middleware.metrics import setup_metrics

    setup_metrics(app)
"""

import time
import logging
from typing import Callable, Iterable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CONTENT_TYPE_LATEST,
    generate_latest,
    REGISTRY,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

logger = logging.getLogger(__name__)

METRICS_PATH = "/metrics"
UNMATCHED_ROUTE = "unmatched"

# ==================== HTTP ====================

HTTP_LABELS = ["method", "route", "status"]

REQUEST_LATENCY = Histogram(
    "jobboard_http_request_duration_seconds",
    "Time to produce an HTTP response",
    HTTP_LABELS,
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

REQUEST_COUNT = Counter(
    "jobboard_http_requests_total",
    "HTTP responses sent",
    HTTP_LABELS,
)

ACTIVE_REQUESTS = Gauge(
    "jobboard_http_requests_in_flight",
    "HTTP requests currently being served",
    ["method"],
)

# ==================== Applications ====================

# outcome: submitted, ineligible, duplicate, upload_failed, failed
APPLICATION_SUBMISSIONS = Counter(
    "jobboard_application_submissions_total",
    "Application submission attempts",
    ["outcome"],
)

# CVs are small documents; anything past a few seconds is a storage problem
CV_UPLOAD_LATENCY = Histogram(
    "jobboard_cv_upload_seconds",
    "Time to store one uploaded CV",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


def route_template(request: Request) -> str:
    """The path pattern the request matched, e.g. /job-roles/{job_role_id}."""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", UNMATCHED_ROUTE)
    return UNMATCHED_ROUTE


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Times every request and counts responses by status."""

    def __init__(self, app, excluded_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.excluded_paths = frozenset(excluded_paths or (METRICS_PATH,))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        method = request.method
        route = route_template(request)
        status = "500"

        ACTIVE_REQUESTS.labels(method=method).inc()
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        except Exception as e:
            logger.error(f"Unhandled error while serving {method} {route}: {e}")
            raise
        finally:
            elapsed = time.perf_counter() - start_time
            REQUEST_LATENCY.labels(method=method, route=route, status=status).observe(elapsed)
            REQUEST_COUNT.labels(method=method, route=route, status=status).inc()
            ACTIVE_REQUESTS.labels(method=method).dec()


def metrics_endpoint(request: Request) -> Response:
    return PlainTextResponse(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


def setup_metrics(app: FastAPI) -> None:
    """Install the metrics middleware and the scrape endpoint on ``app``."""
    app.add_middleware(PrometheusMiddleware, excluded_paths=[METRICS_PATH])
    app.add_route(METRICS_PATH, metrics_endpoint, methods=["GET"])
    logger.info(f"Prometheus metrics enabled at {METRICS_PATH}")


# ==================== Recording helpers ====================

def record_submission(outcome: str) -> None:
    APPLICATION_SUBMISSIONS.labels(outcome=outcome).inc()


def record_cv_upload_latency(duration: float) -> None:
    CV_UPLOAD_LATENCY.observe(duration)
