"""Prometheus metrics for HTTP traffic, sync passes and marketplace calls.

Provides:
- MetricsMiddleware: request count and duration per method/endpoint
- sync_items_total: per-item outcomes by direction
- marketplace_request_duration_seconds: latency of marketplace HTTP calls
- track_marketplace_call(): context manager recording one call
- get_metrics_response(): FastAPI response for /metrics
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

# ── Sync Metrics ─────────────────────────────────────────────────────────────

sync_items_total = Counter(
    "marketplace_sync_items_total",
    "Products processed by sync passes",
    ["marketplace", "direction", "outcome"],
)

# ── Marketplace API Metrics ──────────────────────────────────────────────────

marketplace_requests_total = Counter(
    "marketplace_requests_total",
    "Marketplace API requests",
    ["marketplace", "operation", "status"],
)

marketplace_request_duration_seconds = Histogram(
    "marketplace_request_duration_seconds",
    "Marketplace API request duration in seconds",
    ["marketplace", "operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


@contextmanager
def track_marketplace_call(marketplace: str, operation: str) -> Iterator[None]:
    """Record duration and success/error of one marketplace call."""
    start = time.monotonic()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        marketplace_request_duration_seconds.labels(
            marketplace=marketplace, operation=operation
        ).observe(time.monotonic() - start)
        marketplace_requests_total.labels(
            marketplace=marketplace, operation=operation, status=status
        ).inc()


def get_metrics_response() -> Response:
    """Render all registered metrics in Prometheus text format."""
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request count and duration for every HTTP request except /metrics."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        # Route pattern keeps label cardinality bounded
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()
        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response
