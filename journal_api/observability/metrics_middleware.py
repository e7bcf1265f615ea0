"""
FastAPI middleware for automatic Prometheus metrics collection.

Tracks request counts, latency and in-flight requests per
method and normalized path.
"""

import logging
import re
import time
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from journal_api.observability.metrics import (
    http_requests_total,
    http_request_duration_seconds,
    http_requests_in_progress,
)

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for HTTP requests"""

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        method = request.method
        path = normalize_path(request.url.path)

        http_requests_in_progress.labels(method=method, endpoint=path).inc()
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            http_requests_in_progress.labels(method=method, endpoint=path).dec()
            http_requests_total.labels(
                method=method, endpoint=path, status=status_code
            ).inc()
            http_request_duration_seconds.labels(
                method=method, endpoint=path
            ).observe(time.perf_counter() - start_time)

        return response


def normalize_path(path: str) -> str:
    """
    Normalize request path to reduce label cardinality.

    - /api/v1/journal/entries/2024-05-01 -> /api/v1/journal/entries/{date}
    """
    parts = []
    for part in path.strip("/").split("/"):
        if _DATE_RE.match(part):
            parts.append("{date}")
        elif part.isdigit():
            parts.append("{id}")
        else:
            parts.append(part)
    return "/" + "/".join(parts)


def setup_metrics_middleware(app, enabled: bool = True):
    """Add Prometheus metrics middleware to the FastAPI application"""
    if not enabled:
        logger.info("Metrics collection is disabled (ENABLE_METRICS=false)")
        return

    app.add_middleware(PrometheusMiddleware)
    logger.info("Prometheus metrics middleware added to FastAPI")
