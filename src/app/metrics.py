from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

from src.app.settings import settings
from src.search.assembler import LoggingDiagnostics
from src.search.types import Diagnostic

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
SEARCH_DIAGNOSTICS = Counter(
    "search_diagnostics_total",
    "Hits, fragments and spans dropped while assembling search results",
    ["kind"],
)


class MetricsDiagnostics(LoggingDiagnostics):
    """Logging diagnostic sink that also feeds the Prometheus counter."""

    def record(self, diagnostic: Diagnostic) -> None:
        super().record(diagnostic)
        if settings.metrics_enabled:
            SEARCH_DIAGNOSTICS.labels(diagnostic.kind).inc()


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled:
        return await call_next(request)
    path = request.url.path
    if path == "/metrics":
        return await call_next(request)
    start = time.monotonic()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        duration = time.monotonic() - start
        REQUEST_COUNT.labels(request.method, path, str(status)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(duration)


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
