from __future__ import annotations

"""FastAPI application entrypoint for the external search service."""

import logging
import uuid
from collections import Counter

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse

from src.app.dependencies import get_provider
from src.app.metrics import metrics_middleware, metrics_response
from src.app.schemas import (
    BackendHealthResponse,
    DocumentResponse,
    HighlightSpan,
    SearchHit,
    SearchRequest,
    SearchResponse,
)
from src.app.settings import settings
from src.search.errors import (
    InvalidArgumentError,
    NotFoundError,
    RemoteUnavailableError,
    SearchBackendError,
    SearchError,
)
from src.search.provider import ElasticSearchProvider
from src.search.types import SearchResult

logger = logging.getLogger(__name__)

app = FastAPI(title="External Search Service", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _status_for(exc: SearchError) -> int:
    """Map search failures onto HTTP status codes."""
    if isinstance(exc, InvalidArgumentError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, RemoteUnavailableError):
        return 503
    if isinstance(exc, SearchBackendError):
        return 502
    return 500


def _http_error(exc: SearchError, request_id: str) -> HTTPException:
    status_code = _status_for(exc)
    logger.error(
        "search_request_failed",
        extra={
            "request_id": request_id,
            "status": status_code,
            "detail": type(exc).__name__,
        },
    )
    return HTTPException(status_code=status_code, detail=str(exc))


def _to_hit(result: SearchResult) -> SearchHit:
    return SearchHit(
        collection_id=result.collection_id,
        document_id=result.document_id,
        title=result.title,
        score=result.score,
        source=result.source,
        uri=result.uri,
        language=result.language,
        timestamp=result.timestamp,
        highlights=[
            HighlightSpan(begin=span.begin, end=span.end, text=span.text)
            for span in result.highlights
        ],
    )


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health probe for uptime checks."""
    return {"status": "ok"}


@app.get("/stats/health", response_model=BackendHealthResponse)
def backend_health(
    provider: ElasticSearchProvider = Depends(get_provider),
) -> BackendHealthResponse:
    """Report whether the search backend is reachable."""
    return BackendHealthResponse(**provider.gateway.health())


@app.post("/search", response_model=SearchResponse)
def search(
    request: SearchRequest,
    http_request: Request,
    provider: ElasticSearchProvider = Depends(get_provider),
) -> SearchResponse:
    """Run a query and return results with resolved highlight offsets."""
    request_id = _request_id(http_request)
    try:
        assembled = provider.execute_query(request.query)
    except SearchError as exc:
        raise _http_error(exc, request_id) from exc
    counts = Counter(diagnostic.kind for diagnostic in assembled.diagnostics)
    logger.info(
        "search_served",
        extra={
            "request_id": request_id,
            "results": len(assembled.results),
            "diagnostics": dict(counts),
        },
    )
    return SearchResponse(
        results=[_to_hit(result) for result in assembled.results],
        diagnostics=dict(counts),
        request_id=request_id,
    )


@app.get(
    "/collections/{collection_id}/documents/{document_id}",
    response_model=DocumentResponse,
)
def document_text(
    collection_id: str,
    document_id: str,
    http_request: Request,
    provider: ElasticSearchProvider = Depends(get_provider),
) -> DocumentResponse:
    """Return the full text of one document."""
    try:
        text = provider.get_document_text(collection_id, document_id)
    except SearchError as exc:
        raise _http_error(exc, _request_id(http_request)) from exc
    return DocumentResponse(
        collection_id=collection_id,
        document_id=document_id,
        format=provider.get_document_format(collection_id, document_id),
        text=text,
    )


@app.get("/collections/{collection_id}/documents/{document_id}/raw")
def document_raw(
    collection_id: str,
    document_id: str,
    http_request: Request,
    provider: ElasticSearchProvider = Depends(get_provider),
) -> StreamingResponse:
    """Stream the document text as UTF-8 bytes."""
    try:
        stream = provider.get_document_as_stream(collection_id, document_id)
    except SearchError as exc:
        raise _http_error(exc, _request_id(http_request)) from exc
    return StreamingResponse(stream, media_type="text/plain; charset=utf-8")
