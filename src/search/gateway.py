from __future__ import annotations

"""Elasticsearch REST gateway for queries and single-document fetches."""

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from src.search.errors import (
    NotFoundError,
    RemoteUnavailableError,
    SearchBackendError,
    SearchError,
)
from src.search.fields import lookup_field
from src.search.markers import DEFAULT_MARKER_CLOSE, DEFAULT_MARKER_OPEN
from src.search.traits import ElasticSearchTraits
from src.search.types import RawHit

logger = logging.getLogger(__name__)


def build_search_body(
    field_name: str,
    query_text: str,
    result_limit: int,
    randomized: bool,
    highlight_field: str,
    marker_open: str = DEFAULT_MARKER_OPEN,
    marker_close: str = DEFAULT_MARKER_CLOSE,
) -> dict[str, Any]:
    """Build the search request body for a term query with highlighting."""
    query: dict[str, Any] = {"term": {field_name: query_text}}
    if randomized:
        query = {"function_score": {"query": query, "random_score": {}}}
    return {
        "query": query,
        "highlight": {
            "pre_tags": [marker_open],
            "post_tags": [marker_close],
            "fields": {highlight_field: {"type": "unified"}},
        },
        "size": result_limit,
    }


@dataclass
class ElasticSearchGateway:
    """Thin synchronous client for the Elasticsearch REST API."""
    traits: ElasticSearchTraits
    client: httpx.Client | None = None
    marker_open: str = DEFAULT_MARKER_OPEN
    marker_close: str = DEFAULT_MARKER_CLOSE

    def query(
        self,
        index_name: str,
        field_name: str,
        query_text: str,
        result_limit: int,
        randomized: bool,
        highlight_field: str | None = None,
    ) -> list[RawHit]:
        """Run a search and return the raw hits in backend order."""
        body = build_search_body(
            field_name,
            query_text,
            result_limit,
            randomized,
            highlight_field or field_name,
            self.marker_open,
            self.marker_close,
        )
        url = f"{self.traits.base_url}/{quote(index_name, safe='')}/_search"
        data = self._request_json("POST", url, body)
        hits_section = data.get("hits")
        hits = hits_section.get("hits") if isinstance(hits_section, dict) else None
        if not isinstance(hits, list):
            raise SearchBackendError("Search response has no hits list")
        raw_hits = [raw for raw in (self._to_raw_hit(hit) for hit in hits) if raw is not None]
        logger.info(
            "search_complete",
            extra={
                "index": index_name,
                "hits": len(raw_hits),
                "randomized": randomized,
            },
        )
        return raw_hits

    def fetch_document_text(self, index_name: str, object_type: str, document_id: str) -> str:
        """Fetch the full text of one document by identifier."""
        url = "/".join(
            (
                self.traits.base_url,
                quote(index_name, safe=""),
                quote(object_type, safe=""),
                quote(document_id, safe=""),
            )
        )
        data = self._request_json("GET", url)
        if data.get("found") is False:
            raise NotFoundError(f"Document {document_id!r} not found in {index_name!r}")
        source = data.get("_source")
        text = lookup_field(source, self.traits.text_field) if isinstance(source, dict) else None
        if not isinstance(text, str):
            raise SearchBackendError(
                f"Document {document_id!r} has no text at {self.traits.text_field!r}"
            )
        return text

    def health(self) -> dict[str, str | bool]:
        """Return reachability information for the backend."""
        try:
            self._request_json("GET", self.traits.base_url)
        except SearchError as exc:
            return {
                "backend": "elasticsearch",
                "ok": False,
                "detail": type(exc).__name__,
            }
        return {
            "backend": "elasticsearch",
            "ok": True,
            "index": self.traits.index_name,
        }

    def _build_client(self) -> httpx.Client:
        timeout = httpx.Timeout(self.traits.read_timeout, connect=self.traits.connect_timeout)
        transport = httpx.HTTPTransport(retries=self.traits.connect_retries)
        return httpx.Client(timeout=timeout, transport=transport)

    def _request_json(
        self, method: str, url: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        owns_client = self.client is None
        client = self._build_client() if owns_client else self.client
        try:
            response = client.request(method, url, json=body)
        except httpx.TimeoutException as exc:
            raise RemoteUnavailableError(f"Search backend timed out: {url}") from exc
        except httpx.TransportError as exc:
            raise RemoteUnavailableError(f"Search backend unreachable: {url}") from exc
        finally:
            if owns_client:
                client.close()

        if response.status_code == 404:
            raise NotFoundError(f"Not found: {url}")
        if response.status_code >= 500:
            raise RemoteUnavailableError(
                f"Search backend returned {response.status_code} for {url}"
            )
        if response.status_code >= 400:
            raise SearchBackendError(f"Search backend returned {response.status_code} for {url}")
        try:
            data = response.json()
        except ValueError as exc:
            raise SearchBackendError("Failed to parse search backend response") from exc
        if not isinstance(data, dict):
            raise SearchBackendError("Search backend response is not a JSON object")
        return data

    def _to_raw_hit(self, hit: Any) -> RawHit | None:
        if not isinstance(hit, dict) or hit.get("_id") is None:
            logger.warning("search_hit_without_id")
            return None
        source = hit.get("_source") if isinstance(hit.get("_source"), dict) else {}
        metadata = lookup_field(source, self.traits.metadata_field)
        score = hit.get("_score")
        highlights = hit.get("highlight") if isinstance(hit.get("highlight"), dict) else {}
        return RawHit(
            document_id=str(hit["_id"]),
            score=float(score) if isinstance(score, (int, float)) else None,
            highlights=highlights,
            metadata=metadata if isinstance(metadata, dict) else None,
            source=source,
        )
