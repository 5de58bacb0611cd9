from __future__ import annotations

import json

import httpx
import pytest

from src.search.errors import NotFoundError, RemoteUnavailableError, SearchBackendError
from src.search.gateway import ElasticSearchGateway, build_search_body
from src.search.traits import ElasticSearchTraits

TRAITS = ElasticSearchTraits(remote_url="http://search.test:9200", index_name="crawl")


def build_gateway(handler) -> ElasticSearchGateway:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ElasticSearchGateway(traits=TRAITS, client=client)


def test_build_search_body_term_query() -> None:
    body = build_search_body("doc.text", "fox", 10, randomized=False, highlight_field="doc.text")

    assert body["query"] == {"term": {"doc.text": "fox"}}
    assert body["size"] == 10
    assert body["highlight"]["fields"] == {"doc.text": {"type": "unified"}}
    assert body["highlight"]["pre_tags"] == ["<em>"]
    assert body["highlight"]["post_tags"] == ["</em>"]


def test_build_search_body_random_order_wraps_function_score() -> None:
    body = build_search_body("doc.text", "fox", 10, randomized=True, highlight_field="doc.text")

    assert body["query"] == {
        "function_score": {"query": {"term": {"doc.text": "fox"}}, "random_score": {}}
    }


def test_query_parses_hits() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "hits": {
                    "hits": [
                        {
                            "_id": "doc-1",
                            "_score": 1.5,
                            "_source": {
                                "doc": {"text": "The quick brown fox"},
                                "metadata": {"language": "en"},
                            },
                            "highlight": {"doc.text": ["quick <em>brown</em> fox"]},
                        },
                        {"_id": "doc-2", "_score": None, "_source": {}},
                        {"_score": 0.1},
                    ]
                }
            },
        )

    hits = build_gateway(handler).query("crawl", "doc.text", "brown", 5, randomized=False)

    assert seen["method"] == "POST"
    assert seen["path"] == "/crawl/_search"
    assert seen["body"]["size"] == 5
    assert [hit.document_id for hit in hits] == ["doc-1", "doc-2"]
    assert hits[0].score == 1.5
    assert hits[0].metadata == {"language": "en"}
    assert hits[0].highlights["doc.text"] == ["quick <em>brown</em> fox"]
    assert hits[1].score is None
    assert hits[1].metadata is None


def test_query_without_hits_section_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"took": 1})

    with pytest.raises(SearchBackendError):
        build_gateway(handler).query("crawl", "doc.text", "fox", 5, randomized=False)


def test_undecodable_body_is_backend_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, content=b"\xff\xff\xff", headers={"content-type": "application/json"}
        )

    with pytest.raises(SearchBackendError):
        build_gateway(handler).query("crawl", "doc.text", "fox", 5, randomized=False)


def test_fetch_document_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/crawl/texts/doc-1"
        return httpx.Response(
            200,
            json={"_id": "doc-1", "found": True, "_source": {"doc": {"text": "Hello"}}},
        )

    assert build_gateway(handler).fetch_document_text("crawl", "texts", "doc-1") == "Hello"


def test_fetch_document_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"_id": "missing", "found": False})

    with pytest.raises(NotFoundError):
        build_gateway(handler).fetch_document_text("crawl", "texts", "missing")


def test_fetch_document_timeout_is_remote_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(RemoteUnavailableError):
        build_gateway(handler).fetch_document_text("crawl", "texts", "doc-1")


def test_connection_error_is_remote_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RemoteUnavailableError):
        build_gateway(handler).query("crawl", "doc.text", "fox", 5, randomized=False)


def test_server_error_is_remote_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "unavailable"})

    with pytest.raises(RemoteUnavailableError):
        build_gateway(handler).fetch_document_text("crawl", "texts", "doc-1")


def test_health_reports_unreachable_backend() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    health = build_gateway(handler).health()

    assert health["ok"] is False
    assert health["detail"] == "RemoteUnavailableError"
