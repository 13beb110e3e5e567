"""Documentation retrieval tests."""

import json

import httpx
import pytest

from orchestrapi.retrieval.autorag import QUERY_PREFIX, AutoRagRetriever
from orchestrapi.retrieval.catalog import CatalogRetriever
from orchestrapi.tools.registry import ToolRegistry


def test_catalog_retriever_ranks_by_term_overlap(registry: ToolRegistry) -> None:
    chunks = CatalogRetriever(registry, max_results=3).search("top rated movies")

    assert len(chunks) == 3
    assert chunks[0].score == 1.0
    assert json.loads(chunks[0].text)["operationId"] == "movie-top-rated-list"
    assert all(a.score >= b.score for a, b in zip(chunks, chunks[1:]))


def test_catalog_retriever_no_terms(registry: ToolRegistry) -> None:
    assert CatalogRetriever(registry).search("the of and") == []


def test_autorag_search_request_and_parsing() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "success": True,
            "result": {
                "data": [
                    {"score": 0.81, "content": [{"type": "text", "text": "GET /search/movie"},
                                                {"type": "text", "text": "query (string)"}]},
                    {"score": 0.4, "content": []},
                ]
            },
        })

    retriever = AutoRagRetriever(
        account_id="acct",
        api_token="secret",
        index_name="orchestrapi-endpoints-rag",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
    chunks = retriever.search("find sci-fi movies")

    assert [(c.text, c.score) for c in chunks] == [
        ("GET /search/movie\nquery (string)", 0.81),
        ("", 0.4),
    ]
    request = seen[0]
    assert request.url.path == "/client/v4/accounts/acct/autorag/rags/orchestrapi-endpoints-rag/search"
    assert request.headers["Authorization"] == "Bearer secret"
    payload = json.loads(request.content)
    assert payload == {
        "query": QUERY_PREFIX + "find sci-fi movies",
        "max_num_results": 10,
        "rewrite_query": True,
        "ranking_options": {"score_threshold": 0.2},
    }


def test_autorag_http_error_propagates() -> None:
    retriever = AutoRagRetriever(
        account_id="acct",
        api_token="bad",
        index_name="idx",
        client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(401))),
    )
    with pytest.raises(httpx.HTTPStatusError):
        retriever.search("anything")
