"""HTTP API tests with injected fakes."""

import json
import runpy

import pytest
import uvicorn
from fastapi.testclient import TestClient

from orchestrapi.api.main import create_app
from orchestrapi.api.services import AppServices
from orchestrapi.config import AgentConfig
from orchestrapi.orchestrator.streaming import StreamingOrchestrator
from orchestrapi.persistence.conversation_store import ConversationStore
from orchestrapi.retrieval.schemas import DocumentChunk
from orchestrapi.tools.registry import ToolRegistry
from tests.fakes import FakeInvoker, FakePlanner, FakeResponder, FakeRetriever

PLAN = {
    "reasoning": "Search for the movie",
    "steps": [
        {
            "id": "step1",
            "description": "Search for Dune",
            "tool": "search-movie",
            "parameters": {"query": {"query": "Dune"}},
        }
    ],
}


@pytest.fixture
def client(store: ConversationStore, registry: ToolRegistry) -> TestClient:
    orchestrator = StreamingOrchestrator(
        retriever=FakeRetriever([DocumentChunk(text="search-movie docs", score=0.9)]),
        planner=FakePlanner([PLAN]),
        responder=FakeResponder(["Dune ", "(2021) is a science fiction film."]),
        invoker=FakeInvoker({"search-movie": {"results": [{"id": 438631, "title": "Dune"}]}}),
        store=store,
        documentation_source=registry,
    )
    services = AppServices(
        config=AgentConfig(),
        registry=registry,
        store=store,
        orchestrator=orchestrator,
    )
    return TestClient(create_app(services))


def read_frames(response) -> list[dict]:
    return [json.loads(line) for line in response.text.splitlines() if line]


def test_chat_streams_ndjson(client: TestClient) -> None:
    response = client.post(
        "/v1/chat",
        json={
            "threadId": "thread-1",
            "messages": [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello! Ask me about movies."},
                {"role": "tool", "content": "ignored"},
                {"role": "user", "content": [{"type": "text", "text": "Tell me about Dune"}]},
            ],
        },
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["x-thread-id"] == "thread-1"

    frames = read_frames(response)
    assert frames[0]["type"] == "status"
    assert frames[-1] == {"type": "done"}
    assert "".join(f["text"] for f in frames if f["type"] == "content") == (
        "Dune (2021) is a science fiction film."
    )


def test_chat_persists_both_turns(client: TestClient) -> None:
    client.post("/v1/chat", json={"threadId": "t-42", "messages": [{"role": "user", "content": "Dune?"}]})

    threads = client.get("/v1/threads").json()
    assert [t["thread_id"] for t in threads] == ["t-42"]
    assert threads[0]["title"] == "Dune (2021) is a science fiction film."

    detail = client.get("/v1/threads/t-42").json()
    assert [m["role"] for m in detail["messages"]] == ["user", "assistant"]
    assert detail["messages"][0]["content"] == "Dune?"
    assert detail["messages"][1]["trace"]["search_query"] == "Dune?"


def test_chat_generates_thread_id(client: TestClient) -> None:
    response = client.post("/v1/chat", json={"messages": [{"role": "user", "content": "Dune?"}]})
    assert response.status_code == 200
    assert response.headers["x-thread-id"]


@pytest.mark.parametrize(
    "body",
    [
        {"messages": []},
        {"messages": [{"role": "assistant", "content": "Hello"}]},
        {"messages": [{"role": "user", "content": "   "}]},
        {"messages": [{"role": "user", "content": [{"type": "image", "text": None}]}]},
    ],
)
def test_chat_rejects_missing_user_message(client: TestClient, body: dict) -> None:
    response = client.post("/v1/chat", json=body)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "No user message provided"


def test_chat_rejects_malformed_body(client: TestClient) -> None:
    response = client.post("/v1/chat", json={"messages": "hello"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_unknown_thread_is_404(client: TestClient) -> None:
    assert client.get("/v1/threads/missing").status_code == 404


def test_tools_routes(client: TestClient) -> None:
    tools = client.get("/v1/tools").json()
    assert "movie-details" in {t["name"] for t in tools}

    tool = client.get("/v1/tools/movie-details").json()
    assert tool["path_template"] == "/movie/{movie_id}"
    assert client.get("/v1/tools/nope").status_code == 404
    assert client.get("/v1/tools/count").json()["count"] == len(tools)


def test_health(client: TestClient) -> None:
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["tools_loaded"] > 0


def test_main_module_serves_app_with_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    runpy.run_module("orchestrapi.api.main", run_name="__main__")

    assert len(calls) == 1
    app, kwargs = calls[0]
    assert app == "orchestrapi.api.main:app"
    assert kwargs["port"] == 8001
