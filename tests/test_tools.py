"""Tool registry, parameter repair and HTTP invocation tests."""

import json

import httpx
import pytest

from orchestrapi.errors import ApiError, ExecutionError
from orchestrapi.tools.invoker import HttpToolInvoker, build_api_url
from orchestrapi.tools.middleware import fix_tool_call
from orchestrapi.tools.registry import FOUNDATIONAL_TOOLS, ToolRegistry, build_tool_definitions

MINI_CATALOG = {
    "openapi": "3.0.1",
    "paths": {
        "/movie/{movie_id}": {
            "get": {
                "operationId": "movie-details",
                "summary": "Get movie details",
                "parameters": [
                    {"name": "movie_id", "in": "path", "required": True, "schema": {"type": "integer"}},
                    {"name": "language", "in": "query", "schema": {"type": "string", "default": "en-US"}},
                ],
            }
        },
        "/search/movie": {
            "get": {
                "operationId": "search-movie",
                "summary": "Search for movies",
                "parameters": [
                    {"name": "query", "in": "query", "required": True, "schema": {"type": "string"}},
                    {"name": "page", "in": "query", "schema": {"type": "integer", "default": 1}},
                    {"name": "year", "in": "query", "schema": {"type": "integer"}},
                    {"name": "include_adult", "in": "query", "schema": {"type": "boolean", "default": False}},
                ],
            },
            "parameters": [],
        },
        "/no-operation-id": {"get": {"summary": "skipped"}},
    },
}


@pytest.fixture
def mini_registry() -> ToolRegistry:
    return ToolRegistry.from_openapi(MINI_CATALOG)


def test_build_tool_definitions() -> None:
    tools = build_tool_definitions(MINI_CATALOG)

    assert set(tools) == {"movie-details", "search-movie"}
    details = tools["movie-details"]
    assert details.method == "get"
    assert details.path_template == "/movie/{movie_id}"
    assert details.parameters.path.required == ["movie_id"]
    assert details.parameters.query.properties["language"].default == "en-US"


def test_bundled_catalog_loads(registry: ToolRegistry) -> None:
    assert registry.count() >= 18
    assert registry.get("movie-details").parameters.path.required == ["movie_id"]
    assert registry.get("nope") is None
    assert len(registry.foundational_docs()) == len(FOUNDATIONAL_TOOLS)


def test_get_validated_unknown_tool(mini_registry: ToolRegistry) -> None:
    with pytest.raises(ExecutionError, match="Endpoint for tool nope not found"):
        mini_registry.get_validated("nope")


def test_describe_is_json_documentation(mini_registry: ToolRegistry) -> None:
    doc = json.loads(mini_registry.describe("search-movie"))
    assert doc["operationId"] == "search-movie"
    assert doc["method"] == "GET"
    assert doc["parameters"]["query"]["required"] == ["query"]
    assert mini_registry.describe("nope") == ""


def test_list_summaries(mini_registry: ToolRegistry) -> None:
    summaries = {s.name: s for s in mini_registry.list_summaries()}
    assert summaries["movie-details"].required_parameters == ["movie_id"]
    assert summaries["search-movie"].path == "/search/movie"


def test_load_later_catalog_overrides_earlier(tmp_path) -> None:
    override = json.loads(json.dumps(MINI_CATALOG))
    override["paths"]["/movie/{movie_id}"]["get"]["summary"] = "Movie details, v2"
    (tmp_path / "a.json").write_text(json.dumps(MINI_CATALOG))
    (tmp_path / "b.json").write_text(json.dumps(override))

    registry = ToolRegistry(definitions_dir=tmp_path)
    registry.load()

    assert registry.count() == 2
    assert registry.get("movie-details").summary == "Movie details, v2"
    assert registry.get("search-movie").summary == "Search for movies"


def test_fix_tool_call_coerces_and_fills_defaults(mini_registry: ToolRegistry) -> None:
    tool = mini_registry.get("search-movie")
    params = {"query": {"query": "Dune", "year": "2021", "page": 2.0}}

    fixed = fix_tool_call(tool, params)

    assert fixed["query"] == {"query": "Dune", "year": 2021, "page": 2, "include_adult": False}
    assert params == {"query": {"query": "Dune", "year": "2021", "page": 2.0}}


def test_fix_tool_call_keeps_non_numeric_strings(mini_registry: ToolRegistry) -> None:
    tool = mini_registry.get("movie-details")
    fixed = fix_tool_call(tool, {"path": {"movie_id": "{{step1.results.0.id}}"}})
    assert fixed["path"]["movie_id"] == "{{step1.results.0.id}}"


def test_fix_tool_call_requires_parameters(mini_registry: ToolRegistry) -> None:
    with pytest.raises(ValueError, match="movie_id"):
        fix_tool_call(mini_registry.get("movie-details"), {"query": {}})


def test_fix_tool_call_passes_unknown_groups(mini_registry: ToolRegistry) -> None:
    fixed = fix_tool_call(mini_registry.get("search-movie"), {"query": {"query": "x"}, "body": {"a": 1}})
    assert fixed["body"] == {"a": 1}


def test_build_api_url(mini_registry: ToolRegistry) -> None:
    tool = mini_registry.get("movie-details")
    url = build_api_url("https://api.themoviedb.org/3/", tool, {"path": {"movie_id": 550}})
    assert url == "https://api.themoviedb.org/3/movie/550"


def make_invoker(registry: ToolRegistry, handler, **kwargs) -> HttpToolInvoker:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpToolInvoker(registry, "https://api.themoviedb.org/3", client=client, **kwargs)


def test_invoke_builds_request(mini_registry: ToolRegistry) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": 550, "title": "Fight Club"})

    invoker = make_invoker(mini_registry, handler, api_key="k123", bearer_token="tok")
    result = invoker.invoke("movie-details", {"path": {"movie_id": "550"}})

    assert result == {"id": 550, "title": "Fight Club"}
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/3/movie/550"
    assert request.url.params["language"] == "en-US"
    assert request.url.params["api_key"] == "k123"
    assert request.headers["Authorization"] == "Bearer tok"


def test_invoke_encodes_booleans(mini_registry: ToolRegistry) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"results": []})

    make_invoker(mini_registry, handler).invoke("search-movie", {"query": {"query": "Dune"}})

    params = seen[0].url.params
    assert params["include_adult"] == "false"
    assert params["page"] == "1"
    assert "api_key" not in params


def test_invoke_non_2xx_raises_api_error(mini_registry: ToolRegistry) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text='{"status_message":"not found"}')

    with pytest.raises(ApiError) as exc_info:
        make_invoker(mini_registry, handler).invoke("movie-details", {"path": {"movie_id": 1}})

    error = exc_info.value
    assert error.status_code == 404
    assert error.message == 'API call failed (404): {"status_message":"not found"}'
    assert error.details["body"] == '{"status_message":"not found"}'


def test_invoke_transport_failure_is_502(mini_registry: ToolRegistry) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError) as exc_info:
        make_invoker(mini_registry, handler).invoke("movie-details", {"path": {"movie_id": 1}})

    assert exc_info.value.status_code == 502


def test_invoke_unknown_tool(mini_registry: ToolRegistry) -> None:
    invoker = make_invoker(mini_registry, lambda request: httpx.Response(200, json={}))
    with pytest.raises(ExecutionError):
        invoker.invoke("person-details", {})
