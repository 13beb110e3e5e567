"""In-memory collaborators for orchestrator and API tests."""

import threading
from typing import Any, Callable, Iterator, Union

from orchestrapi.llm.backends import LLMCallResult
from orchestrapi.retrieval.schemas import DocumentChunk

ToolResponse = Union[Any, Exception, Callable[[dict], Any]]


class FakeInvoker:
    """Returns canned results per tool name; Exceptions are raised."""

    def __init__(self, responses: dict[str, ToolResponse]):
        self.responses = responses
        self.calls: list[tuple[str, dict]] = []
        self._lock = threading.Lock()

    def invoke(self, tool_name: str, parameters: dict) -> Any:
        with self._lock:
            self.calls.append((tool_name, parameters))
        response = self.responses[tool_name]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(parameters)
        return response

    @property
    def tools_called(self) -> list[str]:
        return [name for name, _ in self.calls]


class FakeRetriever:
    def __init__(self, chunks: list[DocumentChunk]):
        self.chunks = chunks
        self.queries: list[str] = []

    def search(self, query: str) -> list[DocumentChunk]:
        self.queries.append(query)
        return list(self.chunks)


class FakePlanner:
    """Returns the given outputs in order; Exceptions are raised."""

    def __init__(self, outputs: list[Any]):
        self.outputs = list(outputs)
        self.calls = 0

    def create_plan(self, query, documentation, history):
        output = self.outputs[min(self.calls, len(self.outputs) - 1)]
        self.calls += 1
        if isinstance(output, Exception):
            raise output
        return output


class FakeResponder:
    def __init__(self, chunks: list[str]):
        self.chunks = chunks
        self.received_results: dict = {}

    def generate(self, query, plan, results, history) -> Iterator[str]:
        self.received_results = dict(results)
        yield from self.chunks


class FakeStore:
    def __init__(self):
        self.turns: list = []
        self.threads: dict = {}

    def insert_turn(self, turn):
        self.turns.append(turn)
        return turn

    def upsert_thread(self, summary):
        self.threads[summary.thread_id] = summary


class FakeDocumentationSource:
    def __init__(self, docs: list[str]):
        self.docs = docs

    def foundational_docs(self) -> list[str]:
        return list(self.docs)


class FakeBackend:
    """Stands in for AnthropicBackend; records the prompts it receives."""

    def __init__(self, content: str = "", deltas: list[str] = ()):
        self.content = content
        self.deltas = list(deltas)
        self.system_prompts: list[str] = []
        self.messages: list[list[dict]] = []

    def execute_sync(self, system_prompt, messages, *, max_tokens, label=""):
        self.system_prompts.append(system_prompt)
        self.messages.append(messages)
        return LLMCallResult(
            content=self.content,
            model_id="fake-model",
            input_tokens=1,
            output_tokens=1,
            duration_ms=0,
        )

    def stream_text(self, system_prompt, messages, *, max_tokens, label=""):
        self.system_prompts.append(system_prompt)
        self.messages.append(messages)
        return iter(self.deltas)
