"""Streaming orchestration of one chat turn.

A run is a strictly linear pipeline:

    Retrieval -> Planning -> Execution -> Synthesis -> Done

Before each stage a `status` event names the stage; `trace` events carry
intermediate data (top documentation chunks, the plan, every step
transition, each tool call); synthesis streams `content` events. After the
answer is persisted a single `done` event closes the stream.

If any stage raises, exactly one `error` event is emitted and the run
stops: no later stage runs and no `done` follows. A consumer disconnect
(InterruptedError from the channel) stops the run silently.
"""

import logging
import threading
import time
from typing import Any, Callable, Iterator, Mapping, Optional, Protocol, Sequence

from orchestrapi.config import PlanningConfig
from orchestrapi.errors import handle_error
from orchestrapi.executor.plan_executor import PlanExecutor, ToolInvoker
from orchestrapi.executor.schemas import ExecutionOutcome, ExecutionTraceEntry, StepStatus
from orchestrapi.orchestrator.events import (
    DEFAULT_CHANNEL_SIZE,
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    EventChannel,
    StatusEvent,
    trace_event,
)
from orchestrapi.orchestrator.plan_validation import Planner, plan_with_fallback
from orchestrapi.orchestrator.schemas import (
    ChatMessage,
    ExecutionPlan,
    ReasoningTrace,
    ToolCallRecord,
)
from orchestrapi.persistence.schemas import ConversationTurn, ThreadSummary
from orchestrapi.retrieval.schemas import DocumentChunk

logger = logging.getLogger(__name__)

STATUS_RETRIEVAL = "Searching API documentation..."
STATUS_PLANNING = "Planning execution steps..."
STATUS_EXECUTION = "Executing API calls..."
STATUS_SYNTHESIS = "Generating response..."

TRACE_PREVIEW_CHUNKS = 3
DEFAULT_TITLE_LENGTH = 100


class Retriever(Protocol):
    def search(self, query: str) -> list[DocumentChunk]: ...


class Responder(Protocol):
    def generate(
        self,
        query: str,
        plan: ExecutionPlan,
        results: Mapping[str, Any],
        history: Sequence[ChatMessage],
    ) -> Iterator[str]: ...


class ConversationRecorder(Protocol):
    def insert_turn(self, turn: ConversationTurn) -> Any: ...

    def upsert_thread(self, summary: ThreadSummary) -> None: ...


class DocumentationSource(Protocol):
    def foundational_docs(self) -> list[str]: ...


def now_ms() -> int:
    return int(time.time() * 1000)


def make_title(answer: str, length: int = DEFAULT_TITLE_LENGTH) -> str:
    """Thread title: the answer's first `length` characters."""
    return answer[:length]


def merge_documentation(
    retrieved: Sequence[DocumentChunk],
    foundational: Sequence[str],
) -> list[DocumentChunk]:
    """Retrieved chunks followed by foundational tool docs, de-duplicated by text."""
    merged: list[DocumentChunk] = []
    seen: set[str] = set()
    for chunk in [*retrieved, *(DocumentChunk(text=t, score=0.0) for t in foundational)]:
        if not chunk.text or chunk.text in seen:
            continue
        seen.add(chunk.text)
        merged.append(chunk)
    return merged


class StreamingOrchestrator:
    """Composes retrieval, planning, execution and synthesis into one stream.

    Collaborators are injected so each can be replaced (tests use fakes).
    The orchestrator itself holds no per-run state; a run's state lives in
    `run()` locals and its channel.
    """

    def __init__(
        self,
        retriever: Retriever,
        planner: Planner,
        responder: Responder,
        invoker: ToolInvoker,
        store: ConversationRecorder,
        documentation_source: Optional[DocumentationSource] = None,
        planning: Optional[PlanningConfig] = None,
        title_length: int = DEFAULT_TITLE_LENGTH,
        channel_size: int = DEFAULT_CHANNEL_SIZE,
        clock: Callable[[], int] = now_ms,
    ):
        self.retriever = retriever
        self.planner = planner
        self.responder = responder
        self.invoker = invoker
        self.store = store
        self.documentation_source = documentation_source
        self.planning = planning or PlanningConfig()
        self.title_length = title_length
        self.channel_size = channel_size
        self.clock = clock

    # ── Entry points ───────────────────────────────────────

    def start_stream(
        self,
        thread_id: str,
        query: str,
        history: Sequence[ChatMessage],
    ) -> EventChannel:
        """Run the pipeline on a background thread; return its channel."""
        channel = EventChannel(maxsize=self.channel_size)
        thread = threading.Thread(
            target=self.run,
            args=(thread_id, query, list(history), channel),
            daemon=True,
            name=f"orchestrator-{thread_id}",
        )
        thread.start()
        return channel

    def run(
        self,
        thread_id: str,
        query: str,
        history: Sequence[ChatMessage],
        channel: EventChannel,
    ) -> None:
        """Run the whole pipeline, writing events to `channel`. Never raises."""
        logger.info(f"[{thread_id}] Starting run for: {query[:100]}")
        try:
            self._run_stages(thread_id, query, history, channel)
            logger.info(f"[{thread_id}] Run completed")
        except InterruptedError:
            logger.info(f"[{thread_id}] Run cancelled: consumer disconnected")
        except Exception as e:
            error = handle_error(e)
            logger.error(f"[{thread_id}] Run failed: {error.message}", exc_info=True)
            try:
                channel.emit(ErrorEvent(message=error.message))
            except InterruptedError:
                logger.info(f"[{thread_id}] Consumer gone before error could be sent")
        finally:
            channel.close()

    # ── Stages ─────────────────────────────────────────────

    def _run_stages(
        self,
        thread_id: str,
        query: str,
        history: Sequence[ChatMessage],
        channel: EventChannel,
    ) -> None:
        trace = ReasoningTrace(search_query=query)

        documentation = self._retrieve(query, trace, channel)
        plan = self._plan(query, documentation, history, trace, channel)
        outcome = self._execute(plan, trace, channel)
        answer = self._synthesize(query, plan, outcome, history, channel)

        self._persist(thread_id, answer, trace)
        channel.emit(DoneEvent())

    def _retrieve(
        self,
        query: str,
        trace: ReasoningTrace,
        channel: EventChannel,
    ) -> list[DocumentChunk]:
        channel.emit(StatusEvent(message=STATUS_RETRIEVAL))

        chunks = self.retriever.search(query)
        foundational = (
            self.documentation_source.foundational_docs()
            if self.documentation_source is not None
            else []
        )
        documentation = merge_documentation(chunks, foundational)
        trace.rag_chunks = list(chunks)

        logger.info(
            f"Retrieved {len(chunks)} chunks, {len(documentation)} documents after merge"
        )
        channel.emit(
            trace_event(
                "documentation_search",
                [c.model_dump() for c in chunks[:TRACE_PREVIEW_CHUNKS]],
            )
        )
        return documentation

    def _plan(
        self,
        query: str,
        documentation: list[DocumentChunk],
        history: Sequence[ChatMessage],
        trace: ReasoningTrace,
        channel: EventChannel,
    ) -> ExecutionPlan:
        channel.emit(StatusEvent(message=STATUS_PLANNING))

        plan = plan_with_fallback(
            self.planner,
            query,
            documentation,
            history,
            max_attempts=self.planning.max_attempts,
            fallback_tool=self.planning.fallback_tool,
            fallback_query_max_chars=self.planning.fallback_query_max_chars,
        )
        trace.planning_steps = [plan.reasoning, *(s.description for s in plan.steps)]

        channel.emit(
            trace_event(
                "execution_plan",
                {"reasoning": plan.reasoning, "steps": len(plan.steps)},
            )
        )
        return plan

    def _execute(
        self,
        plan: ExecutionPlan,
        trace: ReasoningTrace,
        channel: EventChannel,
    ) -> ExecutionOutcome:
        channel.emit(StatusEvent(message=STATUS_EXECUTION))

        def on_trace(entry: ExecutionTraceEntry) -> None:
            channel.emit(trace_event("step_status", entry.model_dump(mode="json")))

        executor = PlanExecutor(
            self.invoker,
            on_trace=on_trace,
            cancellation_check=channel.is_cancelled,
        )
        outcome = executor.execute_plan(plan)

        for step in plan.steps:
            entry = outcome.entry_for(step.id)
            record = ToolCallRecord(
                tool=step.tool,
                args=(entry.details.get("interpolated_parameters") if entry else None)
                or step.parameters,
                result=outcome.results.get(step.id),
                status=(entry.status if entry else StepStatus.COMPLETED).value,
            )
            trace.tool_calls.append(record)
            channel.emit(trace_event("tool_call", record.model_dump(mode="json")))

        trace.execution_trace = outcome.trace_as_dicts()
        channel.emit(trace_event("execution_complete", trace.execution_trace))
        return outcome

    def _synthesize(
        self,
        query: str,
        plan: ExecutionPlan,
        outcome: ExecutionOutcome,
        history: Sequence[ChatMessage],
        channel: EventChannel,
    ) -> str:
        channel.emit(StatusEvent(message=STATUS_SYNTHESIS))

        parts: list[str] = []
        for chunk in self.responder.generate(query, plan, outcome.results, history):
            if not chunk:
                continue
            parts.append(chunk)
            channel.emit(ContentEvent(text=chunk))
        return "".join(parts)

    def _persist(self, thread_id: str, answer: str, trace: ReasoningTrace) -> None:
        timestamp = self.clock()
        self.store.insert_turn(
            ConversationTurn(
                thread_id=thread_id,
                role="assistant",
                content=answer,
                timestamp=timestamp,
                trace=trace.model_dump(mode="json"),
            )
        )
        self.store.upsert_thread(
            ThreadSummary(
                thread_id=thread_id,
                title=make_title(answer, self.title_length),
                last_updated=timestamp,
            )
        )
