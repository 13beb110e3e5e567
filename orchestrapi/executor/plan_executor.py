"""Plan execution: runs an ExecutionPlan's steps in dependency order.

The executor:

1. Builds the step graph from `depends_on` plus implicit edges from
   interpolation tokens that point at other steps of the same plan
2. Rejects dangling `depends_on` ids and cycles before any tool is called
3. Walks steps in declared order, resolving each one depth-first and
   memoized, so a step shared by several dependents runs once
4. Interpolates each step's parameters against the results so far, then
   calls the tool through the ToolInvoker collaborator
5. Fails fast: the first tool failure marks that step `error` and aborts
   every step not yet executed, including independent ones

Independent steps are not run in parallel; declared order breaks ties.
"""

import json
import logging
from typing import Any, Callable, Optional, Protocol

from orchestrapi.errors import ExecutionError
from orchestrapi.executor.interpolation import ParameterTemplate
from orchestrapi.executor.schemas import (
    ExecutionOutcome,
    ExecutionTraceEntry,
    StepStatus,
)
from orchestrapi.orchestrator.schemas import ExecutionPlan, ExecutionStep

logger = logging.getLogger(__name__)


class ToolInvoker(Protocol):
    """Invokes a named tool against the external API."""

    def invoke(self, tool_name: str, parameters: dict[str, Any]) -> Any: ...


TraceCallback = Callable[[ExecutionTraceEntry], None]


def _result_size(result: Any) -> int:
    return len(json.dumps(result, separators=(",", ":"), ensure_ascii=False, default=str))


class PlanExecutor:
    """Executes plans against a ToolInvoker.

    Args:
        invoker: Tool invocation collaborator
        on_trace: Called with every trace entry transition (pending, running,
            completed, error), in order
        cancellation_check: Polled before each tool dispatch; when it returns
            True, InterruptedError is raised and no further step starts.
            A call already dispatched runs to completion.
    """

    def __init__(
        self,
        invoker: ToolInvoker,
        on_trace: Optional[TraceCallback] = None,
        cancellation_check: Optional[Callable[[], bool]] = None,
    ):
        self.invoker = invoker
        self.on_trace = on_trace
        self.cancellation_check = cancellation_check

    def execute_plan(self, plan: ExecutionPlan) -> ExecutionOutcome:
        run = _PlanRun(plan, self.invoker, self.on_trace, self.cancellation_check)
        return run.execute()


class _PlanRun:
    """State for one execution of one plan. Never shared between runs."""

    def __init__(
        self,
        plan: ExecutionPlan,
        invoker: ToolInvoker,
        on_trace: Optional[TraceCallback],
        cancellation_check: Optional[Callable[[], bool]],
    ):
        self.plan = plan
        self.invoker = invoker
        self.on_trace = on_trace
        self.cancellation_check = cancellation_check

        self.steps: dict[str, ExecutionStep] = {s.id: s for s in plan.steps}
        self.templates = {s.id: ParameterTemplate(s.parameters) for s in plan.steps}
        self.dependencies: dict[str, list[str]] = {}

        self.results: dict[str, Any] = {}
        self.completed: set[str] = set()
        self.trace: list[ExecutionTraceEntry] = []
        self._trace_index: dict[str, int] = {}

    # ── Pre-flight ─────────────────────────────────────────

    def _build_dependencies(self) -> None:
        for step in self.plan.steps:
            for dep_id in step.depends_on:
                if dep_id not in self.steps:
                    raise ExecutionError(
                        f"Step '{step.id}' depends on unknown step '{dep_id}'",
                        step_id=step.id,
                        details={"missing_step": dep_id},
                    )

            deps = list(dict.fromkeys(step.depends_on))
            # Tokens pointing at unknown steps add no edge; they stay
            # uninterpolated at dispatch time.
            for ref_id in self.templates[step.id].references:
                if ref_id in self.steps and ref_id != step.id and ref_id not in deps:
                    deps.append(ref_id)
            self.dependencies[step.id] = deps

    def _check_acyclic(self) -> None:
        visiting: list[str] = []
        done: set[str] = set()

        def visit(step_id: str) -> None:
            if step_id in done:
                return
            if step_id in visiting:
                cycle = visiting[visiting.index(step_id):] + [step_id]
                raise ExecutionError(
                    f"Dependency cycle detected: {' -> '.join(cycle)}",
                    step_id=step_id,
                    details={"cycle": cycle},
                )
            visiting.append(step_id)
            for dep_id in self.dependencies[step_id]:
                visit(dep_id)
            visiting.pop()
            done.add(step_id)

        for step in self.plan.steps:
            visit(step.id)

    # ── Trace ──────────────────────────────────────────────

    def _record(self, entry: ExecutionTraceEntry) -> None:
        index = self._trace_index.get(entry.step_id)
        if index is None:
            self._trace_index[entry.step_id] = len(self.trace)
            self.trace.append(entry)
        else:
            self.trace[index] = entry
        if self.on_trace is not None:
            self.on_trace(entry)

    def _current(self, step_id: str) -> ExecutionTraceEntry:
        return self.trace[self._trace_index[step_id]]

    # ── Execution ──────────────────────────────────────────

    def execute(self) -> ExecutionOutcome:
        self._build_dependencies()
        self._check_acyclic()

        logger.info(
            f"Executing plan with {len(self.plan.steps)} steps: "
            f"{[s.id for s in self.plan.steps]}"
        )

        for step in self.plan.steps:
            self._resolve(step.id)

        logger.info(f"Plan complete: {len(self.completed)} steps executed")
        return ExecutionOutcome(results=dict(self.results), trace=tuple(self.trace))

    def _resolve(self, step_id: str) -> Any:
        if step_id in self.completed:
            return self.results[step_id]

        step = self.steps[step_id]
        self._record(ExecutionTraceEntry(step_id=step.id, step=step.description))

        for dep_id in self.dependencies[step_id]:
            self._resolve(dep_id)

        if self.cancellation_check and self.cancellation_check():
            raise InterruptedError(f"Execution cancelled before step '{step_id}'")

        parameters = self.templates[step_id].render(self.results)
        self._record(
            self._current(step_id).with_status(StepStatus.RUNNING, tool_used=step.tool)
        )
        logger.info(f"Step {step_id}: calling {step.tool}")

        try:
            result = self.invoker.invoke(step.tool, parameters)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            self._record(
                self._current(step_id).with_status(
                    StepStatus.ERROR,
                    tool_used=step.tool,
                    error=message,
                    interpolated_parameters=parameters,
                )
            )
            logger.error(f"Step {step_id} ({step.tool}) failed: {message}")
            raise ExecutionError(
                f"Step '{step_id}' ({step.tool}) failed: {message}",
                step_id=step_id,
                details={
                    "tool": step.tool,
                    "error": message,
                    "trace": [entry.model_dump(mode="json") for entry in self.trace],
                },
            ) from e

        self.results[step_id] = result
        self.completed.add(step_id)
        self._record(
            self._current(step_id).with_status(
                StepStatus.COMPLETED,
                tool_used=step.tool,
                result_size=_result_size(result),
                interpolated_parameters=parameters,
            )
        )
        logger.info(f"Step {step_id} completed")
        return result
