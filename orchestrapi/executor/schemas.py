"""Executor-side schemas for step status and execution traces.

These are distinct from the orchestrator schemas (which describe plans).
Executor schemas describe what happens during and after a run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StepStatus(str, Enum):
    """Step execution states."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class ExecutionTraceEntry(BaseModel):
    """Snapshot of one step's progress.

    Entries are immutable; a status transition produces a new entry that
    replaces the previous one at the same position in the trace.
    """

    model_config = ConfigDict(frozen=True)

    step_id: str
    step: str = Field(description="The step's description")
    status: StepStatus = StepStatus.PENDING
    details: dict[str, Any] = Field(default_factory=dict)

    def with_status(self, status: StepStatus, **details: Any) -> "ExecutionTraceEntry":
        return self.model_copy(update={"status": status, "details": details})


@dataclass(frozen=True)
class ExecutionOutcome:
    """Finished result of a plan run.

    `results` maps step id to the tool's JSON result, in completion order.
    """

    results: dict[str, Any] = field(default_factory=dict)
    trace: tuple[ExecutionTraceEntry, ...] = ()

    def entry_for(self, step_id: str):
        for entry in self.trace:
            if entry.step_id == step_id:
                return entry
        return None

    def trace_as_dicts(self) -> list[dict[str, Any]]:
        return [entry.model_dump(mode="json") for entry in self.trace]
