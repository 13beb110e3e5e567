"""Schemas for execution plans.

An ExecutionPlan is produced once per user turn by the planning model
(or substituted by the fallback plan) and is immutable once handed to the
executor. Steps are kept in declared order, which is not necessarily the
execution order; `depends_on` and interpolation tokens decide that.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from orchestrapi.retrieval.schemas import DocumentChunk


class ExecutionStep(BaseModel):
    """One declared tool invocation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique within the plan, e.g. 'step1'")
    description: str = Field(..., description="Human-readable summary of the step")
    tool: str = Field(..., description="Tool identifier (OpenAPI operationId)")
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Parameter tree, conventionally grouped into 'path' and 'query'. "
        "String leaves may hold a {{step_id.path}} token.",
    )
    depends_on: list[str] = Field(
        default_factory=list,
        description="Ids of steps that must complete before this one",
    )


class ExecutionPlan(BaseModel):
    """Structured multi-step plan for answering one user query."""

    model_config = ConfigDict(frozen=True)

    reasoning: str
    steps: list[ExecutionStep]
    expected_outcome: str = ""

    def step_ids(self) -> list[str]:
        return [s.id for s in self.steps]


class ChatMessage(BaseModel):
    """One message of the conversation as seen by the language models."""

    role: Literal["user", "assistant", "system"]
    content: str


class ToolCallRecord(BaseModel):
    """One executed tool call, as shown in the reasoning trace."""

    tool: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    status: str


class ReasoningTrace(BaseModel):
    """Everything the agent did for one answer; persisted with the assistant turn."""

    search_query: str = ""
    rag_chunks: list[DocumentChunk] = Field(default_factory=list)
    planning_steps: list[str] = Field(default_factory=list)
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    execution_trace: list[dict[str, Any]] = Field(default_factory=list)
