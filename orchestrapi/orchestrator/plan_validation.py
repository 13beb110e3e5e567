"""Plan validation and deterministic fallback.

The planning model returns text that should hold a JSON plan. This module:
- Parses that text (fences and surrounding prose tolerated)
- Checks the plan's structure and lists every problem found
- Retries generation a bounded number of times
- Substitutes a single-step search plan when every attempt failed

Planning failures never leave this module; the caller always gets a plan.
"""

import json
import logging
from typing import Any, Optional, Protocol, Sequence, Union

from orchestrapi.errors import PlanningError
from orchestrapi.llm.client import parse_llm_json_response
from orchestrapi.orchestrator.schemas import ChatMessage, ExecutionPlan, ExecutionStep
from orchestrapi.retrieval.schemas import DocumentChunk

logger = logging.getLogger(__name__)

MAX_PLANNING_ATTEMPTS = 3
FALLBACK_TOOL = "search-multi"
FALLBACK_QUERY_MAX_CHARS = 200


class Planner(Protocol):
    """Produces a plan (raw text, dict or ExecutionPlan) for a query."""

    def create_plan(
        self,
        query: str,
        documentation: Sequence[DocumentChunk],
        history: Sequence[ChatMessage],
    ) -> Union[str, dict, ExecutionPlan]: ...


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def validate_plan_structure(data: Any) -> list[str]:
    """Return the structural errors of a plan-shaped object (empty if valid)."""
    if not isinstance(data, dict):
        return [f"Plan must be an object, got {type(data).__name__}"]

    errors: list[str] = []
    if not _non_empty_string(data.get("reasoning")):
        errors.append("Plan 'reasoning' must be a non-empty string")

    steps = data.get("steps")
    if not isinstance(steps, list) or not steps:
        errors.append("Plan 'steps' must be a non-empty list")
        return errors

    seen_ids: set[str] = set()
    for i, step in enumerate(steps):
        if not isinstance(step, dict):
            errors.append(f"Step {i} must be an object")
            continue
        for field in ("id", "description", "tool"):
            if not _non_empty_string(step.get(field)):
                errors.append(f"Step {i} '{field}' must be a non-empty string")
        if not isinstance(step.get("parameters"), dict):
            errors.append(f"Step {i} 'parameters' must be an object")

        depends_on = step.get("depends_on", [])
        if depends_on is not None and (
            not isinstance(depends_on, list)
            or not all(isinstance(d, str) for d in depends_on)
        ):
            errors.append(f"Step {i} 'depends_on' must be a list of step ids")

        step_id = step.get("id")
        if isinstance(step_id, str):
            if step_id in seen_ids:
                errors.append(f"Duplicate step id '{step_id}'")
            seen_ids.add(step_id)

    return errors


def parse_plan_text(text: str) -> dict[str, Any]:
    """Extract the plan object from raw model output.

    Raises:
        PlanningError: If no JSON object can be parsed
    """
    try:
        data = parse_llm_json_response(text)
    except json.JSONDecodeError as e:
        raise PlanningError(
            f"Planner returned invalid JSON: {e}",
            details={"raw": text[:500]},
        ) from e
    if not isinstance(data, dict):
        raise PlanningError("Planner output is not a JSON object")
    return data


def coerce_plan(raw: Union[str, dict, ExecutionPlan]) -> ExecutionPlan:
    """Turn planner output into a validated ExecutionPlan.

    Raises:
        PlanningError: With the list of structural errors in details
    """
    if isinstance(raw, ExecutionPlan):
        return raw

    data = parse_plan_text(raw) if isinstance(raw, str) else raw
    errors = validate_plan_structure(data)
    if errors:
        raise PlanningError(
            f"Invalid plan structure: {'; '.join(errors)}",
            details={"errors": errors},
        )

    steps = [
        ExecutionStep(
            id=s["id"],
            description=s["description"],
            tool=s["tool"],
            parameters=s["parameters"],
            depends_on=s.get("depends_on") or [],
        )
        for s in data["steps"]
    ]
    expected = data.get("expected_outcome")
    return ExecutionPlan(
        reasoning=data["reasoning"],
        steps=steps,
        expected_outcome=expected if isinstance(expected, str) else "",
    )


def build_fallback_plan(
    query: str,
    tool: str = FALLBACK_TOOL,
    max_chars: int = FALLBACK_QUERY_MAX_CHARS,
) -> ExecutionPlan:
    """The deterministic single-step search plan."""
    return ExecutionPlan(
        reasoning="Plan generation failed; falling back to a general search for the user's message.",
        steps=[
            ExecutionStep(
                id="search",
                description="Search movies, TV shows and people matching the user's message",
                tool=tool,
                parameters={"query": {"query": query[:max_chars]}},
            )
        ],
        expected_outcome="A list of movies, TV shows and people matching the search terms",
    )


def plan_with_fallback(
    planner: Planner,
    query: str,
    documentation: Sequence[DocumentChunk],
    history: Sequence[ChatMessage],
    max_attempts: int = MAX_PLANNING_ATTEMPTS,
    fallback_tool: str = FALLBACK_TOOL,
    fallback_query_max_chars: int = FALLBACK_QUERY_MAX_CHARS,
) -> ExecutionPlan:
    """Generate and validate a plan, retrying; never raises.

    Any failure of the planner itself, of parsing or of structural
    validation costs one attempt.
    """
    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            raw = planner.create_plan(query, documentation, history)
            plan = coerce_plan(raw)
            logger.info(f"Plan accepted on attempt {attempt}: {len(plan.steps)} steps")
            return plan
        except Exception as e:
            last_error = e
            logger.warning(f"Planning attempt {attempt}/{max_attempts} failed: {e}")

    logger.warning(f"All {max_attempts} planning attempts failed, using fallback plan ({last_error})")
    return build_fallback_plan(query, fallback_tool, fallback_query_max_chars)
