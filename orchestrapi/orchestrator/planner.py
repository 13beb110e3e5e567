"""LLM-powered plan generation.

The planner hands the model the retrieved API documentation and the
conversation, and asks for a JSON ExecutionPlan. It returns the raw text;
parsing, validation and retries live in plan_validation.
"""

import logging
from typing import Sequence

from orchestrapi.llm.backends import AnthropicBackend, to_anthropic_messages
from orchestrapi.orchestrator.schemas import ChatMessage
from orchestrapi.retrieval.schemas import DocumentChunk

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an agent that plans calls to TMDB (The Movie Database) API to answer a user's question.

Given the user's question and the API documentation below, produce an execution plan: a short list of API calls that together gather the data needed for the answer.

## API Documentation

{documentation}

## Planning Rules

1. Break complex questions into logical steps. Resolve names to ids first (search-person, search-movie, search-company, search-multi), then fetch details, credits or filtered lists.
2. Use only operations that appear in the documentation. The "tool" of a step is the operation's operationId.
3. Parameters are grouped by where they go in the request: "path" for path parameters, "query" for query-string parameters. Match the documented names exactly. Ids are integers.
4. When a step needs a value produced by an earlier step, reference it with a token of the form {{{{step_id.path.to.value}}}}, e.g. {{{{step1.results.0.id}}}}. List indexes can be written as .0 or [0]. Put that earlier step's id in "depends_on".
5. Use as few steps as the question allows.

## Output Format

Respond with ONLY a JSON object, no prose and no markdown fences:
{{
  "reasoning": "What needs to be done and why",
  "steps": [
    {{
      "id": "step1",
      "description": "Find the person's id",
      "tool": "search-person",
      "parameters": {{"query": {{"query": "Christopher Nolan"}}}},
      "depends_on": []
    }},
    {{
      "id": "step2",
      "description": "Get the person's movie credits",
      "tool": "person-movie-credits",
      "parameters": {{"path": {{"person_id": "{{{{step1.results.0.id}}}}"}}}},
      "depends_on": ["step1"]
    }}
  ],
  "expected_outcome": "What the user should expect as the final result"
}}"""


def format_documentation(documentation: Sequence[DocumentChunk]) -> str:
    if not documentation:
        return "(no documentation retrieved)"
    return "\n\n---\n\n".join(chunk.text for chunk in documentation)


class LLMPlanner:
    """Planning collaborator backed by a language model."""

    def __init__(self, backend: AnthropicBackend, max_tokens: int = 4096):
        self.backend = backend
        self.max_tokens = max_tokens

    def create_plan(
        self,
        query: str,
        documentation: Sequence[DocumentChunk],
        history: Sequence[ChatMessage],
    ) -> str:
        system_notes, messages = to_anthropic_messages(history, query)
        system_prompt = SYSTEM_PROMPT.format(documentation=format_documentation(documentation))
        if system_notes:
            system_prompt += "\n\n## Conversation Notes\n\n" + "\n\n".join(system_notes)

        result = self.backend.execute_sync(
            system_prompt,
            messages,
            max_tokens=self.max_tokens,
            label="planning",
        )
        return result.content
