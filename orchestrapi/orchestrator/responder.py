"""Answer synthesis from executed API results."""

import json
import logging
from typing import Any, Iterator, Mapping, Sequence

from orchestrapi.llm.backends import AnthropicBackend, to_anthropic_messages
from orchestrapi.orchestrator.schemas import ChatMessage, ExecutionPlan

logger = logging.getLogger(__name__)

# Results are truncated in the prompt beyond this many characters
MAX_RESULTS_CHARS = 60_000

SYSTEM_PROMPT = """You are a helpful assistant that answers questions about movies, TV shows and people using data returned by TMDB (The Movie Database) API. Your tone is informative, friendly and direct.

### User Query
"{query}"

### Execution Plan
{plan}

### API Results
{results}

### Instructions
1. Directly answer the user's question using the API results. Extract specific details such as titles, ratings, release dates and cast members.
2. If the results are empty, say that nothing was found for this query. Do not invent information.
3. Present data clearly, using lists or tables where they help.
4. Be conversational, but get straight to the point."""


def _dump(value: Any, limit: int) -> str:
    text = json.dumps(value, indent=2, ensure_ascii=False, default=str)
    if len(text) > limit:
        return text[:limit] + "\n... (truncated)"
    return text


class LLMResponder:
    """Synthesis collaborator: streams the final answer."""

    def __init__(self, backend: AnthropicBackend, max_tokens: int = 4096):
        self.backend = backend
        self.max_tokens = max_tokens

    def generate(
        self,
        query: str,
        plan: ExecutionPlan,
        results: Mapping[str, Any],
        history: Sequence[ChatMessage],
    ) -> Iterator[str]:
        system_notes, messages = to_anthropic_messages(history, query)
        system_prompt = SYSTEM_PROMPT.format(
            query=query,
            plan=plan.model_dump_json(indent=2),
            results=_dump(dict(results), MAX_RESULTS_CHARS),
        )
        if system_notes:
            system_prompt += "\n\n### Conversation Notes\n" + "\n\n".join(system_notes)

        logger.info(f"Synthesizing answer from {len(results)} step results")
        return self.backend.stream_text(
            system_prompt,
            messages,
            max_tokens=self.max_tokens,
            label="synthesis",
        )
