"""Anthropic backend for planning and synthesis calls.

Handles:
- Mapping conversation history onto Anthropic's alternating message list
- Synchronous calls (planning: one JSON document back)
- Streaming calls (synthesis: text deltas as they arrive)
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence

import anthropic

from orchestrapi.llm.client import get_anthropic_client
from orchestrapi.orchestrator.schemas import ChatMessage

logger = logging.getLogger(__name__)


@dataclass
class LLMCallResult:
    """Normalized response from a synchronous call."""

    content: str
    model_id: str
    input_tokens: int
    output_tokens: int
    duration_ms: int


def to_anthropic_messages(
    history: Sequence[ChatMessage],
    user_message: str,
) -> tuple[list[str], list[dict[str, str]]]:
    """Map history plus the current user message onto Anthropic messages.

    System messages are returned separately so the caller can fold them into
    the system prompt. Consecutive messages with the same role are merged,
    and leading assistant messages are dropped (the list must open with a
    user turn).

    Returns:
        (system_notes, messages)
    """
    system_notes: list[str] = []
    messages: list[dict[str, str]] = []

    for msg in [*history, ChatMessage(role="user", content=user_message)]:
        if not msg.content.strip():
            continue
        if msg.role == "system":
            system_notes.append(msg.content)
            continue
        if msg.role not in ("user", "assistant"):
            continue
        if not messages and msg.role == "assistant":
            continue
        if messages and messages[-1]["role"] == msg.role:
            messages[-1]["content"] += "\n\n" + msg.content
        else:
            messages.append({"role": msg.role, "content": msg.content})

    return system_notes, messages


class AnthropicBackend:
    """One Anthropic model with fixed sampling settings.

    The client is created lazily from ANTHROPIC_API_KEY unless one is
    injected.
    """

    def __init__(
        self,
        model_id: str,
        temperature: float = 0.7,
        client: Optional[anthropic.Anthropic] = None,
    ):
        self.model_id = model_id
        self.temperature = temperature
        self._client = client

    def _get_client(self) -> anthropic.Anthropic:
        if self._client is None:
            self._client = get_anthropic_client()
        if self._client is None:
            raise RuntimeError(
                "LLM service unavailable. Set ANTHROPIC_API_KEY environment variable."
            )
        return self._client

    def _kwargs(self, system_prompt: str, messages: list[dict[str, str]], max_tokens: int) -> dict[str, Any]:
        return {
            "model": self.model_id,
            "max_tokens": max_tokens,
            "temperature": self.temperature,
            "system": system_prompt,
            "messages": messages,
        }

    def execute_sync(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        label: str = "",
    ) -> LLMCallResult:
        client = self._get_client()
        start_time = time.time()

        logger.info(f"[{label}] Anthropic sync: model={self.model_id}, max_tokens={max_tokens}")
        response = client.messages.create(**self._kwargs(system_prompt, messages, max_tokens))
        duration_ms = int((time.time() - start_time) * 1000)

        raw_text = ""
        for block in response.content:
            if getattr(block, "type", None) == "text":
                raw_text += block.text

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self.model_id}")

        logger.info(
            f"[{label}] Sync completed: {response.usage.input_tokens}+"
            f"{response.usage.output_tokens} tokens, {duration_ms}ms"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self.model_id,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            duration_ms=duration_ms,
        )

    def stream_text(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        label: str = "",
    ) -> Iterator[str]:
        """Yield text deltas as the model produces them."""
        client = self._get_client()
        start_time = time.time()
        chars = 0

        logger.info(f"[{label}] Anthropic stream: model={self.model_id}, max_tokens={max_tokens}")
        with client.messages.stream(**self._kwargs(system_prompt, messages, max_tokens)) as stream:
            for text in stream.text_stream:
                chars += len(text)
                yield text

        logger.info(
            f"[{label}] Stream completed: {chars:,} chars in "
            f"{int((time.time() - start_time) * 1000)}ms"
        )
