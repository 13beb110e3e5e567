"""Language model access: client construction, backends, JSON parsing."""

from orchestrapi.llm.backends import AnthropicBackend, LLMCallResult, to_anthropic_messages
from orchestrapi.llm.client import get_anthropic_client, parse_llm_json_response

__all__ = [
    "AnthropicBackend",
    "LLMCallResult",
    "get_anthropic_client",
    "parse_llm_json_response",
    "to_anthropic_messages",
]
