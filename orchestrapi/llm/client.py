"""Shared Anthropic client helpers.

Used by both language model collaborators:
- Planning (orchestrator.planner)
- Answer synthesis (orchestrator.responder)
"""

import json
import logging
import os
import re
from typing import Optional

import anthropic
import httpx

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def get_anthropic_client(timeout: Optional[httpx.Timeout] = None) -> Optional[anthropic.Anthropic]:
    """Get Anthropic client if API key is available.

    Returns None if ANTHROPIC_API_KEY is not set.
    """
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        return None
    if timeout is None:
        timeout = httpx.Timeout(connect=30.0, read=300.0, write=60.0, pool=30.0)
    return anthropic.Anthropic(api_key=api_key, timeout=timeout)


def parse_llm_json_response(raw_text: str) -> dict:
    """Parse JSON from LLM response, handling markdown code fences.

    Models sometimes wrap JSON in ```json ... ``` fences or add a sentence
    before or after it. Fences are stripped first; if the remainder still
    does not parse, the outermost {...} span is tried.

    Raises:
        json.JSONDecodeError: If no JSON object can be parsed
    """
    content = raw_text.strip()

    # Strip leading markdown fence (```json or ```)
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else content[3:]

    # Strip trailing fence
    if content.endswith("```"):
        content = content.rsplit("```", 1)[0]

    content = content.strip()
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        match = _JSON_OBJECT_RE.search(content)
        if not match:
            raise
        return json.loads(match.group(0))
