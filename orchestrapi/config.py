"""Runtime configuration.

Resolution order (later wins):
1. Defaults declared on the models below
2. Optional YAML file named by ORCHESTRAPI_CONFIG
3. Environment variables for secrets and deployment-specific values

ANTHROPIC_API_KEY is not part of the config; the Anthropic client reads it
directly (see orchestrapi.llm.client).
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent / "orchestrapi.db"


class AIConfig(BaseModel):
    planning_model: str = "claude-sonnet-4-6"
    synthesis_model: str = "claude-haiku-4-5-20251001"
    max_tokens: int = 4096
    temperature: float = 0.7


class RagConfig(BaseModel):
    max_results: int = 10
    score_threshold: float = 0.2
    index_name: str = "orchestrapi-endpoints-rag"
    account_id: Optional[str] = None
    api_token: Optional[str] = None
    timeout: float = 30.0


class ApiConfig(BaseModel):
    base_url: str = "https://api.themoviedb.org/3"
    timeout: float = 10.0
    api_key: Optional[str] = None
    bearer_token: Optional[str] = None


class DatabaseConfig(BaseModel):
    path: str = str(DEFAULT_DB_PATH)
    max_history_length: int = 1000


class PlanningConfig(BaseModel):
    max_attempts: int = 3
    fallback_tool: str = "search-multi"
    fallback_query_max_chars: int = 200


class StreamingConfig(BaseModel):
    channel_size: int = 256
    title_length: int = 100


class AgentConfig(BaseModel):
    """Top-level configuration for the agent service."""

    ai: AIConfig = Field(default_factory=AIConfig)
    rag: RagConfig = Field(default_factory=RagConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    planning: PlanningConfig = Field(default_factory=PlanningConfig)
    streaming: StreamingConfig = Field(default_factory=StreamingConfig)


# env var -> (section, field)
_ENV_OVERRIDES = {
    "TMDB_API_KEY": ("api", "api_key"),
    "TMDB_API_TOKEN": ("api", "bearer_token"),
    "TMDB_BASE_URL": ("api", "base_url"),
    "CLOUDFLARE_ACCOUNT_ID": ("rag", "account_id"),
    "CLOUDFLARE_API_TOKEN": ("rag", "api_token"),
    "AUTORAG_INDEX": ("rag", "index_name"),
    "ORCHESTRAPI_DB_PATH": ("database", "path"),
    "PLANNING_MODEL": ("ai", "planning_model"),
    "SYNTHESIS_MODEL": ("ai", "synthesis_model"),
}


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[dict[str, str]] = None,
) -> AgentConfig:
    """Build the effective AgentConfig from defaults, YAML and environment."""
    environ = os.environ if environ is None else environ
    data = AgentConfig().model_dump()

    config_path = config_path or environ.get("ORCHESTRAPI_CONFIG")
    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path, "r") as f:
                file_data = yaml.safe_load(f) or {}
            data = _deep_merge(data, file_data)
            logger.info(f"Loaded config overrides from {path}")
        else:
            logger.warning(f"Config file not found: {path}")

    for env_name, (section, field) in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            data[section][field] = value

    return AgentConfig.model_validate(data)
