"""Service container wiring config to the orchestrator's collaborators.

Built once at startup and stored on `app.state.services`. Tests build an
AppServices with fakes and pass it to create_app().
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from orchestrapi.config import AgentConfig
from orchestrapi.llm.backends import AnthropicBackend
from orchestrapi.orchestrator.planner import LLMPlanner
from orchestrapi.orchestrator.responder import LLMResponder
from orchestrapi.orchestrator.streaming import StreamingOrchestrator
from orchestrapi.persistence.conversation_store import ConversationStore
from orchestrapi.persistence.db import configure_db
from orchestrapi.retrieval.autorag import AutoRagRetriever
from orchestrapi.retrieval.catalog import CatalogRetriever
from orchestrapi.tools.invoker import HttpToolInvoker
from orchestrapi.tools.registry import ToolRegistry, get_tool_registry

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    config: AgentConfig
    registry: ToolRegistry
    store: ConversationStore
    orchestrator: StreamingOrchestrator
    invoker: Optional[HttpToolInvoker] = None

    def close(self) -> None:
        if self.invoker is not None:
            self.invoker.close()


def build_services(config: AgentConfig) -> AppServices:
    """Create the production collaborators from config."""
    logger.info("Loading tool catalog...")
    registry = get_tool_registry()
    logger.info(f"Loaded {registry.count()} tools")

    configure_db(config.database.path)
    store = ConversationStore(max_history_length=config.database.max_history_length)

    rag = config.rag
    if rag.account_id and rag.api_token:
        retriever = AutoRagRetriever(
            account_id=rag.account_id,
            api_token=rag.api_token,
            index_name=rag.index_name,
            max_results=rag.max_results,
            score_threshold=rag.score_threshold,
            timeout=rag.timeout,
        )
        logger.info(f"Using AutoRAG index {rag.index_name}")
    else:
        retriever = CatalogRetriever(registry, max_results=rag.max_results)
        logger.warning("No Cloudflare credentials configured, using local catalog retrieval")

    ai = config.ai
    planner = LLMPlanner(
        AnthropicBackend(ai.planning_model, temperature=ai.temperature),
        max_tokens=ai.max_tokens,
    )
    responder = LLMResponder(
        AnthropicBackend(ai.synthesis_model, temperature=ai.temperature),
        max_tokens=ai.max_tokens,
    )

    invoker = HttpToolInvoker(
        registry,
        base_url=config.api.base_url,
        api_key=config.api.api_key,
        bearer_token=config.api.bearer_token,
        timeout=config.api.timeout,
    )
    if not (config.api.api_key or config.api.bearer_token):
        logger.warning("No TMDB credentials configured; tool calls will be rejected upstream")

    orchestrator = StreamingOrchestrator(
        retriever=retriever,
        planner=planner,
        responder=responder,
        invoker=invoker,
        store=store,
        documentation_source=registry,
        planning=config.planning,
        title_length=config.streaming.title_length,
        channel_size=config.streaming.channel_size,
    )

    return AppServices(
        config=config,
        registry=registry,
        store=store,
        orchestrator=orchestrator,
        invoker=invoker,
    )


def get_services(request: Request) -> AppServices:
    """FastAPI dependency returning the app's service container."""
    return request.app.state.services
