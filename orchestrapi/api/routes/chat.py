"""Chat API route: one user turn in, one NDJSON event stream out."""

import logging
import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from orchestrapi.api.schemas import ChatRequest, extract_user_message
from orchestrapi.api.services import AppServices, get_services
from orchestrapi.orchestrator.events import ndjson_stream
from orchestrapi.orchestrator.streaming import now_ms
from orchestrapi.persistence.schemas import ConversationTurn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


@router.post("")
def chat(
    request: ChatRequest,
    services: AppServices = Depends(get_services),
) -> StreamingResponse:
    """Answer the latest user message, streaming progress as NDJSON.

    Request validation and the user-turn write happen before the stream
    opens, so their failures are ordinary JSON error responses.
    """
    query, history = extract_user_message(request)
    thread_id = request.thread_id or uuid.uuid4().hex

    services.store.insert_turn(
        ConversationTurn(
            thread_id=thread_id,
            role="user",
            content=query,
            timestamp=now_ms(),
        )
    )
    logger.info(f"[{thread_id}] Chat request: {query[:100]}")

    channel = services.orchestrator.start_stream(thread_id, query, history)
    return StreamingResponse(
        ndjson_stream(channel),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache", "X-Thread-Id": thread_id},
    )
