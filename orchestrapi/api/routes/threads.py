"""Thread API routes."""

from fastapi import APIRouter, Depends, HTTPException

from orchestrapi.api.services import AppServices, get_services
from orchestrapi.persistence.schemas import ThreadDetail, ThreadSummary

router = APIRouter(prefix="/threads", tags=["threads"])


@router.get("", response_model=list[ThreadSummary])
def list_threads(services: AppServices = Depends(get_services)) -> list[ThreadSummary]:
    """List threads, most recently updated first."""
    return services.store.list_threads()


@router.get("/{thread_id}", response_model=ThreadDetail)
def get_thread(
    thread_id: str,
    services: AppServices = Depends(get_services),
) -> ThreadDetail:
    """Get a thread's summary and full message history."""
    summary = services.store.get_thread(thread_id)
    messages = services.store.get_conversation(thread_id)
    if summary is None and not messages:
        raise HTTPException(status_code=404, detail=f"Thread '{thread_id}' not found")

    return ThreadDetail(
        thread_id=thread_id,
        title=summary.title if summary else "",
        last_updated=summary.last_updated if summary else None,
        messages=messages,
    )
