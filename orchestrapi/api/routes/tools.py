"""Tool catalog API routes."""

from fastapi import APIRouter, Depends, HTTPException

from orchestrapi.api.services import AppServices, get_services
from orchestrapi.tools.schemas import ToolDefinition, ToolSummary

router = APIRouter(prefix="/tools", tags=["tools"])


@router.get("", response_model=list[ToolSummary])
async def list_tools(services: AppServices = Depends(get_services)) -> list[ToolSummary]:
    """List all tools in the capability catalog."""
    return services.registry.list_summaries()


@router.get("/count")
async def get_tool_count(services: AppServices = Depends(get_services)) -> dict[str, int]:
    return {"count": services.registry.count()}


@router.get("/{name}", response_model=ToolDefinition)
async def get_tool(
    name: str,
    services: AppServices = Depends(get_services),
) -> ToolDefinition:
    """Get a tool's full definition, including its parameter schema."""
    tool = services.registry.get(name)
    if tool is None:
        raise HTTPException(status_code=404, detail=f"Tool '{name}' not found")
    return tool
