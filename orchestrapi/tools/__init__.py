"""Tool catalog and invocation."""

from orchestrapi.tools.registry import ToolRegistry, get_tool_registry
from orchestrapi.tools.schemas import ToolDefinition, ToolSummary

__all__ = ["ToolDefinition", "ToolRegistry", "ToolSummary", "get_tool_registry"]
