"""Schemas for tool definitions derived from the OpenAPI capability catalog."""

from typing import Any, Optional

from pydantic import BaseModel, Field

# Parameter groups a tool call is split into
PARAMETER_GROUPS = ("path", "query")


class ToolParam(BaseModel):
    """One parameter of a tool, as declared by the OpenAPI operation."""

    type: Optional[str] = None
    default: Any = None
    description: str = ""


class ToolGroupSchema(BaseModel):
    properties: dict[str, ToolParam] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class ToolSchema(BaseModel):
    """Parameter schema of a tool, split into path and query groups."""

    path: ToolGroupSchema = Field(default_factory=ToolGroupSchema)
    query: ToolGroupSchema = Field(default_factory=ToolGroupSchema)

    def group(self, name: str) -> ToolGroupSchema:
        return getattr(self, name)


class ToolDefinition(BaseModel):
    """A callable tool: one OpenAPI operation."""

    name: str = Field(description="The operation's operationId")
    method: str = "get"
    path_template: str = Field(description="Path with {param} placeholders, e.g. /movie/{movie_id}")
    summary: str = ""
    parameters: ToolSchema = Field(default_factory=ToolSchema)


class ToolSummary(BaseModel):
    """Lightweight listing entry for a tool."""

    name: str
    method: str
    path: str
    summary: str
    required_parameters: list[str] = Field(default_factory=list)
