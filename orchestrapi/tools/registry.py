"""Tool registry - builds tool definitions from OpenAPI capability catalogs.

Each operation with an operationId in the loaded OpenAPI documents becomes
one tool, keyed by that operationId. The registry is built once at startup
and is read-only afterwards.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from orchestrapi.errors import ExecutionError
from orchestrapi.tools.schemas import (
    ToolDefinition,
    ToolGroupSchema,
    ToolParam,
    ToolSchema,
    ToolSummary,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "options", "head", "trace")

# Entity-resolution tools whose documentation is always handed to the
# planner, whatever retrieval returns.
FOUNDATIONAL_TOOLS = [
    "search-multi",
    "search-company",
    "search-person",
    "search-movie",
    "search-tv",
    "discover-movie",
    "movie-credits",
]


def build_tool_definitions(openapi_doc: dict[str, Any]) -> dict[str, ToolDefinition]:
    """Build tool definitions from one OpenAPI 3 document."""
    tools: dict[str, ToolDefinition] = {}

    for path, path_item in (openapi_doc.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue

        for method, op in path_item.items():
            if method not in HTTP_METHODS:
                continue
            if not isinstance(op, dict) or not op.get("operationId"):
                continue

            schema = ToolSchema()
            for param in op.get("parameters") or []:
                if not isinstance(param, dict) or not param.get("name"):
                    continue
                group: ToolGroupSchema = schema.path if param.get("in") == "path" else schema.query
                param_schema = param.get("schema") or {}
                group.properties[param["name"]] = ToolParam(
                    type=param_schema.get("type"),
                    default=param_schema.get("default"),
                    description=param.get("description", ""),
                )
                if param.get("required") is True:
                    group.required.append(param["name"])

            operation_id = op["operationId"]
            tools[operation_id] = ToolDefinition(
                name=operation_id,
                method=method,
                path_template=path,
                summary=op.get("summary") or op.get("description") or "",
                parameters=schema,
            )

    return tools


class ToolRegistry:
    """Registry of tools loaded from OpenAPI JSON documents.

    Documents are loaded from orchestrapi/tools/definitions/*.json unless
    another directory is given.
    """

    def __init__(self, definitions_dir: Optional[Path] = None):
        if definitions_dir is None:
            definitions_dir = Path(__file__).parent / "definitions"
        self.definitions_dir = definitions_dir
        self._tools: dict[str, ToolDefinition] = {}
        self._loaded = False

    @classmethod
    def from_openapi(cls, openapi_doc: dict[str, Any]) -> "ToolRegistry":
        """Build a registry from an in-memory OpenAPI document."""
        registry = cls(definitions_dir=Path("/nonexistent"))
        registry._register_document("inline", openapi_doc)
        registry._loaded = True
        return registry

    def _register_document(self, source: str, doc: dict[str, Any]) -> None:
        tools = build_tool_definitions(doc)
        for name in tools:
            if name in self._tools:
                logger.warning(f"Tool {name} from {source} overrides an earlier definition")
        self._tools.update(tools)

    def load(self) -> None:
        """Load all OpenAPI documents from the definitions directory."""
        if self._loaded:
            return

        if not self.definitions_dir.exists():
            logger.warning(f"Definitions directory not found: {self.definitions_dir}")
            self._loaded = True
            return

        for json_file in sorted(self.definitions_dir.glob("*.json")):
            try:
                with open(json_file, "r") as f:
                    doc = json.load(f)
                self._register_document(json_file.name, doc)
            except Exception as e:
                logger.error(f"Failed to load tool catalog from {json_file}: {e}")

        self._loaded = True
        logger.info(f"Loaded {len(self._tools)} tools")

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Get tool definition by name."""
        self.load()
        return self._tools.get(name)

    def get_validated(self, name: str) -> ToolDefinition:
        """Get tool definition by name, raising if not found."""
        tool = self.get(name)
        if tool is None:
            raise ExecutionError(
                f"Endpoint for tool {name} not found",
                details={"available": sorted(self._tools)},
            )
        return tool

    def list_keys(self) -> list[str]:
        self.load()
        return list(self._tools.keys())

    def list_summaries(self) -> list[ToolSummary]:
        self.load()
        return [
            ToolSummary(
                name=t.name,
                method=t.method.upper(),
                path=t.path_template,
                summary=t.summary,
                required_parameters=t.parameters.path.required + t.parameters.query.required,
            )
            for t in self._tools.values()
        ]

    def count(self) -> int:
        self.load()
        return len(self._tools)

    def describe(self, name: str) -> str:
        """Documentation text for one tool, as handed to the planner."""
        tool = self.get(name)
        if tool is None:
            return ""
        return json.dumps(
            {
                "operationId": tool.name,
                "method": tool.method.upper(),
                "path": tool.path_template,
                "summary": tool.summary,
                "parameters": tool.parameters.model_dump(exclude_defaults=False),
            },
            ensure_ascii=False,
        )

    def foundational_docs(self) -> list[str]:
        """Documentation for the always-available entity-resolution tools."""
        return [doc for doc in (self.describe(name) for name in FOUNDATIONAL_TOOLS) if doc]


# Global registry instance
_registry: Optional[ToolRegistry] = None


def get_tool_registry() -> ToolRegistry:
    """Get the global tool registry instance."""
    global _registry
    if _registry is None:
        _registry = ToolRegistry()
        _registry.load()
    return _registry
