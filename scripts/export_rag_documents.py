#!/usr/bin/env python3
"""Export one text document per API operation for the retrieval index.

The AutoRAG index searched at planning time is built from these files:
upload the output directory to the index's bucket after running.

Usage:
    python scripts/export_rag_documents.py --out rag-documents/
    python scripts/export_rag_documents.py --out rag-documents/ --catalog path/to/openapi.json
"""

import argparse
import json
from pathlib import Path

from orchestrapi.tools.registry import ToolRegistry
from orchestrapi.tools.schemas import ToolDefinition


def render_document(tool: ToolDefinition) -> str:
    """Plain-text documentation of one operation, followed by its JSON form."""
    lines = [
        f"Operation: {tool.name}",
        f"Request: {tool.method.upper()} {tool.path_template}",
        f"Summary: {tool.summary}",
    ]
    for group_name in ("path", "query"):
        group = tool.parameters.group(group_name)
        if not group.properties:
            continue
        lines.append(f"{group_name.capitalize()} parameters:")
        for name, param in group.properties.items():
            flags = [param.type or "any"]
            if name in group.required:
                flags.append("required")
            if param.default is not None:
                flags.append(f"default {param.default}")
            description = f" - {param.description}" if param.description else ""
            lines.append(f"  {name} ({', '.join(flags)}){description}")

    lines.append("")
    lines.append(json.dumps(tool.model_dump(), ensure_ascii=False))
    return "\n".join(lines) + "\n"


def main():
    parser = argparse.ArgumentParser(description="Export API operation documents for AutoRAG")
    parser.add_argument("--out", required=True, help="Output directory")
    parser.add_argument(
        "--catalog",
        help="OpenAPI JSON file (default: the bundled tool definitions)",
    )
    args = parser.parse_args()

    if args.catalog:
        with open(args.catalog, "r") as f:
            registry = ToolRegistry.from_openapi(json.load(f))
    else:
        registry = ToolRegistry()
        registry.load()

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    count = 0
    for name in registry.list_keys():
        tool = registry.get_validated(name)
        (out_dir / f"{name}.txt").write_text(render_document(tool), encoding="utf-8")
        count += 1

    print(f"Wrote {count} documents to {out_dir}")


if __name__ == "__main__":
    main()
