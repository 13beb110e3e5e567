"""Tool-call repair: coerce types, fill defaults, check required parameters.

Planning models produce parameters that are close to, but not exactly,
what the API expects (ids as strings, missing optional params). This runs
on the already-interpolated parameters right before the HTTP call.
"""

import logging
import re
from typing import Any, Optional

from orchestrapi.tools.schemas import PARAMETER_GROUPS, ToolDefinition

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^-?\d+$")


def _coerce(value: Any, param_type: Optional[str]) -> Any:
    if param_type == "integer" and isinstance(value, str) and _INT_RE.match(value.strip()):
        return int(value.strip())
    if param_type == "integer" and isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def fix_tool_call(tool: ToolDefinition, parameters: dict[str, Any]) -> dict[str, Any]:
    """Return a repaired copy of `parameters` for `tool`.

    Groups other than path/query pass through untouched.

    Raises:
        ValueError: If a required parameter is missing after defaults are applied
    """
    fixed: dict[str, Any] = dict(parameters or {})

    for group_name in PARAMETER_GROUPS:
        group_schema = tool.parameters.group(group_name)
        values = fixed.get(group_name)
        values = dict(values) if isinstance(values, dict) else {}

        for param_name, param_schema in group_schema.properties.items():
            value = values.get(param_name)
            if value is None:
                if param_schema.default is not None:
                    values[param_name] = param_schema.default
                continue
            values[param_name] = _coerce(value, param_schema.type)

        missing = [name for name in group_schema.required if values.get(name) is None]
        if missing:
            raise ValueError(
                f"Missing required parameter: {', '.join(missing)} in {group_name}"
            )

        fixed[group_name] = values

    return fixed
