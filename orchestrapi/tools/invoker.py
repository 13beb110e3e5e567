"""HTTP tool invocation against the external API.

Given a tool name and its (interpolated) parameters, the invoker:
1. Looks the tool up in the registry
2. Repairs the parameters (fix_tool_call)
3. Builds the URL from the path template and query group
4. Performs the request and returns the decoded JSON body

Any non-2xx response becomes an ApiError carrying the status and body.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from orchestrapi.errors import ApiError
from orchestrapi.tools.middleware import fix_tool_call
from orchestrapi.tools.registry import ToolRegistry
from orchestrapi.tools.schemas import ToolDefinition

logger = logging.getLogger(__name__)

MAX_ERROR_BODY_CHARS = 2000


def build_api_url(base_url: str, tool: ToolDefinition, parameters: dict[str, Any]) -> str:
    """Substitute path parameters into the tool's path template."""
    path = tool.path_template
    for key, value in (parameters.get("path") or {}).items():
        path = path.replace(f"{{{key}}}", quote(str(value), safe=""))
    return base_url.rstrip("/") + path


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return value


class HttpToolInvoker:
    """Invokes registry tools over HTTP.

    Authentication: `api_key` is sent as the api_key query parameter,
    `bearer_token` as an Authorization header. Either may be omitted.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        base_url: str,
        api_key: Optional[str] = None,
        bearer_token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.registry = registry
        self.base_url = base_url
        self.api_key = api_key
        self.bearer_token = bearer_token
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def invoke(self, tool_name: str, parameters: dict[str, Any]) -> Any:
        tool = self.registry.get_validated(tool_name)
        fixed = fix_tool_call(tool, parameters)

        url = build_api_url(self.base_url, tool, fixed)
        query = {
            k: _query_value(v)
            for k, v in (fixed.get("query") or {}).items()
            if v is not None
        }
        if self.api_key:
            query["api_key"] = self.api_key

        headers = {"Accept": "application/json"}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"

        logger.info(f"Executing tool {tool_name}: {tool.method.upper()} {url}")

        try:
            response = self._get_client().request(
                tool.method.upper(), url, params=query, headers=headers
            )
        except httpx.HTTPError as e:
            raise ApiError(
                f"API call failed: {e}",
                502,
                details={"tool": tool_name, "url": url},
            ) from e

        if response.is_error:
            body = response.text[:MAX_ERROR_BODY_CHARS]
            raise ApiError(
                f"API call failed ({response.status_code}): {body}",
                response.status_code,
                details={"tool": tool_name, "body": body},
            )

        try:
            result = response.json()
        except ValueError as e:
            raise ApiError(
                f"API returned invalid JSON for {tool_name}",
                502,
                details={"tool": tool_name, "body": response.text[:MAX_ERROR_BODY_CHARS]},
            ) from e

        logger.debug(f"Tool {tool_name} returned {len(response.content)} bytes")
        return result
