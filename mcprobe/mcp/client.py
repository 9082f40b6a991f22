"""Protocol client: the MCP methods mcprobe needs, on top of a transport."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from pydantic import ValidationError

from mcprobe.mcp.schema import (
    InitializeResult,
    InvocationRequest,
    InvocationResult,
    Prompt,
    Resource,
    ResourceTemplate,
    ServerCapabilities,
    ToolDescriptor,
)
from mcprobe.mcp.transport import MCPTransport, MCPTransportError

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_INFO = {"name": "mcprobe", "version": "1.0.0"}

# Guard against servers that keep handing out cursors.
MAX_PAGES = 100

T = TypeVar("T")


def _expect_object(method: str, raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise MCPTransportError(f"Unexpected {method} result: {str(raw)[:200]}")
    return raw


class MCPClient:
    """
    Blocking MCP client.

    Every remote method takes an explicit ``timeout`` (seconds). Callers pick
    the connection timeout for handshake and listings and the call timeout
    for ``call_tool``; the client itself keeps neither.
    """

    def __init__(self, transport: MCPTransport):
        self.transport = transport
        self._capabilities = ServerCapabilities()

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def connect(self, timeout: float) -> None:
        self.transport.start(timeout)

    def initialize(self, timeout: float) -> InitializeResult:
        """Perform the MCP initialize handshake."""
        raw = self.transport.send(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": CLIENT_INFO,
            },
            timeout,
        )
        try:
            result = InitializeResult.model_validate(_expect_object("initialize", raw))
        except ValidationError as exc:
            raise MCPTransportError(f"Invalid initialize result: {exc}") from exc
        self._capabilities = result.capabilities
        self.transport.notify("notifications/initialized")
        logger.debug("Initialized against %s %s", result.server_info.name, result.server_info.version)
        return result

    def get_server_capabilities(self) -> ServerCapabilities:
        return self._capabilities

    def close(self) -> None:
        self.transport.stop()

    def __enter__(self) -> "MCPClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ── Listings ──────────────────────────────────────────────────────────

    def _paginate(self, method: str, key: str, parse: Callable[[Dict[str, Any]], T], timeout: float) -> List[T]:
        items: List[T] = []
        cursor: Optional[str] = None
        for _ in range(MAX_PAGES):
            result = _expect_object(method, self.transport.send(method, {"cursor": cursor} if cursor else None, timeout))
            entries = result.get(key) or []
            if not isinstance(entries, list):
                raise MCPTransportError(f"Unexpected {method} result: '{key}' is not a list")
            for raw in entries:
                try:
                    items.append(parse(raw))
                except ValueError as exc:
                    logger.warning("Skipping malformed %s entry: %s", key, exc)
            cursor = result.get("nextCursor")
            if not cursor:
                break
        return items

    def list_tools(self, timeout: float) -> List[ToolDescriptor]:
        return self._paginate("tools/list", "tools", ToolDescriptor.model_validate, timeout)

    def list_resources(self, timeout: float) -> List[Resource]:
        return self._paginate("resources/list", "resources", Resource.model_validate, timeout)

    def list_resource_templates(self, timeout: float) -> List[ResourceTemplate]:
        return self._paginate(
            "resources/templates/list", "resourceTemplates", ResourceTemplate.model_validate, timeout
        )

    def list_prompts(self, timeout: float) -> List[Prompt]:
        return self._paginate("prompts/list", "prompts", Prompt.model_validate, timeout)

    # ── Tools ─────────────────────────────────────────────────────────────

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]], timeout: float) -> InvocationResult:
        """Call a tool on the MCP server."""
        request = InvocationRequest(tool_name=name, arguments=arguments or {})
        raw = self.transport.send("tools/call", request.to_params(), timeout)
        return InvocationResult.from_wire(_expect_object("tools/call", raw))
