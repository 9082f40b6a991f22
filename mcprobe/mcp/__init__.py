"""
MCP protocol client for mcprobe.

Three transports share one blocking JSON-RPC interface:

    sse:    GET event stream + POST to the announced endpoint
    http:   streamable HTTP, one POST per request, optional SSE reply
    stdio:  local server subprocess, one JSON message per line
"""

from mcprobe.mcp.client import MCPClient
from mcprobe.mcp.schema import (
    InitializeResult,
    InvocationRequest,
    InvocationResult,
    ServerCapabilities,
    ToolDescriptor,
)
from mcprobe.mcp.transport import MCPTimeoutError, MCPTransport, MCPTransportError, create_transport

__all__ = [
    "MCPClient",
    "InitializeResult",
    "InvocationRequest",
    "InvocationResult",
    "ServerCapabilities",
    "ToolDescriptor",
    "MCPTimeoutError",
    "MCPTransport",
    "MCPTransportError",
    "create_transport",
]
