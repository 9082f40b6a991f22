"""Invocation executor - runs one tool call under its own deadline."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Union

from mcprobe.core.errors import InvocationError
from mcprobe.mcp.client import MCPClient
from mcprobe.mcp.schema import InvocationRequest, InvocationResult, ToolDescriptor
from mcprobe.mcp.transport import MCPTransportError

logger = logging.getLogger(__name__)


class CallScope:
    """
    Deadline for a single tool call.

    Opened right before the request is submitted and closed right after, so
    one call never spends another call's budget.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._deadline: Optional[float] = None

    def __enter__(self) -> "CallScope":
        self._deadline = time.monotonic() + self.timeout
        return self

    def __exit__(self, *exc: Any) -> None:
        self._deadline = None

    @property
    def active(self) -> bool:
        return self._deadline is not None

    def remaining(self) -> float:
        if self._deadline is None:
            return self.timeout
        return max(self._deadline - time.monotonic(), 0.0)


class InvocationExecutor:
    """
    Submits tool calls to the protocol client.

    ``call_timeout`` bounds each call on its own; the connection timeout used
    for handshake and listings is deliberately not known here.
    """

    def __init__(self, client: MCPClient, call_timeout: float):
        self._client = client
        self.call_timeout = call_timeout

    def build_request(self, tool: Union[ToolDescriptor, str], arguments: Optional[Dict[str, Any]]) -> InvocationRequest:
        name = tool.name if isinstance(tool, ToolDescriptor) else tool
        return InvocationRequest(tool_name=name, arguments=dict(arguments or {}))

    def execute(self, tool: Union[ToolDescriptor, str], arguments: Optional[Dict[str, Any]] = None) -> InvocationResult:
        """
        Call ``tool`` with ``arguments`` and return the server's result.

        Raises InvocationError with the underlying message on any transport
        or protocol failure, including deadline expiry.
        """
        request = self.build_request(tool, arguments)
        t0 = time.perf_counter()
        with CallScope(self.call_timeout) as scope:
            try:
                result = self._client.call_tool(request.tool_name, request.arguments, timeout=scope.remaining())
            except MCPTransportError as exc:
                logger.debug("Tool call %s failed: %s", request.tool_name, exc)
                raise InvocationError(str(exc), tool_name=request.tool_name) from exc
        logger.debug("Tool call %s finished in %d ms", request.tool_name, int((time.perf_counter() - t0) * 1000))
        return result
