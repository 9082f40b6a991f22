"""Shared fixtures: a scripted protocol client and capturing consoles."""

import io
import time
from typing import Any, Dict, List, Optional

import pytest
from rich.console import Console

from mcprobe.core.params import InputSession
from mcprobe.mcp.schema import InvocationResult, ServerCapabilities, TextContent, ToolDescriptor


ECHO_TOOL = ToolDescriptor(
    name="echo",
    description="Echo a message back",
    input_schema={
        "type": "object",
        "properties": {"message": {"type": "string", "description": "text"}},
        "required": ["message"],
    },
)


class FakeClient:
    """Stands in for MCPClient; records every call_tool invocation."""

    def __init__(
        self,
        tools: Optional[List[ToolDescriptor]] = None,
        capabilities: Optional[ServerCapabilities] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.tools = list(tools) if tools is not None else [ECHO_TOOL]
        self.capabilities = capabilities or ServerCapabilities(tools={})
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []
        self.list_calls: List[float] = []

    def get_server_capabilities(self) -> ServerCapabilities:
        return self.capabilities

    def list_tools(self, timeout: float) -> List[ToolDescriptor]:
        self.list_calls.append(timeout)
        return list(self.tools)

    def list_resources(self, timeout: float):
        return []

    def list_resource_templates(self, timeout: float):
        return []

    def list_prompts(self, timeout: float):
        return []

    def call_tool(self, name: str, arguments: Dict[str, Any], timeout: float) -> InvocationResult:
        self.calls.append({"name": name, "arguments": dict(arguments), "timeout": timeout})
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return InvocationResult(content=[TextContent(text=f"called {name}")])


def make_console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None, force_terminal=False)


def output_of(console: Console) -> str:
    return console.file.getvalue()


def scripted_session(text: str, console: Optional[Console] = None) -> InputSession:
    return InputSession(console or make_console(), stream=io.StringIO(text))


@pytest.fixture
def console():
    return make_console()


@pytest.fixture
def fake_client():
    return FakeClient()
