"""Tests for the protocol client on top of a scripted transport."""

import pytest

from mcprobe.mcp.client import PROTOCOL_VERSION, MCPClient
from mcprobe.mcp.schema import ImageContent, TextContent
from mcprobe.mcp.transport import MCPTransport, MCPTransportError


class ScriptedTransport(MCPTransport):
    """Replies from a dict of method -> list of results; records traffic."""

    name = "scripted"

    def __init__(self, replies):
        super().__init__()
        self.replies = {method: list(results) for method, results in replies.items()}
        self.sent = []
        self.notifications = []
        self.started_with = None
        self.stopped = False

    def start(self, timeout):
        self.started_with = timeout

    def stop(self):
        self.stopped = True

    def send(self, method, params, timeout):
        self.sent.append((method, params, timeout))
        reply = self.replies[method].pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def notify(self, method, params=None):
        self.notifications.append(method)


INIT_REPLY = {
    "protocolVersion": PROTOCOL_VERSION,
    "serverInfo": {"name": "demo", "version": "0.3"},
    "capabilities": {"tools": {"listChanged": True}, "prompts": {}},
}


class TestInitialize:
    def test_handshake(self):
        transport = ScriptedTransport({"initialize": [INIT_REPLY]})
        client = MCPClient(transport)
        client.connect(30)
        result = client.initialize(30)

        assert transport.started_with == 30
        method, params, timeout = transport.sent[0]
        assert method == "initialize"
        assert params["protocolVersion"] == PROTOCOL_VERSION
        assert params["clientInfo"]["name"] == "mcprobe"
        assert timeout == 30
        assert transport.notifications == ["notifications/initialized"]

        assert result.server_info.name == "demo"
        caps = client.get_server_capabilities()
        assert caps.supports_tools and caps.supports_prompts
        assert not caps.supports_resources

    @pytest.mark.parametrize("reply", [{"capabilities": "none"}, ["not", "an", "object"]])
    def test_malformed_handshake(self, reply):
        transport = ScriptedTransport({"initialize": [reply]})
        with pytest.raises(MCPTransportError):
            MCPClient(transport).initialize(30)
        assert transport.notifications == []

    def test_capabilities_empty_before_handshake(self):
        client = MCPClient(ScriptedTransport({}))
        assert not client.get_server_capabilities().supports_tools

    def test_close_stops_transport(self):
        transport = ScriptedTransport({})
        with MCPClient(transport):
            pass
        assert transport.stopped


class TestListings:
    def test_follows_cursors(self):
        transport = ScriptedTransport({
            "tools/list": [
                {"tools": [{"name": "a", "inputSchema": {"type": "object"}}], "nextCursor": "p2"},
                {"tools": [{"name": "b"}]},
            ]
        })
        tools = MCPClient(transport).list_tools(12)

        assert [t.name for t in tools] == ["a", "b"]
        assert tools[0].input_schema == {"type": "object"}
        assert transport.sent[0] == ("tools/list", None, 12)
        assert transport.sent[1] == ("tools/list", {"cursor": "p2"}, 12)

    def test_skips_malformed_entries(self):
        transport = ScriptedTransport({"tools/list": [{"tools": [{"description": "no name"}, {"name": "ok"}]}]})
        assert [t.name for t in MCPClient(transport).list_tools(5)] == ["ok"]

    def test_resource_templates(self):
        transport = ScriptedTransport({
            "resources/templates/list": [{"resourceTemplates": [{"uriTemplate": "file:///{path}"}]}]
        })
        templates = MCPClient(transport).list_resource_templates(5)
        assert templates[0].uri_template == "file:///{path}"

    @pytest.mark.parametrize("reply", [["tool"], {"tools": "echo"}, {"tools": {"name": "echo"}}])
    def test_malformed_listing(self, reply):
        transport = ScriptedTransport({"tools/list": [reply]})
        with pytest.raises(MCPTransportError, match="Unexpected tools/list result"):
            MCPClient(transport).list_tools(5)

    def test_errors_propagate(self):
        transport = ScriptedTransport({"prompts/list": [MCPTransportError("HTTP 500: boom")]})
        with pytest.raises(MCPTransportError):
            MCPClient(transport).list_prompts(5)


class TestCallTool:
    def test_result(self):
        transport = ScriptedTransport({
            "tools/call": [{
                "content": [
                    {"type": "text", "text": "8"},
                    {"type": "image", "data": "AAAA", "mimeType": "image/png"},
                ],
            }]
        })
        result = MCPClient(transport).call_tool("calculate", {"x": 5}, timeout=300)

        assert transport.sent[0] == ("tools/call", {"name": "calculate", "arguments": {"x": 5}}, 300)
        assert result.succeeded
        assert result.content == [TextContent(text="8"), ImageContent(mime_type="image/png")]

    def test_tool_reported_failure(self):
        transport = ScriptedTransport({
            "tools/call": [{"isError": True, "content": [{"type": "text", "text": "division by zero"}]}]
        })
        result = MCPClient(transport).call_tool("calculate", None, timeout=1)
        assert transport.sent[0][1] == {"name": "calculate", "arguments": {}}
        assert result.succeeded is False

    def test_non_object_result(self):
        transport = ScriptedTransport({"tools/call": [["8"]]})
        with pytest.raises(MCPTransportError, match="Unexpected tools/call result"):
            MCPClient(transport).call_tool("calculate", {}, timeout=1)
