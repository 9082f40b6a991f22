"""Data models for MCP server info, tool descriptors, call requests, and results."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    """Base for models parsed from camelCase JSON-RPC payloads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ServerInfo(_WireModel):
    name: str = ""
    version: str = ""


class ServerCapabilities(_WireModel):
    """Capability flags advertised by the server during ``initialize``.

    A capability is supported when its entry is present, even if empty.
    """

    tools: Optional[Dict[str, Any]] = None
    resources: Optional[Dict[str, Any]] = None
    prompts: Optional[Dict[str, Any]] = None
    logging: Optional[Dict[str, Any]] = None
    experimental: Optional[Dict[str, Any]] = None

    @property
    def supports_tools(self) -> bool:
        return self.tools is not None

    @property
    def supports_resources(self) -> bool:
        return self.resources is not None

    @property
    def supports_prompts(self) -> bool:
        return self.prompts is not None


class InitializeResult(_WireModel):
    protocol_version: str = Field(default="", alias="protocolVersion")
    server_info: ServerInfo = Field(default_factory=ServerInfo, alias="serverInfo")
    capabilities: ServerCapabilities = Field(default_factory=ServerCapabilities)
    instructions: Optional[str] = None


class ToolDescriptor(_WireModel):
    """One remotely invokable tool.

    ``input_schema`` is kept exactly as the server sent it; use
    :func:`mcprobe.core.schema.parse_input_schema` to normalize it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str
    description: str = ""
    input_schema: Any = Field(default=None, alias="inputSchema")


class Resource(_WireModel):
    uri: str
    name: str = ""
    description: str = ""
    mime_type: str = Field(default="", alias="mimeType")


class ResourceTemplate(_WireModel):
    uri_template: str = Field(default="", alias="uriTemplate")
    name: str = ""
    description: str = ""
    mime_type: str = Field(default="", alias="mimeType")


class PromptArgument(_WireModel):
    name: str
    description: str = ""
    required: bool = False


class Prompt(_WireModel):
    name: str
    description: str = ""
    arguments: List[PromptArgument] = Field(default_factory=list)


# ── Tool calls ───────────────────────────────────────────────────────────


class InvocationRequest(BaseModel):
    """A single ``tools/call`` attempt. Retries build a new request."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)

    def to_params(self) -> Dict[str, Any]:
        return {"name": self.tool_name, "arguments": dict(self.arguments)}


class TextContent(BaseModel):
    type: str = "text"
    text: str


class ImageContent(BaseModel):
    type: str = "image"
    mime_type: str = ""


class AudioContent(BaseModel):
    type: str = "audio"
    mime_type: str = ""


class UnknownContent(BaseModel):
    """Any content item whose tag is not text, image or audio."""

    type: str = "unknown"
    raw: Any = None


ContentItem = Union[TextContent, ImageContent, AudioContent, UnknownContent]


def parse_content_item(raw: Any) -> ContentItem:
    """Map one raw content entry to its variant. Never raises."""
    if not isinstance(raw, dict):
        return UnknownContent(type=type(raw).__name__, raw=raw)

    tag = raw.get("type")
    if tag == "text" and isinstance(raw.get("text"), str):
        return TextContent(text=raw["text"])
    if tag == "image":
        return ImageContent(mime_type=str(raw.get("mimeType") or ""))
    if tag == "audio":
        return AudioContent(mime_type=str(raw.get("mimeType") or ""))
    return UnknownContent(type=str(tag) if tag is not None else "(missing)", raw=raw)


class InvocationResult(BaseModel):
    succeeded: bool = True
    content: List[ContentItem] = Field(default_factory=list)
    structured_content: Optional[Dict[str, Any]] = None

    @classmethod
    def from_wire(cls, raw: Dict[str, Any]) -> "InvocationResult":
        content = raw.get("content")
        if not isinstance(content, list):
            content = []
        structured = raw.get("structuredContent")
        return cls(
            succeeded=not bool(raw.get("isError", False)),
            content=[parse_content_item(item) for item in content],
            structured_content=structured if isinstance(structured, dict) else None,
        )
