"""
Discovery and listing output.

Discovery walks every capability the server advertises. A failing section
prints a warning and the walk continues; only the handshake is fatal.
"""

import json
from typing import Any, List

from rich.console import Console

from mcprobe.core.schema import parse_input_schema
from mcprobe.mcp.client import MCPClient
from mcprobe.mcp.schema import InitializeResult, ServerCapabilities, ToolDescriptor
from mcprobe.mcp.transport import MCPTransportError


def _plain(console: Console, text: str = "", **kwargs: Any) -> None:
    console.print(text, markup=False, highlight=False, **kwargs)


def print_initialize_result(console: Console, result: InitializeResult) -> None:
    _plain(console, f"Server info: {result.server_info.name} v{result.server_info.version}")
    _plain(console, f"Protocol version: {result.protocol_version}")
    _plain(console, "\nServer capabilities received:")
    print_server_capabilities(console, result.capabilities)


def print_server_capabilities(console: Console, caps: ServerCapabilities) -> None:
    if caps.logging is not None:
        _plain(console, "  - Logging: supported")
    if caps.prompts is not None:
        _plain(console, f"  - Prompts: supported (list_changed: {bool(caps.prompts.get('listChanged'))})")
    if caps.resources is not None:
        _plain(
            console,
            f"  - Resources: supported (subscribe: {bool(caps.resources.get('subscribe'))}, "
            f"list_changed: {bool(caps.resources.get('listChanged'))})",
        )
    if caps.tools is not None:
        _plain(console, f"  - Tools: supported (list_changed: {bool(caps.tools.get('listChanged'))})")
    if caps.experimental:
        _plain(console, f"  - Experimental capabilities: {caps.experimental}")


def format_input_schema(raw: Any, indent: str) -> str:
    """Human-readable summary of a tool's input schema."""
    schema = parse_input_schema(raw)
    lines = [f"{indent}Type: {schema.type}"]
    if schema.required:
        lines.append(f"{indent}Required: {', '.join(schema.required)}")
    else:
        lines.append(f"{indent}Required: (none)")

    if schema.properties:
        lines.append(f"{indent}Properties:")
        for name, prop in schema.properties.items():
            details = [f"type: {prop.type}"]
            if prop.description:
                details.append(f"description: {prop.description}")
            if prop.enum is not None:
                details.append(f"enum: {list(prop.enum)}")
            if prop.default is not None:
                details.append(f"default: {prop.default}")
            lines.append(f"{indent}  - {name}: ({', '.join(details)})")

    defs = (raw.get("$defs") or raw.get("definitions")) if isinstance(raw, dict) else None
    if isinstance(defs, dict) and defs:
        lines.append(f"{indent}Definitions:")
        for def_name, def_value in defs.items():
            body = json.dumps(def_value, indent=2).replace("\n", "\n" + indent + "    ")
            lines.append(f"{indent}  - {def_name}: {body}")
    return "\n".join(lines)


def print_tools(console: Console, tools: List[ToolDescriptor], verbose: bool) -> None:
    _plain(console, f"Found {len(tools)} tools:\n")
    for i, tool in enumerate(tools, 1):
        _plain(console, f"  {i}. {tool.name}")
        if verbose:
            if tool.description:
                _plain(console, f"     Description: {tool.description}")
            _plain(console, "     Input Schema:")
            _plain(console, format_input_schema(tool.input_schema, "       "))
            _plain(console)
    if not tools:
        _plain(console, "  (No tools available)\n")


def _print_resources(console: Console, client: MCPClient, timeout: float, verbose: bool) -> None:
    _plain(console, "Requesting list of available resources...")
    resources = client.list_resources(timeout)
    _plain(console, f"Found {len(resources)} resources:\n")
    for i, resource in enumerate(resources, 1):
        _plain(console, f"  {i}. {resource.uri}")
        if verbose:
            if resource.name:
                _plain(console, f"     Name: {resource.name}")
            if resource.description:
                _plain(console, f"     Description: {resource.description}")
            if resource.mime_type:
                _plain(console, f"     MIME Type: {resource.mime_type}\n")
    if not resources:
        _plain(console, "  (No resources available)\n")

    _plain(console, "Requesting list of available resource templates...")
    try:
        templates = client.list_resource_templates(timeout)
    except MCPTransportError as exc:
        _plain(console, f"Warning: Failed to list resource templates: {exc}", style="yellow")
        return
    _plain(console, f"Found {len(templates)} resource templates:\n")
    for i, template in enumerate(templates, 1):
        _plain(console, f"  {i}. {template.uri_template or '(empty template)'}")
        if verbose:
            if template.name:
                _plain(console, f"     Name: {template.name}")
            if template.description:
                _plain(console, f"     Description: {template.description}")
            if template.mime_type:
                _plain(console, f"     MIME Type: {template.mime_type}\n")
    if not templates:
        _plain(console, "  (No resource templates available)\n")


def _print_prompts(console: Console, client: MCPClient, timeout: float, verbose: bool) -> None:
    _plain(console, "Requesting list of available prompts...")
    prompts = client.list_prompts(timeout)
    _plain(console, f"Found {len(prompts)} prompts:\n")
    for i, prompt in enumerate(prompts, 1):
        _plain(console, f"  {i}. {prompt.name}")
        if verbose:
            if prompt.description:
                _plain(console, f"     Description: {prompt.description}")
            if prompt.arguments:
                _plain(console, "     Arguments:")
                for arg in prompt.arguments:
                    line = f"       - {arg.name}"
                    if arg.description:
                        line += f": {arg.description}"
                    if arg.required:
                        line += " (required)"
                    _plain(console, line)
    if not prompts:
        _plain(console, "  (No prompts available)\n")


def run_discovery(console: Console, client: MCPClient, timeout: float, verbose: bool) -> None:
    """Enumerate tools, resources and prompts the server supports."""
    caps = client.get_server_capabilities()

    console.print("\n[bold]--- Tools Capability ---[/bold]")
    if caps.supports_tools:
        _plain(console, "Requesting list of available tools...")
        try:
            print_tools(console, client.list_tools(timeout), verbose)
        except MCPTransportError as exc:
            _plain(console, f"Warning: Tools test failed: {exc}", style="yellow")
    else:
        _plain(console, "Tools capability not supported by server")

    console.print("\n[bold]--- Resources Capability ---[/bold]")
    if caps.supports_resources:
        try:
            _print_resources(console, client, timeout, verbose)
        except MCPTransportError as exc:
            _plain(console, f"Warning: Resources test failed: {exc}", style="yellow")
    else:
        _plain(console, "Resources capability not supported by server")

    console.print("\n[bold]--- Prompts Capability ---[/bold]")
    if caps.supports_prompts:
        try:
            _print_prompts(console, client, timeout, verbose)
        except MCPTransportError as exc:
            _plain(console, f"Warning: Prompts test failed: {exc}", style="yellow")
    else:
        _plain(console, "Prompts capability not supported by server")


def list_tools_only(console: Console, client: MCPClient, timeout: float, verbose: bool) -> None:
    """Print the tool catalogue; raises MCPTransportError if listing fails."""
    console.print("\n[bold]--- Available Tools ---[/bold]")
    if not client.get_server_capabilities().supports_tools:
        _plain(console, "Tools capability not supported by server")
        return

    _plain(console, "Requesting list of available tools...")
    tools = client.list_tools(timeout)
    _plain(console, f"\nFound {len(tools)} tools:\n")
    for i, tool in enumerate(tools, 1):
        line = f"{i}. {tool.name}"
        if tool.description and verbose:
            line += f" - {tool.description}"
        _plain(console, line)
        if verbose and tool.input_schema:
            _plain(console, "   Input Schema:")
            body = json.dumps(tool.input_schema, indent=2, default=str)
            for schema_line in body.splitlines():
                _plain(console, f"   {schema_line}")
            _plain(console)
    if not tools:
        _plain(console, "  (No tools available)")
