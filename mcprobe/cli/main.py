"""
mcprobe CLI - connect to an MCP server and exercise its tools.

Run `mcprobe --url <server>` for a capability walk, or add --list-only,
--call <tool> or --interactive for the other modes.
"""

import logging
import sys
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler

from mcprobe import __version__
from mcprobe.cli.discovery import list_tools_only, print_initialize_result, run_discovery
from mcprobe.cli.options import DURATION, parse_headers
from mcprobe.cli.repl import ProbeREPL, init_readline
from mcprobe.core.errors import ParameterError, ProbeError, classify_error
from mcprobe.core.executor import InvocationExecutor
from mcprobe.core.formatter import ResultFormatter
from mcprobe.core.params import InputSession, parse_direct_params
from mcprobe.mcp.client import MCPClient
from mcprobe.mcp.transport import TRANSPORTS, MCPTransportError, create_transport
from mcprobe.validation.config import Config, ConfigError

console = Console()


class Mode(str, Enum):
    LIST = "list"
    CALL = "call"
    INTERACTIVE = "interactive"
    DISCOVER = "discover"


def select_mode(list_only: bool, call: Optional[str], interactive: bool) -> Mode:
    """Pick exactly one path: list-only > direct call > interactive > discovery."""
    if list_only:
        return Mode.LIST
    if call:
        return Mode.CALL
    if interactive:
        return Mode.INTERACTIVE
    return Mode.DISCOVER


def call_tool_once(
    client: MCPClient,
    tool_name: str,
    params: Dict[str, Any],
    call_timeout: float,
    formatter: ResultFormatter,
) -> int:
    """
    Direct-call path. A transport or protocol failure is fatal (exit code 1);
    a result the tool itself flags as an error is still a completed call.
    """
    formatter.render_request(tool_name, params)
    formatter.console.print(f"Calling tool '{tool_name}'...", markup=False)
    executor = InvocationExecutor(client, call_timeout)
    try:
        result = executor.execute(tool_name, params)
    except ProbeError as exc:
        formatter.render_error(classify_error(exc), tool_name)
        return 1
    formatter.render_result(result)
    return 0


def run_interactive(
    client: MCPClient,
    connect_timeout: float,
    call_timeout: float,
    formatter: ResultFormatter,
    session: Optional[InputSession] = None,
) -> int:
    """Interactive path: fetch the catalogue once, then hand over to the REPL."""
    out = formatter.console
    if not client.get_server_capabilities().supports_tools:
        out.print("Tools capability not supported by server")
        return 0

    tools = client.list_tools(connect_timeout)
    if not tools:
        out.print("No tools available on this server")
        return 0

    if session is None:
        if sys.stdin.isatty():
            init_readline()
        session = InputSession(out)

    repl = ProbeREPL(
        client,
        tools,
        InvocationExecutor(client, call_timeout),
        session,
        formatter=formatter,
        connect_timeout=connect_timeout,
    )
    repl.run()
    return 0


def dispatch(
    mode: Mode,
    client: MCPClient,
    connect_timeout: float,
    call_timeout: float,
    verbose: bool,
    formatter: ResultFormatter,
    tool_name: Optional[str] = None,
    params: Optional[Dict[str, Any]] = None,
    session: Optional[InputSession] = None,
) -> int:
    """Run the chosen mode against an initialized client and return the exit code."""
    out = formatter.console
    try:
        if mode is Mode.LIST:
            list_tools_only(out, client, connect_timeout, verbose)
            return 0
        if mode is Mode.CALL:
            return call_tool_once(client, tool_name or "", params or {}, call_timeout, formatter)
        if mode is Mode.INTERACTIVE:
            return run_interactive(client, connect_timeout, call_timeout, formatter, session)
        run_discovery(out, client, connect_timeout, verbose)
        return 0
    except MCPTransportError as exc:
        formatter.render_error(classify_error(exc))
        return 1


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


def _fatal(formatter: ResultFormatter, header: str, error: Exception) -> None:
    formatter.render_error(classify_error(error), header=f"{header}:")
    sys.exit(1)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--url", "-u", help="MCP server URL (sse and http transports)")
@click.option("--transport", "-t", "transport_kind", type=click.Choice(TRANSPORTS, case_sensitive=False),
              default=None, help="Transport mode (default: sse, or the config default)")
@click.option("--command", "server_command", help="Server command to spawn (stdio transport)")
@click.option("--arg", "server_args", multiple=True, help="Argument for --command (repeatable)")
@click.option("--headers", default="", help="HTTP headers as 'key1:value1,key2:value2'")
@click.option("--server", "-s", "profile", help="Named server profile from .mcprobe/config.yaml")
@click.option("--timeout", type=DURATION, default=None,
              help="Connection timeout for initialization and listing (default: 30s)")
@click.option("--call-timeout", type=DURATION, default=None,
              help="Timeout for each tool call (default: 300s)")
@click.option("--call", "call_name", help="Name of the tool to call")
@click.option("--params", default="{}", help="JSON object of parameters for --call")
@click.option("--list-only", is_flag=True, help="Only list available tools")
@click.option("--interactive", "-i", is_flag=True, help="Interactive tool calling")
@click.option("--verbose/--quiet", default=None, help="Verbose output (default: on)")
@click.option("--debug", is_flag=True, help="Log protocol traffic to stderr")
@click.version_option(__version__, prog_name="mcprobe")
def cli(
    url: Optional[str],
    transport_kind: Optional[str],
    server_command: Optional[str],
    server_args: Tuple[str, ...],
    headers: str,
    profile: Optional[str],
    timeout: Optional[float],
    call_timeout: Optional[float],
    call_name: Optional[str],
    params: str,
    list_only: bool,
    interactive: bool,
    verbose: Optional[bool],
    debug: bool,
) -> None:
    """
    mcprobe - test and call tools on an MCP server.

    \b
    Examples:
        mcprobe --url http://localhost:8080/sse
        mcprobe --url http://localhost:8080/mcp -t http --list-only
        mcprobe --url ... --call calculate --params '{"operation":"add","x":5,"y":3}'
        mcprobe --url ... --interactive --call-timeout 10m
        mcprobe -t stdio --command python --arg server.py -i
    """
    _configure_logging(debug)

    try:
        config = Config.load()
        defaults = config.merged.defaults
        server = config.get_server(profile) if profile else None
    except ConfigError as e:
        _fail(str(e))
        return

    header_map: Dict[str, str] = dict(server.headers) if server else {}
    header_map.update(parse_headers(headers))
    url = url or (server.url if server else None)
    server_command = server_command or (server.command if server else None)
    if not server_args and server:
        server_args = tuple(server.args)
    kind = (transport_kind or (server.transport if server else None)
            or ("stdio" if server_command and not url else defaults.transport)).lower()
    connect_timeout = timeout or defaults.timeout
    call_timeout = call_timeout or defaults.call_timeout
    verbose = defaults.verbose if verbose is None else verbose

    mode = select_mode(list_only, call_name, interactive)

    # Reject bad --params before opening any connection
    call_params: Dict[str, Any] = {}
    if mode is Mode.CALL:
        try:
            call_params = parse_direct_params(params)
        except ParameterError as e:
            ResultFormatter(console, verbose).render_error(classify_error(e), header="Input validation failed:")
            sys.exit(1)

    try:
        transport = create_transport(
            kind,
            url=url,
            headers=header_map,
            command=server_command,
            args=list(server_args),
            env=dict(server.env) if server else None,
        )
    except MCPTransportError as e:
        _fail(str(e))
        return

    console.print("[bold]=== MCP Server Test Tool ===[/bold]")
    console.print(f"Server: {transport.describe()}", markup=False)
    console.print(f"Transport: {kind}")
    console.print(f"Timeout: {connect_timeout:g}s (calls: {call_timeout:g}s)")
    if header_map and verbose:
        console.print(f"Headers: {', '.join(header_map)}", markup=False)
    console.print()

    formatter = ResultFormatter(console, verbose)
    client = MCPClient(transport)
    try:
        console.print("Starting client connection...")
        try:
            client.connect(connect_timeout)
        except MCPTransportError as e:
            _fatal(formatter, "Failed to start client", e)
        console.print("Client connection started successfully")

        console.print("\nPerforming initialization handshake...")
        try:
            init_result = client.initialize(connect_timeout)
        except MCPTransportError as e:
            _fatal(formatter, "Failed to initialize", e)
            return
        if verbose:
            print_initialize_result(console, init_result)
        console.print("\nInitialization completed successfully")

        exit_code = dispatch(
            mode,
            client,
            connect_timeout,
            call_timeout,
            verbose,
            formatter,
            tool_name=call_name,
            params=call_params,
        )
    finally:
        client.close()

    console.print("\n=== Finished ===")
    sys.exit(exit_code)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
