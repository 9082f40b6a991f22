"""
mcprobe REPL - interactive tool calling.

A small command loop over a cached tool catalogue. Each call collects
parameters, runs under its own call timeout and prints the result; a failed
call is reported and the loop carries on.
"""

from enum import Enum
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

from mcprobe.core.errors import InputClosedError, ProbeError, classify_error
from mcprobe.core.executor import InvocationExecutor
from mcprobe.core.formatter import ResultFormatter
from mcprobe.core.params import InputSession, ParameterCollector
from mcprobe.mcp.client import MCPClient
from mcprobe.mcp.schema import ToolDescriptor
from mcprobe.mcp.transport import MCPTransportError


class ReplState(str, Enum):
    LISTENING = "listening"
    AWAITING_TOOL_SELECTION = "awaiting_tool_selection"
    AWAITING_PARAMETER_INPUT = "awaiting_parameter_input"
    EXITING = "exiting"


EXIT_COMMANDS = ("exit", "quit", "q")
HELP_COMMANDS = ("help", "h", "?")
LIST_COMMANDS = ("list", "ls")
CALL_COMMANDS = ("call", "c")
REFRESH_COMMANDS = ("refresh",)

COMMAND_WORDS = EXIT_COMMANDS + HELP_COMMANDS + LIST_COMMANDS + CALL_COMMANDS + REFRESH_COMMANDS


class ProbeREPL:
    """
    Interactive command processor.

    The input session and the tool catalogue belong to the REPL for the whole
    session; nothing else reads from the session while the REPL is running.
    """

    def __init__(
        self,
        client: MCPClient,
        tools: List[ToolDescriptor],
        executor: InvocationExecutor,
        session: InputSession,
        formatter: Optional[ResultFormatter] = None,
        connect_timeout: float = 30.0,
        console: Optional[Console] = None,
    ):
        self.client = client
        self.tools = list(tools)
        self.executor = executor
        self.session = session
        self.console = console or session.console
        self.formatter = formatter or ResultFormatter(self.console)
        self.collector = ParameterCollector(session, self.console)
        self.connect_timeout = connect_timeout
        self.state = ReplState.LISTENING

    # ── Output ────────────────────────────────────────────────────────────

    def _print_banner(self) -> None:
        self.console.print("\n[bold]=== Interactive Tool Calling Mode ===[/bold]")
        self.console.print("Type 'help' for commands, 'exit' to quit")

    def _print_help(self) -> None:
        help_text = """
[bold]Commands:[/bold]
  list, ls         List available tools
  call, c          Call a tool (guided selection)
  call 3, c 3      Call tool number 3 directly
  call <name>      Call a tool by name
  3                Call tool number 3 directly
  refresh          Re-fetch the tool list from the server
  help, h, ?       Show this help
  exit, quit, q    Exit interactive mode
"""
        self.console.print(Panel(help_text.strip(), title="mcprobe Help", border_style="blue"))

    def _print_tools(self) -> None:
        self.console.print(f"\nAvailable tools ({len(self.tools)}):", markup=False)
        for i, tool in enumerate(self.tools, 1):
            line = f"  {i}. {tool.name}"
            if tool.description:
                line += f" - {tool.description}"
            self.console.print(line, markup=False, highlight=False)

    def _error(self, message: str) -> None:
        self.console.print(message, markup=False, highlight=False, style="yellow")

    # ── Tool selection ────────────────────────────────────────────────────

    def resolve_tool(self, token: str) -> Optional[ToolDescriptor]:
        """Find a tool by 1-based number or exact name. Prints an error on a miss."""
        try:
            index = int(token)
        except ValueError:
            for tool in self.tools:
                if tool.name == token:
                    return tool
            self._error(f"Invalid tool number: {token}")
            return None

        if 1 <= index <= len(self.tools):
            return self.tools[index - 1]
        self._error(f"Invalid tool number: {token} (choose 1-{len(self.tools)})")
        return None

    def _guided_selection(self) -> None:
        self.state = ReplState.AWAITING_TOOL_SELECTION
        self._print_tools()
        choice = self.session.read_line("\nEnter tool number (or 'cancel'): ")
        if choice is None:
            self.state = ReplState.EXITING
            return
        self.state = ReplState.LISTENING
        if choice in ("", "cancel"):
            return
        tool = self.resolve_tool(choice)
        if tool is not None:
            self.invoke(tool)

    # ── Calling ───────────────────────────────────────────────────────────

    def invoke(self, tool: ToolDescriptor) -> None:
        """Collect parameters for ``tool``, call it and print the outcome."""
        self.state = ReplState.AWAITING_PARAMETER_INPUT
        self.console.print(f"\nCalling tool: {tool.name}", markup=False, style="bold")
        if tool.description:
            self.console.print(f"Description: {tool.description}", markup=False)

        try:
            params = self.collector.collect(tool)
            self.formatter.render_request(tool.name, params)
            self.console.print(f"\nCalling tool '{tool.name}'...", markup=False)
            result = self.executor.execute(tool, params)
            self.formatter.render_result(result)
        except InputClosedError:
            self.state = ReplState.EXITING
            return
        except ProbeError as exc:
            self.formatter.render_error(classify_error(exc), tool.name)

        self.state = ReplState.LISTENING

    def refresh(self) -> None:
        try:
            self.tools = self.client.list_tools(self.connect_timeout)
        except MCPTransportError as exc:
            self.formatter.render_error(classify_error(exc))
            return
        self.console.print(f"Tool list refreshed: {len(self.tools)} tools")

    # ── Command loop ──────────────────────────────────────────────────────

    def handle_line(self, line: str) -> ReplState:
        """Process one line typed at the ``>`` prompt and return the new state."""
        parts = line.split()
        if not parts:
            return self.state

        command, args = parts[0], parts[1:]
        lowered = command.lower()

        if lowered in EXIT_COMMANDS:
            self.console.print("Exiting interactive mode...")
            self.state = ReplState.EXITING
        elif lowered in HELP_COMMANDS:
            self._print_help()
        elif lowered in LIST_COMMANDS:
            self._print_tools()
        elif lowered in REFRESH_COMMANDS:
            self.refresh()
        elif lowered in CALL_COMMANDS:
            if args:
                tool = self.resolve_tool(args[0])
                if tool is not None:
                    self.invoke(tool)
            else:
                self._guided_selection()
        elif _is_integer(command):
            tool = self.resolve_tool(command)
            if tool is not None:
                self.invoke(tool)
        else:
            self._error(f"Unknown command: {command} (type 'help' for commands)")

        return self.state

    def run(self) -> None:
        """Run the loop until ``exit`` or end of input."""
        self._print_banner()

        while self.state is not ReplState.EXITING:
            try:
                line = self.session.read_line("\n> ")
                if line is None:
                    break
                self.handle_line(line)
            except KeyboardInterrupt:
                self.console.print("\n[dim]Interrupted. Type 'exit' to quit.[/dim]")
                if self.state is not ReplState.EXITING:
                    self.state = ReplState.LISTENING

        self.state = ReplState.EXITING


def _is_integer(token: str) -> bool:
    try:
        int(token)
    except ValueError:
        return False
    return True


def init_readline() -> None:
    """Tab-completion for REPL commands when the terminal supports readline."""
    try:
        import readline
    except ImportError:
        return

    def completer(text, state):
        matches = [c for c in COMMAND_WORDS if c.startswith(text)]
        return matches[state] if state < len(matches) else None

    readline.set_completer(completer)
    readline.parse_and_bind("tab: complete")
