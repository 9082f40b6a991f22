"""Rendering of tool requests, results, and classified failures."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from rich.console import Console

from mcprobe.core.errors import ClassifiedError
from mcprobe.mcp.schema import (
    AudioContent,
    ContentItem,
    ImageContent,
    InvocationResult,
    TextContent,
    UnknownContent,
)


def render_content_item(item: ContentItem) -> str:
    """Text for one content item. Every variant produces output."""
    if isinstance(item, TextContent):
        return item.text
    if isinstance(item, ImageContent):
        return f"Image (MIME: {item.mime_type or 'unknown'})"
    if isinstance(item, AudioContent):
        return f"Audio (MIME: {item.mime_type or 'unknown'})"
    if isinstance(item, UnknownContent):
        return f"Unrecognized content type: {item.type}"
    return f"Unrecognized content type: {type(item).__name__}"


class ResultFormatter:
    """Prints call requests, results and failures to a rich console."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = True):
        self.console = console or Console()
        self.verbose = verbose

    def _plain(self, text: str, **kwargs: Any) -> None:
        self.console.print(text, markup=False, highlight=False, **kwargs)

    def render_request(self, tool_name: str, params: Dict[str, Any]) -> None:
        if not self.verbose:
            return
        self.console.print("\n[bold]=== Sending Tool Call ===[/bold]")
        self._plain(f"Tool: {tool_name}")
        if params:
            self.console.print("Parameters:")
            for key, value in params.items():
                self._plain(f"  {key}: {value!r} ({type(value).__name__})")
        else:
            self.console.print("Parameters: (none)")
        self.console.print()

    def render_result(self, result: InvocationResult) -> None:
        self.console.print("\n[bold]=== Tool Call Result ===[/bold]")
        if result.succeeded:
            self.console.print("[green]Tool call succeeded:[/green]")
        else:
            self.console.print("[red]Tool call failed:[/red]")

        many = len(result.content) > 1
        for i, item in enumerate(result.content, 1):
            if many:
                self.console.print(f"\nContent {i}:")
            else:
                self.console.print()
            self._plain(render_content_item(item))

        if not result.content:
            self.console.print("[dim](no content)[/dim]")

        if self.verbose and result.structured_content is not None:
            self.console.print("\nStructured content:")
            self._plain(json.dumps(result.structured_content, indent=2, default=str))

    def render_error(
        self, error: ClassifiedError, tool_name: Optional[str] = None, header: Optional[str] = None
    ) -> None:
        if header is None:
            header = f"Failed to call tool '{tool_name}':" if tool_name else "Operation failed:"
        self._plain(header, style="bold red")
        for hint in error.hints:
            self._plain(f"   {hint}", style="yellow")
        self._plain(f"   Error: {error.original_message}")
