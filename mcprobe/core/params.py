"""
Parameter collection - turns operator input into a typed argument dict.

Two paths:
- Direct: a single JSON object string (``--params``).
- Guided: one prompt per schema property, coerced by declared type.

Either path returns a complete dict or raises; a partially collected set is
never handed to the executor.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Optional, TextIO, Union

from rich.console import Console
from rich.text import Text

from mcprobe.core.errors import (
    InputClosedError,
    ParameterCoercionError,
    ParameterError,
    RequiredParameterMissingError,
)
from mcprobe.core.schema import PropertySchema, SchemaNode, parse_input_schema
from mcprobe.mcp.schema import ToolDescriptor

TRUE_TOKENS = {"true", "yes", "y", "1"}


class InputSession:
    """
    Line source shared by the REPL and the collector.

    With no ``stream`` lines come from ``input()`` so terminal line editing
    and history work; tests pass a ``StringIO`` instead.
    """

    def __init__(self, console: Optional[Console] = None, stream: Optional[TextIO] = None):
        self.console = console or Console()
        self._stream = stream

    def read_line(self, prompt: Union[str, Text] = "") -> Optional[str]:
        """Show ``prompt`` and return the stripped line, or None at end of input."""
        if prompt:
            self.console.print(prompt, end="", markup=False, highlight=False)
        if self._stream is None:
            try:
                return input().strip()
            except EOFError:
                return None
        line = self._stream.readline()
        if not line:
            return None
        return line.strip()


def parse_direct_params(raw: Optional[str]) -> Dict[str, Any]:
    """
    Parse a JSON parameter blob.

    ``""`` and ``"{}"`` mean no parameters. Anything else must be a JSON
    object.
    """
    text = (raw or "").strip()
    if text in ("", "{}"):
        return {}
    try:
        params = json.loads(text)
    except ValueError as exc:
        raise ParameterError(f"failed to parse parameters JSON: {exc}") from exc
    if not isinstance(params, dict):
        raise ParameterError(
            f"failed to parse parameters JSON: expected an object, got {type(params).__name__}"
        )
    return params


def _parse_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ParameterCoercionError(f"invalid number for parameter '{name}': {raw}") from None
    if not math.isfinite(value):
        raise ParameterCoercionError(f"invalid number for parameter '{name}': {raw}")
    return value


def coerce_value(name: str, prop: PropertySchema, raw: str) -> Any:
    """Convert prompt text to the declared type of ``prop``."""
    if prop.type in ("number", "integer"):
        number = _parse_float(name, raw)
        value: Any = int(number) if prop.type == "integer" else number
    elif prop.type == "boolean":
        value = raw.lower() in TRUE_TOKENS
    elif prop.type == "array":
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            value = parsed
        else:
            value = [piece.strip() for piece in raw.split(",")]
    elif prop.type == "object":
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if not isinstance(parsed, dict):
            raise ParameterCoercionError(f"invalid JSON object for parameter '{name}': {raw}")
        value = parsed
    else:
        value = raw

    # An untyped property stays a string, so members also match by their printed form.
    if prop.enum is not None and value not in prop.enum and raw not in {str(choice) for choice in prop.enum}:
        choices = ", ".join(str(choice) for choice in prop.enum)
        raise ParameterCoercionError(f"invalid value for parameter '{name}': {raw} (choose one of: {choices})")
    return value


def describe_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


class ParameterCollector:
    """Guided, per-property collection driven by a tool's input schema."""

    def __init__(self, session: InputSession, console: Optional[Console] = None):
        self.session = session
        self.console = console or session.console

    def collect(self, tool: Union[ToolDescriptor, SchemaNode]) -> Dict[str, Any]:
        schema = tool if isinstance(tool, SchemaNode) else parse_input_schema(tool.input_schema)

        if not schema.has_properties:
            return self._collect_free_form()

        if schema.required:
            self.console.print(f"Schema indicates required parameters: {', '.join(schema.required)}", markup=False)
        else:
            self.console.print("Schema indicates no required parameters")

        self.console.print("\nParameter input:")
        self.console.print("• Required parameters must have a value")
        self.console.print("• Optional parameters can be skipped by pressing Enter")
        self.console.print()

        params: Dict[str, Any] = {}
        for name, prop in schema.properties.items():
            required = schema.is_required(name)
            if prop.enum is not None:
                self.console.print(
                    f"    choices: {', '.join(str(choice) for choice in prop.enum)}", markup=False, style="dim"
                )
            raw = self._read(self.prompt_for(name, prop, required))

            if raw == "":
                if not required:
                    self.console.print("    ✓ Skipped (optional)", style="dim")
                    continue
                self.console.print("    This parameter is required. Please enter a value.", style="yellow")
                raw = self._read(self.prompt_for(name, prop, required))
                if raw == "":
                    raise RequiredParameterMissingError(name)

            value = coerce_value(name, prop, raw)
            params[name] = value
            self.console.print(f"    ✓ Set to: {describe_value(value)}", markup=False, style="green")

        self._print_summary(params)
        return params

    @staticmethod
    def prompt_for(name: str, prop: PropertySchema, required: bool) -> str:
        description = f" ({prop.description})" if prop.description else ""
        marker = "[required]" if required else "[optional]"
        return f"  {name}{description} {marker} (type: {prop.type}): "

    def _read(self, prompt: str) -> str:
        line = self.session.read_line(prompt)
        if line is None:
            raise InputClosedError("input closed while collecting parameters")
        return line

    def _collect_free_form(self) -> Dict[str, Any]:
        self.console.print("This tool has no structured parameter schema.")
        line = self.session.read_line("Enter parameters as JSON (or press Enter for no parameters): ")
        if line is None:
            raise InputClosedError("input closed while collecting parameters")
        return parse_direct_params(line)

    def _print_summary(self, params: Dict[str, Any]) -> None:
        if not params:
            self.console.print("\nNo parameters provided")
            return
        lines: List[str] = ["\nParameter summary:"]
        for key, value in params.items():
            lines.append(f"  • {key}: {describe_value(value)}")
        self.console.print("\n".join(lines), markup=False)
