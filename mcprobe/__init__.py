"""
mcprobe - Interactive diagnostic client for MCP tool servers.

Connects to an MCP endpoint, lists what it exposes and lets an operator
call its tools with correctly typed parameters.

Modes:
- Discovery (default): server info, capabilities, tools, resources, prompts
- List-only: the tool catalogue with input schemas
- Direct call: one tool, parameters as a JSON blob
- Interactive: a small REPL that prompts for each parameter

Architecture:
- mcprobe.mcp   talks to the server (sse, http, stdio transports)
- mcprobe.core  turns input schemas into prompts, values and calls
- mcprobe.cli   wires both to the terminal
"""

__version__ = "1.0.0"
__author__ = "mcprobe contributors"
__license__ = "MIT"

from mcprobe.core.errors import ClassifiedError, ErrorCategory, classify_error
from mcprobe.core.executor import InvocationExecutor
from mcprobe.core.params import InputSession, ParameterCollector, parse_direct_params
from mcprobe.core.schema import PropertySchema, SchemaNode, parse_input_schema
from mcprobe.mcp.client import MCPClient

__all__ = [
    "ClassifiedError",
    "ErrorCategory",
    "classify_error",
    "InvocationExecutor",
    "InputSession",
    "ParameterCollector",
    "parse_direct_params",
    "PropertySchema",
    "SchemaNode",
    "parse_input_schema",
    "MCPClient",
    "__version__",
]
