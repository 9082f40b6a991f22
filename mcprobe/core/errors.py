"""
mcprobe error types and failure classification.

Local failures (bad parameters, closed input) are raised as ProbeError
subclasses. Anything that goes wrong while talking to the server ends up as
an InvocationError. Both are turned into a ClassifiedError before being shown
to the operator.
"""

from enum import Enum
from typing import Tuple, Union

from pydantic import BaseModel, ConfigDict


class ProbeError(Exception):
    """Base class for mcprobe failures."""


class ParameterError(ProbeError):
    """Parameters could not be parsed or validated."""


class ParameterCoercionError(ParameterError):
    """A value typed at a prompt does not fit the declared type."""


class RequiredParameterMissingError(ParameterError):
    """A required parameter was left empty after the re-prompt."""

    def __init__(self, name: str):
        super().__init__(f"required parameter '{name}' cannot be empty")
        self.name = name


class InputClosedError(ProbeError):
    """The input stream ended while a value was still expected."""


class InvocationError(ProbeError):
    """The server or transport failed while running a tool call."""

    def __init__(self, message: str, tool_name: str = ""):
        super().__init__(message)
        self.tool_name = tool_name


class ErrorCategory(str, Enum):
    NOT_FOUND = "not_found"
    PARAMETER_VALIDATION = "parameter_validation"
    PARAMETER_VALIDATION_REQUIRED_MISSING = "parameter_validation_required_missing"
    TIMEOUT = "timeout"
    SESSION_EXPIRED = "session_expired"
    UNKNOWN = "unknown"


HINTS = {
    ErrorCategory.NOT_FOUND: (
        "Tool not found. Use --list-only (or 'list' in interactive mode) to see available tools.",
    ),
    ErrorCategory.PARAMETER_VALIDATION_REQUIRED_MISSING: (
        "The server requires parameters that weren't provided.",
        "This may indicate the tool schema doesn't correctly mark required parameters.",
        "Try calling the tool again and provide values for parameters that seem required.",
    ),
    ErrorCategory.PARAMETER_VALIDATION: (
        "Parameter error. Check parameter format and required fields.",
    ),
    ErrorCategory.TIMEOUT: (
        "Request timed out. Try increasing the timeout with --call-timeout (tool calls) or --timeout (connection).",
    ),
    ErrorCategory.SESSION_EXPIRED: (
        "Session expired. Please restart mcprobe.",
    ),
    ErrorCategory.UNKNOWN: (
        "The call failed for a reason mcprobe does not recognize.",
    ),
}


class ClassifiedError(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: ErrorCategory
    original_message: str
    hints: Tuple[str, ...] = ()


def classify_error(error: Union[str, BaseException, None]) -> ClassifiedError:
    """
    Assign a failure exactly one category. First match wins:

    1. "not found"                        -> NOT_FOUND
    2. "parameter" and "required"         -> PARAMETER_VALIDATION_REQUIRED_MISSING
    3. "parameter"                        -> PARAMETER_VALIDATION
    4. "timeout"                          -> TIMEOUT
    5. "invalid session id" (any case)    -> SESSION_EXPIRED
    6. anything else                      -> UNKNOWN
    """
    try:
        message = "" if error is None else str(error)
    except Exception:
        message = repr(error)

    if "not found" in message:
        category = ErrorCategory.NOT_FOUND
    elif "parameter" in message and "required" in message:
        category = ErrorCategory.PARAMETER_VALIDATION_REQUIRED_MISSING
    elif "parameter" in message:
        category = ErrorCategory.PARAMETER_VALIDATION
    elif "timeout" in message:
        category = ErrorCategory.TIMEOUT
    elif "invalid session id" in message.lower():
        category = ErrorCategory.SESSION_EXPIRED
    else:
        category = ErrorCategory.UNKNOWN

    return ClassifiedError(category=category, original_message=message, hints=HINTS[category])
