"""mcprobe core - schema interpretation, parameter collection, invocation and rendering."""

from mcprobe.core.errors import ClassifiedError, ErrorCategory, ProbeError, classify_error
from mcprobe.core.executor import CallScope, InvocationExecutor
from mcprobe.core.formatter import ResultFormatter
from mcprobe.core.params import InputSession, ParameterCollector, coerce_value, parse_direct_params
from mcprobe.core.schema import PropertySchema, SchemaNode, parse_input_schema

__all__ = [
    "ClassifiedError",
    "ErrorCategory",
    "ProbeError",
    "classify_error",
    "CallScope",
    "InvocationExecutor",
    "ResultFormatter",
    "InputSession",
    "ParameterCollector",
    "coerce_value",
    "parse_direct_params",
    "PropertySchema",
    "SchemaNode",
    "parse_input_schema",
]
