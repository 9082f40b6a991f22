"""Command-line value types: durations and header strings."""

import math
import re
from typing import Dict

import click

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(text: str) -> float:
    """
    Parse ``30s``, ``5m``, ``1m30s``, ``500ms`` or a bare number of seconds.

    Returns seconds. Raises ValueError on anything else or on zero.
    """
    value = text.strip().lower()
    if not value:
        raise ValueError("empty duration")

    try:
        seconds = float(value)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(value):
            if match.start() != pos:
                raise ValueError(f"invalid duration: {text}")
            seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            pos = match.end()
        if pos != len(value):
            raise ValueError(f"invalid duration: {text}")

    if not math.isfinite(seconds) or seconds <= 0:
        raise ValueError(f"duration must be positive: {text}")
    return seconds


class DurationParamType(click.ParamType):
    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationParamType()


def parse_headers(header_str: str) -> Dict[str, str]:
    """Parse ``key1:value1,key2:value2``. Pairs without a colon are ignored."""
    headers: Dict[str, str] = {}
    if not header_str:
        return headers

    for pair in header_str.split(","):
        key, sep, value = pair.strip().partition(":")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers
