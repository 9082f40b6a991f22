"""mcprobe validation - configuration loading."""

from mcprobe.validation.config import Config, ConfigError, ProbeConfig

__all__ = ["Config", "ConfigError", "ProbeConfig"]
