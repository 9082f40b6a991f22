"""
mcprobe Configuration - Configuration loading and validation.

This module provides the Config class for reading mcprobe defaults and named
server profiles from both global (~/.mcprobe/config.yaml) and local
(.mcprobe/config.yaml) sources. The configuration is read-only input;
mcprobe never writes it back.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Raised when there's a configuration error."""

    pass


class DefaultsConfig(BaseModel):
    """Defaults applied when a command-line flag is not given."""

    transport: str = "sse"
    timeout: float = 30.0
    call_timeout: float = 300.0
    verbose: bool = True

    @field_validator("timeout", "call_timeout")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value


class ServerProfile(BaseModel):
    """A named MCP server (``mcprobe --server <name>``)."""

    url: Optional[str] = None
    transport: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    command: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)


class ProbeConfig(BaseModel):
    """Complete mcprobe configuration schema."""

    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    servers: Dict[str, ServerProfile] = Field(default_factory=dict)


class Config:
    """
    mcprobe configuration manager.

    Handles loading, merging, and validating configuration from:
    - Global: ~/.mcprobe/config.yaml
    - Local: .mcprobe/config.yaml (nearest parent directory)

    Local configuration overrides global configuration.

    Example:
        >>> config = Config.load()
        >>> profile = config.get_server("staging")
        >>> config.merged.defaults.call_timeout
        300.0
    """

    GLOBAL_CONFIG_DIR = Path.home() / ".mcprobe"
    LOCAL_CONFIG_DIR = Path(".mcprobe")

    def __init__(
        self,
        global_config: Optional[Dict[str, Any]] = None,
        local_config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize Config.

        Args:
            global_config: Global configuration dictionary.
            local_config: Local (project) configuration dictionary.
        """
        self._global_config = global_config or {}
        self._local_config = local_config or {}
        self._merged: Optional[ProbeConfig] = None

    @classmethod
    def load(cls) -> "Config":
        """
        Load configuration from default locations.

        Returns:
            Config instance with loaded configuration.
        """
        global_config = cls._load_yaml(cls.GLOBAL_CONFIG_DIR / "config.yaml")
        local_config = cls._load_yaml(cls._find_local_config())

        return cls(global_config=global_config, local_config=local_config)

    @classmethod
    def _load_yaml(cls, path: Optional[Path]) -> Dict[str, Any]:
        """Load YAML file if it exists."""
        if path is None or not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Failed to load config from {path}: top level must be a mapping")
        return data

    @classmethod
    def _find_local_config(cls) -> Optional[Path]:
        """Find the local config file by walking up the directory tree."""
        current = Path.cwd()
        while current != current.parent:
            config_path = current / cls.LOCAL_CONFIG_DIR / "config.yaml"
            if config_path.exists():
                return config_path
            current = current.parent
        return None

    def get_merged_config(self) -> Dict[str, Any]:
        """Get the merged configuration as a dictionary."""
        return self._deep_merge(self._global_config.copy(), self._local_config)

    @property
    def merged(self) -> ProbeConfig:
        """Get the validated merged configuration."""
        if self._merged is None:
            try:
                self._merged = ProbeConfig(**self.get_merged_config())
            except (ValidationError, TypeError) as e:
                raise ConfigError(f"Invalid configuration: {e}")
        return self._merged

    def get_server(self, name: str) -> ServerProfile:
        """Look up a named server profile."""
        profile = self.merged.servers.get(name)
        if profile is None:
            known = ", ".join(sorted(self.merged.servers)) or "(none configured)"
            raise ConfigError(f"Unknown server profile '{name}'. Known profiles: {known}")
        return profile

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
