"""Tests for configuration management."""

import tempfile
from pathlib import Path

import pytest

from mcprobe.validation.config import Config, ConfigError, ProbeConfig


class TestConfig:
    """Tests for Config class."""

    @pytest.fixture
    def temp_config_dir(self):
        """Create a temporary config directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_deep_merge(self):
        """Nested mappings merge; everything else is replaced."""
        config = Config()

        base = {
            "defaults": {"timeout": 30, "verbose": True},
            "servers": {"local": {"url": "http://localhost:8080/sse"}},
        }
        override = {
            "defaults": {"timeout": 10},
            "servers": {"local": {"headers": {"X-Key": "1"}}},
        }

        result = config._deep_merge(base, override)

        assert result["defaults"] == {"timeout": 10, "verbose": True}
        assert result["servers"]["local"] == {
            "url": "http://localhost:8080/sse",
            "headers": {"X-Key": "1"},
        }

    def test_local_overrides_global(self):
        """Local defaults win over global ones."""
        config = Config(
            global_config={"defaults": {"transport": "http", "call_timeout": 600}},
            local_config={"defaults": {"transport": "stdio"}},
        )
        defaults = config.merged.defaults

        assert defaults.transport == "stdio"
        assert defaults.call_timeout == 600
        assert defaults.timeout == 30

    def test_defaults(self):
        """An empty configuration validates to the built-in defaults."""
        merged = Config().merged

        assert isinstance(merged, ProbeConfig)
        assert merged.defaults.transport == "sse"
        assert merged.defaults.timeout == 30
        assert merged.defaults.call_timeout == 300
        assert merged.defaults.verbose is True
        assert merged.servers == {}

    def test_get_server(self):
        """Named profiles are looked up by name."""
        config = Config(global_config={
            "servers": {
                "calc": {"command": "python", "args": ["calc_server.py"], "transport": "stdio"},
            }
        })
        profile = config.get_server("calc")

        assert profile.command == "python"
        assert profile.args == ["calc_server.py"]

    def test_unknown_server(self):
        """Unknown profiles list the known ones."""
        config = Config(global_config={"servers": {"calc": {"url": "http://x"}}})

        with pytest.raises(ConfigError, match="Known profiles: calc"):
            config.get_server("prod")

    def test_invalid_timeout(self):
        """Non-positive timeouts are rejected."""
        config = Config(local_config={"defaults": {"call_timeout": 0}})

        with pytest.raises(ConfigError, match="Invalid configuration"):
            config.merged

    def test_load_yaml(self, temp_config_dir):
        """Test loading a YAML file."""
        path = temp_config_dir / "config.yaml"
        path.write_text("defaults:\n  timeout: 5\nservers:\n  demo:\n    url: http://demo/mcp\n")

        data = Config._load_yaml(path)

        assert data["defaults"]["timeout"] == 5
        assert data["servers"]["demo"]["url"] == "http://demo/mcp"

    def test_load_yaml_missing(self, temp_config_dir):
        """A missing file is an empty configuration."""
        assert Config._load_yaml(temp_config_dir / "nope.yaml") == {}
        assert Config._load_yaml(None) == {}

    def test_load_yaml_rejects_non_mapping(self, temp_config_dir):
        """The top level must be a mapping."""
        path = temp_config_dir / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError, match="top level must be a mapping"):
            Config._load_yaml(path)

    def test_load_yaml_invalid(self, temp_config_dir):
        """Broken YAML raises ConfigError."""
        path = temp_config_dir / "config.yaml"
        path.write_text("defaults: [unclosed\n")

        with pytest.raises(ConfigError, match="Failed to load config"):
            Config._load_yaml(path)
