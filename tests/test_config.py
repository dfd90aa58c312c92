"""Tests for store subprocess configuration."""

import pytest

from memory_bridge.core import ConfigError
from memory_bridge.mcp_client import StoreConfig, parse_args


class TestParseArgs:
    def test_empty_values(self):
        assert parse_args(None) == []
        assert parse_args("") == []

    def test_json_array(self):
        assert parse_args('["--memory-path", "/data/my memory.json"]') == ["--memory-path", "/data/my memory.json"]

    def test_json_array_with_surrounding_whitespace(self):
        assert parse_args('  ["-v"]  ') == ["-v"]

    def test_whitespace_split(self):
        assert parse_args("  --memory-path   /tmp/memory.json \t-v ") == ["--memory-path", "/tmp/memory.json", "-v"]

    def test_invalid_json_array(self):
        with pytest.raises(ConfigError, match="not valid JSON"):
            parse_args('["--flag", ')

    @pytest.mark.parametrize("raw", ['["--flag", 3]', '[{"a": 1}]'])
    def test_non_string_items_rejected(self, raw):
        with pytest.raises(ConfigError, match="JSON array of strings"):
            parse_args(raw)

    def test_config_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_args("[")


class TestStoreConfig:
    def test_defaults(self):
        config = StoreConfig.from_env({})

        assert config.command == "memory-mcp"
        assert config.args == []
        assert config.cwd is None

    def test_from_env(self):
        config = StoreConfig.from_env({
            "MEMORY_MCP_COMMAND": "  npx  ",
            "MEMORY_MCP_ARGS": '["-y", "@modelcontextprotocol/server-memory"]',
            "MEMORY_MCP_CWD": "/srv/memory",
        })

        assert config.to_dict() == {
            "command": "npx",
            "args": ["-y", "@modelcontextprotocol/server-memory"],
            "cwd": "/srv/memory",
        }

    def test_blank_values_fall_back(self):
        config = StoreConfig.from_env({"MEMORY_MCP_COMMAND": "   ", "MEMORY_MCP_CWD": " "})

        assert config.command == "memory-mcp"
        assert config.cwd is None

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("MEMORY_MCP_COMMAND", "memory-server")
        monkeypatch.setenv("MEMORY_MCP_ARGS", "--debug")
        monkeypatch.delenv("MEMORY_MCP_CWD", raising=False)

        config = StoreConfig.from_env()

        assert config.command == "memory-server"
        assert config.args == ["--debug"]

    def test_to_dict_copies_args(self):
        config = StoreConfig(args=["a"])
        config.to_dict()["args"].append("b")

        assert config.args == ["a"]
