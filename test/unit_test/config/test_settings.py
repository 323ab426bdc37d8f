import json

import pytest

from toolgate.errors import ConfigError
from toolgate.infrastructure.config.settings import deep_merge, load_config, merge_config, replace_env_vars


class TestLoadConfig:
    """File loading, defaults and validation."""

    def test_missing_file_yields_defaults(self, tmp_path):
        """Test that an absent file gives the built-in defaults."""
        config = load_config(str(tmp_path / "nope.json"))

        assert config.agent.provider == "ollama"
        assert config.agent.model == "llama3.1"
        assert config.agent.max_iterations == 10
        assert config.providers.ollama.api_base == "http://localhost:11434"
        assert config.tools.blocked_paths == [".git", ".env"]
        assert config.tools.enabled_tools == ["file", "shell", "browser", "spawn"]

    def test_file_is_merged_over_defaults(self, tmp_path):
        """Test that nested keys merge while lists replace."""
        path = tmp_path / "toolgate.config.json"
        path.write_text(json.dumps({
            "agent": {"max_iterations": 3},
            "tools": {"enabled_tools": ["file"]},
        }))

        config = load_config(str(path))

        assert config.agent.max_iterations == 3
        assert config.agent.provider == "ollama"
        assert config.tools.enabled_tools == ["file"]

    def test_env_vars_are_substituted(self, tmp_path, monkeypatch):
        """Test ${NAME} expansion before parsing."""
        monkeypatch.setenv("TOOLGATE_TEST_KEY", "secret")
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "agent": {"provider": "openai", "model": "gpt"},
            "providers": {"openai": {"api_key": "${TOOLGATE_TEST_KEY}", "model": "gpt"}},
        }))

        assert load_config(str(path)).providers.openai.api_key == "secret"

    def test_invalid_json_raises_config_error(self, tmp_path):
        """Test that unparsable files are reported."""
        path = tmp_path / "config.json"
        path.write_text("{broken")

        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_out_of_range_values_raise_config_error(self, tmp_path):
        """Test that max_iterations above 30 is rejected."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"agent": {"max_iterations": 99}}))

        with pytest.raises(ConfigError) as exc_info:
            load_config(str(path))
        assert exc_info.value.metadata["issues"]


class TestMerging:
    """Patch merging helpers."""

    def test_deep_merge_does_not_mutate_inputs(self):
        """Test that deep_merge copies."""
        base = {"a": {"b": 1, "c": [1]}}
        merged = deep_merge(base, {"a": {"c": [2]}})

        assert merged == {"a": {"b": 1, "c": [2]}}
        assert base == {"a": {"b": 1, "c": [1]}}

    def test_merge_config_revalidates(self, tmp_path):
        """Test that a bad patch is rejected."""
        config = load_config(str(tmp_path / "nope.json"))

        assert merge_config(config, {"agent": {"temperature": 0.1}}).agent.temperature == 0.1
        with pytest.raises(ConfigError):
            merge_config(config, {"agent": {"temperature": 5}})

    def test_unknown_env_var_expands_to_empty(self, monkeypatch):
        """Test that unset variables become empty strings."""
        monkeypatch.delenv("TOOLGATE_UNSET", raising=False)
        assert replace_env_vars("key=${TOOLGATE_UNSET};") == "key=;"
