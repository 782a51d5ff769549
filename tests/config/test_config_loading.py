# tests/config/test_config_loading.py
"""
Tests for promptloop configuration loading.

Validates the layering order of load_config(): packaged defaults, user
TOML file, config dict, PROMPTLOOP__ environment variables and runtime
overrides, plus validation failures surfacing as ConfigError.
"""

import textwrap
from pathlib import Path

import pytest

from promptloop.config import (BoundPolicy, PromptLoopConfig, UndefinedVariablePolicy,
                               load_config, load_default_config)
from promptloop.exceptions import ConfigError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_toml(path: Path, content: str) -> str:
    """Write TOML content to a file and return the path string."""
    path.write_text(textwrap.dedent(content))
    return str(path)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove PROMPTLOOP__ variables inherited from the test environment."""
    import os

    for key in list(os.environ):
        if key.startswith("PROMPTLOOP__"):
            monkeypatch.delenv(key)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestDefaults:
    """Defaults from the models and the packaged TOML agree."""

    def test_model_defaults(self):
        config = PromptLoopConfig()
        assert config.default_model == "gpt-4o"
        assert config.loop.default_max_loops == 10
        assert config.loop.bound_policy == BoundPolicy.STRICT
        assert config.loop.max_consecutive_tool_failures is None
        assert config.templates.undefined_variables == UndefinedVariablePolicy.KEEP

    def test_packaged_defaults(self):
        defaults = load_default_config()
        assert defaults["loop"]["default_max_loops"] == 10
        assert defaults["logging"]["file_enabled"] is False

    def test_load_without_sources(self):
        config = load_config()
        assert config.default_model == "gpt-4o"
        assert config.logging["console_enabled"] is False


class TestLayering:
    """Later sources override earlier ones."""

    def test_toml_file(self, tmp_path):
        path = _write_toml(tmp_path / "promptloop.toml", """\
            default_model = "llama3"

            [loop]
            default_max_loops = 3
            bound_policy = "lenient"
            """)
        config = load_config(config_path=path)
        assert config.default_model == "llama3"
        assert config.loop.default_max_loops == 3
        assert config.loop.bound_policy == BoundPolicy.LENIENT
        # untouched keys keep their defaults
        assert config.loop.concurrent_tools is False

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(config_path=tmp_path / "absent.toml")
        assert config.loop.default_max_loops == 10

    def test_invalid_toml_raises(self, tmp_path):
        path = _write_toml(tmp_path / "broken.toml", "default_model = \n")
        with pytest.raises(ConfigError):
            load_config(config_path=path)

    def test_dict_overrides_file(self, tmp_path):
        path = _write_toml(tmp_path / "promptloop.toml", """\
            [loop]
            default_max_loops = 3
            """)
        config = load_config(config_path=path, config_dict={"loop": {"default_max_loops": 5}})
        assert config.loop.default_max_loops == 5

    def test_env_overrides_dict(self, monkeypatch):
        monkeypatch.setenv("PROMPTLOOP__LOOP__DEFAULT_MAX_LOOPS", "7")
        monkeypatch.setenv("PROMPTLOOP__LOOP__CONCURRENT_TOOLS", "true")
        monkeypatch.setenv("PROMPTLOOP__LOOP__REQUEST_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("PROMPTLOOP__DEFAULT_MODEL", "env-model")

        config = load_config(config_dict={"loop": {"default_max_loops": 5}})
        assert config.loop.default_max_loops == 7
        assert config.loop.concurrent_tools is True
        assert config.loop.request_timeout_seconds == 2.5
        assert config.default_model == "env-model"

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("PROMPTLOOP__TEMPLATES__UNDEFINED_VARIABLES", "empty")
        config = load_config(overrides={"templates": {"undefined_variables": "error"}})
        assert config.templates.undefined_variables == UndefinedVariablePolicy.ERROR


class TestValidation:
    """Invalid values are rejected."""

    def test_zero_default_bound_rejected(self):
        with pytest.raises(ConfigError):
            load_config(overrides={"loop": {"default_max_loops": 0}})

    def test_unknown_policy_rejected(self):
        with pytest.raises(ConfigError):
            load_config(overrides={"loop": {"bound_policy": "sometimes"}})

    def test_empty_model_rejected(self):
        with pytest.raises(ConfigError):
            load_config(overrides={"default_model": ""})
