"""Tests for configuration loading."""

from hyperflow.config import load_config
from hyperflow.constants import DEFAULT_MODEL


def test_defaults_without_config_file():
    config = load_config()
    assert config.generation.default_model == DEFAULT_MODEL
    assert config.generation.max_tokens == 8192
    assert config.catalog.include_builtin is True
    assert config.database_url is None


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "hyperflow.yaml"
    config_path.write_text(
        """
generation:
  default_model: "openai:gpt-4o"
  temperature: 0.2
  retries: 2
catalog:
  include_builtin: false
  paths: [./templates]
database_url: sqlite://runs.db
"""
    )
    monkeypatch.setenv("HYPERFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.generation.default_model == "openai:gpt-4o"
    assert config.generation.temperature == 0.2
    assert config.generation.retries == 2
    assert config.catalog.paths == ["./templates"]
    assert config.database_url == "sqlite://runs.db"


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("HYPERFLOW_DEFAULT_MODEL", "anthropic:claude")
    monkeypatch.setenv("HYPERFLOW_DATABASE_URL", f"sqlite://{tmp_path / 'x.db'}")

    config = load_config()
    assert config.generation.default_model == "anthropic:claude"
    assert config.database_url.startswith("sqlite://")
