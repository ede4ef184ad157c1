"""Tests for YAML and environment configuration."""

import pytest

from vbaloom.setting import VBALoomSettings, load_settings

_ENV_VARS = ("LLM_PROVIDER", "LLM_MODEL", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "DATABASE_URL", "VBALOOM_CONFIG")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("vbaloom.setting.setting.load_dotenv", lambda: None)


def test_yaml_values(tmp_path):
    config = tmp_path / "vbaloom.yaml"
    config.write_text(
        "llm:\n"
        "  provider: ollama\n"
        "  model: llama3\n"
        "pipeline:\n"
        "  default_strategies:\n"
        "    extract: mock\n"
        "database:\n"
        "  url: sqlite:///other.db\n"
    )

    settings = load_settings(str(config))

    assert settings.llm.provider == "ollama"
    assert settings.llm.model == "llama3"
    assert settings.llm.ollama_port == 11434
    assert settings.pipeline.default_strategies == {"extract": "mock"}
    assert settings.database.url == "sqlite:///other.db"
    assert settings.server.port == 9005


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "absent.yaml"))
    assert settings == VBALoomSettings()


def test_env_overrides(tmp_path, monkeypatch):
    config = tmp_path / "vbaloom.yaml"
    config.write_text("llm:\n  provider: anthropic\n  model: from-yaml\n")
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.setenv("LLM_MODEL", "gpt-4o")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "ignored")
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/vbaloom")

    settings = load_settings(str(config))

    assert settings.llm.provider == "openai"
    assert settings.llm.model == "gpt-4o"
    assert settings.llm.api_key == "sk-test"
    assert settings.database.url == "postgresql://localhost/vbaloom"


def test_config_path_from_env(tmp_path, monkeypatch):
    config = tmp_path / "custom.yaml"
    config.write_text("server:\n  port: 9100\n")
    monkeypatch.setenv("VBALOOM_CONFIG", str(config))

    assert load_settings().server.port == 9100


def test_non_mapping_rejected(tmp_path):
    config = tmp_path / "bad.yaml"
    config.write_text("- just\n- a list\n")
    with pytest.raises(ValueError, match="must contain a mapping"):
        load_settings(str(config))
