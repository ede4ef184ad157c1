"""VBALoom configuration.

Settings come from ``config/vbaloom.yaml`` (or the file named by
``VBALOOM_CONFIG``), with environment variables (and ``.env``) taking
precedence:

  LLM_PROVIDER       anthropic | openai | ollama
  LLM_MODEL          model name for the provider
  ANTHROPIC_API_KEY  used when the provider is anthropic
  OPENAI_API_KEY     used when the provider is openai
  DATABASE_URL       SQLAlchemy URL for module records
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "vbaloom.yaml"

_API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}


class LLMSettings(BaseModel):
    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    temperature: float = 0.1
    max_tokens: int = 4096
    api_key: Optional[str] = None
    ollama_host: str = "localhost"
    ollama_port: int = 11434
    request_timeout: float = 120.0


class PipelineSettings(BaseModel):
    # {step: strategy}, merged under per-request config
    default_strategies: Dict[str, str] = Field(default_factory=dict)


class DatabaseSettings(BaseModel):
    url: str = "sqlite:///vbaloom.db"
    echo: bool = False


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 9005
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )


class VBALoomSettings(BaseModel):
    llm: LLMSettings = Field(default_factory=LLMSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning(f"Config file not found at {path}, using defaults")
        return {}
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    llm = dict(data.get("llm") or {})
    database = dict(data.get("database") or {})

    if os.getenv("LLM_PROVIDER"):
        llm["provider"] = os.environ["LLM_PROVIDER"]
    if os.getenv("LLM_MODEL"):
        llm["model"] = os.environ["LLM_MODEL"]

    key_env = _API_KEY_ENV.get(llm.get("provider", LLMSettings().provider))
    if key_env and os.getenv(key_env):
        llm["api_key"] = os.environ[key_env]

    if os.getenv("DATABASE_URL"):
        database["url"] = os.environ["DATABASE_URL"]

    return {**data, "llm": llm, "database": database}


def load_settings(config_path: Optional[str] = None) -> VBALoomSettings:
    """Load settings from YAML and the environment (uncached)."""
    load_dotenv()
    path = Path(config_path or os.getenv("VBALOOM_CONFIG") or DEFAULT_CONFIG_PATH)
    data = _apply_env_overrides(_read_yaml(path))
    settings = VBALoomSettings.model_validate(data)
    logger.debug(f"Loaded settings from {path}: provider={settings.llm.provider}, model={settings.llm.model}")
    return settings


@lru_cache(maxsize=1)
def get_settings() -> VBALoomSettings:
    """Process-wide settings, loaded once."""
    return load_settings()
