from .setting import (
    DatabaseSettings,
    LLMSettings,
    PipelineSettings,
    ServerSettings,
    VBALoomSettings,
    get_settings,
    load_settings,
)

__all__ = [
    "DatabaseSettings",
    "LLMSettings",
    "PipelineSettings",
    "ServerSettings",
    "VBALoomSettings",
    "get_settings",
    "load_settings",
]
