from .model import build_llm, clear_cache, configure_llm

__all__ = ["build_llm", "clear_cache", "configure_llm"]
