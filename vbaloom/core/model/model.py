import logging
from typing import Optional

from llama_index.core import Settings

from ...setting import LLMSettings, VBALoomSettings, get_settings

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("anthropic", "openai", "ollama")

# Cache for LLM models to avoid re-initialization
_llm_cache: dict = {}


def build_llm(settings: Optional[VBALoomSettings] = None):
    """Create (or reuse) the llama-index LLM described by *settings*.

    Args:
        settings: VBALoom settings; ``get_settings()`` when omitted.

    Returns:
        A llama-index LLM exposing ``acomplete``.

    Raises:
        ValueError: for an unsupported provider.
    """
    llm_settings: LLMSettings = (settings or get_settings()).llm
    provider = llm_settings.provider.lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(
            f"Unsupported LLM provider {llm_settings.provider!r}. "
            f"Supported: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    cache_key = f"{provider}_{llm_settings.model}_{llm_settings.temperature}"
    if cache_key in _llm_cache:
        logger.debug(f"Using cached LLM model: {llm_settings.model}")
        return _llm_cache[cache_key]

    if provider == "anthropic":
        from llama_index.llms.anthropic import Anthropic
        model = Anthropic(
            model=llm_settings.model,
            api_key=llm_settings.api_key,
            temperature=llm_settings.temperature,
            max_tokens=llm_settings.max_tokens,
        )
    elif provider == "openai":
        from llama_index.llms.openai import OpenAI
        model = OpenAI(
            model=llm_settings.model,
            api_key=llm_settings.api_key,
            temperature=llm_settings.temperature,
            max_tokens=llm_settings.max_tokens,
        )
    else:
        from llama_index.llms.ollama import Ollama
        model = Ollama(
            model=llm_settings.model,
            base_url=f"http://{llm_settings.ollama_host}:{llm_settings.ollama_port}",
            temperature=llm_settings.temperature,
            request_timeout=llm_settings.request_timeout,
        )

    _llm_cache[cache_key] = model
    logger.debug(f"Created and cached {provider.upper()} model: {llm_settings.model}")
    return model


def configure_llm(settings: Optional[VBALoomSettings] = None):
    """Build the LLM and install it as ``Settings.llm``."""
    llm = build_llm(settings)
    Settings.llm = llm
    logger.info(f"LLM configured: {type(llm).__name__}")
    return llm


def clear_cache() -> None:
    """Clear the LLM model cache."""
    _llm_cache.clear()
    logger.info("LLM model cache cleared")
