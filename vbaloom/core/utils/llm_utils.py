"""LLM utility functions shared by the LLM-backed pipeline strategies.

Strategies receive the LLM through their context (``context["llm"]``) so
tests can inject a fake; otherwise the process-wide ``Settings.llm``
configured by :mod:`vbaloom.core.model` is used.
"""

import json
import logging
import re
import time
from typing import Any, Dict, Optional

from llama_index.core import Settings

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```[\w-]*\s*\n?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")


def resolve_llm(context: Optional[Dict[str, Any]]):
    """Return the LLM to use for a strategy call.

    Raises:
        RuntimeError: when neither the context nor ``Settings`` provide one.
    """
    llm = (context or {}).get("llm")
    if llm is None:
        # Settings.llm resolves a default provider lazily and raises when
        # none is installed; treat that as "not configured".
        try:
            llm = Settings.llm
        except (ImportError, ValueError) as e:
            raise RuntimeError(f"No LLM configured: {e}") from e
    if llm is None:
        raise RuntimeError("No LLM configured")
    return llm


def has_llm(context: Optional[Dict[str, Any]]) -> bool:
    """True when :func:`resolve_llm` would succeed."""
    try:
        resolve_llm(context)
    except RuntimeError:
        return False
    return True


async def complete_text(llm, prompt: str, purpose: str) -> str:
    """Await one completion and return its stripped text."""
    t0 = time.time()
    response = await llm.acomplete(prompt)
    latency_ms = (time.time() - t0) * 1000
    text = (getattr(response, "text", None) or "").strip()
    logger.info(
        "LLM call [%s]: prompt=%d chars, response=%d chars, %.0fms",
        purpose, len(prompt), len(text), latency_ms,
    )
    return text


def strip_code_fences(raw: str) -> str:
    """Remove a leading/trailing markdown code fence if the LLM added one."""
    cleaned = (raw or "").strip()
    cleaned = _FENCE_OPEN_RE.sub("", cleaned)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned)
    return cleaned.strip()


def parse_json_output(raw: str) -> Any:
    """Parse JSON from LLM output, stripping markdown fences.

    Falls back to the outermost ``{...}`` or ``[...]`` span when the model
    wrapped the JSON in prose.

    Raises:
        ValueError: when no JSON can be recovered.
    """
    cleaned = strip_code_fences(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parse failed: {e}. Attempting repair.")
        for open_ch, close_ch in (("{", "}"), ("[", "]")):
            start = cleaned.find(open_ch)
            end = cleaned.rfind(close_ch)
            if start >= 0 and end > start:
                try:
                    return json.loads(cleaned[start:end + 1])
                except json.JSONDecodeError:
                    continue
        raise ValueError(f"Failed to parse LLM JSON: {e}\nRaw: {cleaned[:200]}") from e
