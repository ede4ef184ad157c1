"""Generate strategies: classified intents -> ClojureScript.

Input:  ``{"mapped", "module_name", "vba_source"?}``
Output: ``{"source", "stats"}`` (``full`` may add ``llm_completed`` or
``fallback_error``)
"""

import logging
from typing import Any, Dict, List

from ...utils.llm_utils import complete_text, has_llm, resolve_llm, strip_code_fences
from .. import prompts
from ..generator import generate_mechanical
from ..status import collect_gaps

logger = logging.getLogger(__name__)


def _resolved_gap_context(mapped: Dict[str, Any]) -> List[Dict[str, Any]]:
    resolved = []
    for gap in collect_gaps(mapped):
        resolution = gap.get("resolution")
        if resolution:
            resolved.append({
                "vba_line": gap.get("vba_line"),
                "answer": resolution.get("answer"),
                "notes": resolution.get("custom_notes"),
            })
    return resolved


async def generate_mechanical_strategy(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    """Deterministic generation only.  Gaps stay as comment placeholders."""
    return generate_mechanical(input.get("mapped"), input.get("module_name") or "module")


async def generate_full(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    """Mechanical generation, then LLM completion of gap placeholders.

    Without gap procedures, or without a configured LLM, this is the
    mechanical output.  An LLM failure keeps the mechanical source and
    reports the error under ``fallback_error``.
    """
    mapped = input.get("mapped")
    module_name = input.get("module_name") or "module"
    result = generate_mechanical(mapped, module_name)

    gap_procs = result["stats"]["gap_procedures"]
    if not gap_procs:
        return result
    if not has_llm(context):
        logger.info("No LLM configured; %s keeps %d gap placeholder procedure(s)",
                    module_name, len(gap_procs))
        result["llm_completed"] = False
        return result

    prompt = prompts.build_completion_prompt(
        gap_procs,
        result["source"],
        input.get("vba_source") or "",
        module_name,
        _resolved_gap_context(mapped or {}),
    )
    try:
        raw = await complete_text(resolve_llm(context), prompt, purpose="generate")
    except Exception as e:
        logger.warning("LLM completion failed for %s, using mechanical output: %s", module_name, e)
        result["llm_completed"] = False
        result["fallback_error"] = str(e)
        return result

    completed = strip_code_fences(raw)
    if not completed:
        logger.warning("LLM completion for %s was empty, using mechanical output", module_name)
        result["llm_completed"] = False
        result["fallback_error"] = "Empty LLM response"
        return result

    result["source"] = completed if completed.endswith("\n") else completed + "\n"
    result["llm_completed"] = True
    return result
