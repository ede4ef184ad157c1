"""Gap-question strategies: one user-facing question per gap.

Input:  ``{"mapped", "vba_source"?, "module_name"?}``
Output: ``{"gap_questions": [{gap_id, procedure, vba_line, reason, question, suggestions}]}``
"""

import logging
from typing import Any, Dict, List

from ...utils.llm_utils import complete_text, parse_json_output, resolve_llm
from .. import prompts
from ..status import collect_gaps

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTIONS = ["Implement equivalent functionality", "Skip this functionality"]


def template_question(gap: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **gap,
        "question": (
            f'This VBA code does: "{gap.get("vba_line") or ""}". '
            "How should this work in the web app?"
        ),
        "suggestions": list(DEFAULT_SUGGESTIONS),
    }


def _open_gaps(input: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [g for g in collect_gaps(input.get("mapped")) if "resolution" not in g]


async def gap_questions_llm(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    """Ask the LLM for one question per unresolved gap.

    Entries the LLM leaves out (or returns malformed) fall back to the
    template question.
    """
    gaps = _open_gaps(input)
    if not gaps:
        return {"gap_questions": []}

    llm = resolve_llm(context)
    prompt = prompts.build_gap_questions_prompt(
        gaps, input.get("vba_source") or "", input.get("module_name") or "Module",
    )
    raw = await complete_text(llm, prompt, purpose="gap-questions")
    parsed = parse_json_output(raw)
    if isinstance(parsed, dict):
        parsed = parsed.get("questions") or parsed.get("gap_questions") or []
    if not isinstance(parsed, list):
        raise ValueError(f"Gap questions returned {type(parsed).__name__}, expected a list")

    questions = []
    for i, gap in enumerate(gaps):
        entry = parsed[i] if i < len(parsed) else None
        if isinstance(entry, dict) and entry.get("question"):
            suggestions = entry.get("suggestions")
            questions.append({
                **gap,
                "question": entry["question"],
                "suggestions": suggestions if isinstance(suggestions, list) else list(DEFAULT_SUGGESTIONS),
            })
        else:
            questions.append(template_question(gap))

    if len(parsed) != len(gaps):
        logger.warning("LLM returned %d question(s) for %d gap(s)", len(parsed), len(gaps))
    return {"gap_questions": questions}


async def gap_questions_template(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    return {"gap_questions": [template_question(g) for g in _open_gaps(input)]}


async def gap_questions_skip(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    return {"gap_questions": []}
