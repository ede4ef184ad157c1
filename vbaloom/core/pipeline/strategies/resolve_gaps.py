"""Resolve-gaps strategies.

Input:  ``{"mapped", "app_objects"?, "answers"?}``
Output: ``{"mapped", "changed", "resolved_count", "remaining_gaps"}``

``mapped`` is the input object itself whenever ``changed`` is false.
"""

from typing import Any, Dict

from ..models import ResolveOutcome
from ..resolution import apply_gap_answers, auto_resolve_gaps
from ..status import count_unresolved_gaps


def _as_result(outcome: ResolveOutcome) -> Dict[str, Any]:
    result = {
        "mapped": outcome.mapped,
        "changed": outcome.changed,
        "resolved_count": outcome.resolved_count,
        "remaining_gaps": outcome.remaining_gaps,
    }
    if outcome.unmatched:
        result["unmatched"] = outcome.unmatched
    return result


async def resolve_gaps_auto(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve gaps that reference tables/forms known to the application."""
    app_objects = input.get("app_objects") or context.get("app_objects")
    return _as_result(auto_resolve_gaps(input.get("mapped"), app_objects))


async def resolve_gaps_manual(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    """Attach answers given as ``{gap_id: answer}`` in ``input["answers"]``."""
    resolved_by = input.get("resolved_by") or context.get("user") or "user"
    return _as_result(apply_gap_answers(input.get("mapped"), input.get("answers"), resolved_by))


async def resolve_gaps_skip(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    mapped = input.get("mapped")
    return {
        "mapped": mapped,
        "changed": False,
        "resolved_count": 0,
        "remaining_gaps": count_unresolved_gaps(mapped),
    }
