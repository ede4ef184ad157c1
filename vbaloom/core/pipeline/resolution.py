"""Gap resolution.

Resolutions are always attached by ``gap_id``.  Ids are stable for as long
as the set of gaps in a procedure does not change (see
:func:`~vbaloom.core.pipeline.mapper.assign_gap_ids`), so callers must
resolve against the mapped data the ids were read from.

Both resolvers are copy-on-write: when nothing is resolved the input
``mapped`` object itself is returned with ``changed=False``; otherwise a
deep copy carries the new ``resolution`` dicts.
"""

import copy
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from .mapper import classify_intent
from .models import ResolveOutcome
from .status import collect_gaps, count_unresolved_gaps
from .vocabulary import (
    CONTAINER_CHILD_KEYS,
    is_unresolved_gap,
    iter_procedure_intents,
)

logger = logging.getLogger(__name__)

_DOMAIN_FN_RE = re.compile(r"dlookup|dcount|dsum", re.IGNORECASE)
_OPEN_FORM_RE = re.compile(r"openform", re.IGNORECASE)
_RUN_SQL_RE = re.compile(r"runsql", re.IGNORECASE)
_QUOTED_RE = re.compile(r"[\"'](\w[\w\s]*?)[\"']")
_SQL_TARGET_RE = re.compile(
    r"(?:INSERT\s+INTO|UPDATE|DELETE\s+FROM)\s+[\[\]\"']?(\w[\w\s]*?)[\[\]\"']?\s",
    re.IGNORECASE,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _table_key(name: str) -> str:
    return re.sub(r"\s+", "_", name.strip().lower())


def _names(values: Optional[Iterable[str]]) -> Set[str]:
    return {str(v).lower() for v in values or []}


def _apply(
    mapped: Dict[str, Any],
    resolutions: Dict[str, Dict[str, Any]],
) -> Dict[str, Any]:
    """Deep-copy *mapped* and attach *resolutions* by gap_id."""
    updated = copy.deepcopy(mapped)
    for _, intent in iter_procedure_intents(updated):
        gap_id = intent.get("gap_id")
        if gap_id in resolutions and is_unresolved_gap(intent):
            intent["resolution"] = resolutions[gap_id]

    # Containers are classified by their unresolved descendants
    for _, intent in iter_procedure_intents(updated):
        if intent.get("type") in CONTAINER_CHILD_KEYS:
            intent["classification"] = classify_intent(intent).value

    if "gaps" in updated:
        updated["gaps"] = collect_gaps(updated)
    return updated


def _outcome(
    mapped: Dict[str, Any],
    resolutions: Dict[str, Dict[str, Any]],
    unmatched: Optional[List[str]] = None,
) -> ResolveOutcome:
    if not resolutions:
        return ResolveOutcome(
            mapped=mapped,
            changed=False,
            resolved_count=0,
            remaining_gaps=count_unresolved_gaps(mapped),
            unmatched=unmatched or [],
        )
    updated = _apply(mapped, resolutions)
    return ResolveOutcome(
        mapped=updated,
        changed=True,
        resolved_count=len(resolutions),
        remaining_gaps=count_unresolved_gaps(updated),
        unmatched=unmatched or [],
    )


def _auto_answer(
    intent: Dict[str, Any],
    tables: Set[str],
    forms: Set[str],
) -> Optional[Dict[str, str]]:
    """Pick an automatic answer for one unresolved gap, or ``None``."""
    vba_line = intent.get("vba_line") or ""
    reason = intent.get("reason") or ""

    if _DOMAIN_FN_RE.search(reason) or _DOMAIN_FN_RE.search(vba_line):
        # DLookup("Field", "Table", "Criteria"): any quoted name may be the table
        for quoted in _QUOTED_RE.findall(vba_line):
            if _table_key(quoted) in tables or quoted.lower() in tables:
                return {
                    "answer": f"Use API call to /api/data/{_table_key(quoted)}",
                    "custom_notes": "Auto-resolved: table exists in database",
                }

    if _OPEN_FORM_RE.search(reason) or _OPEN_FORM_RE.search(vba_line):
        match = _QUOTED_RE.search(vba_line)
        if match and match.group(1).lower() in forms:
            return {
                "answer": "Use state/open-object!",
                "custom_notes": "Auto-resolved: form exists in database",
            }

    if _RUN_SQL_RE.search(reason) or _RUN_SQL_RE.search(vba_line):
        match = _SQL_TARGET_RE.search(vba_line)
        if match:
            table = match.group(1)
            if _table_key(table) in tables or table.lower() in tables:
                return {
                    "answer": f"Use API POST to /api/data/{_table_key(table)}",
                    "custom_notes": "Auto-resolved: table exists in database",
                }

    return None


def auto_resolve_gaps(
    mapped: Optional[Dict[str, Any]],
    app_objects: Optional[Dict[str, Any]],
) -> ResolveOutcome:
    """Resolve gaps whose VBA refers to objects known to exist.

    Args:
        mapped: Classified output from the map step.
        app_objects: ``{"tables", "queries", "forms", "reports"}`` name lists
            for the target database.  Without it nothing is resolved.
    """
    if not mapped or not app_objects:
        return _outcome(mapped or {}, {})

    tables = _names(app_objects.get("tables")) | _names(app_objects.get("queries"))
    forms = _names(app_objects.get("forms"))

    resolutions: Dict[str, Dict[str, Any]] = {}
    resolved_at = _now()
    for _, intent in iter_procedure_intents(mapped):
        if not is_unresolved_gap(intent) or not intent.get("gap_id"):
            continue
        answer = _auto_answer(intent, tables, forms)
        if answer:
            resolutions[intent["gap_id"]] = {
                **answer,
                "resolved_by": "auto",
                "resolved_at": resolved_at,
            }

    if resolutions:
        logger.info("Auto-resolved %d gap(s): %s", len(resolutions), ", ".join(resolutions))
    return _outcome(mapped, resolutions)


def apply_gap_answers(
    mapped: Optional[Dict[str, Any]],
    answers: Optional[Dict[str, Any]],
    resolved_by: str = "user",
) -> ResolveOutcome:
    """Attach human answers to gaps.

    Args:
        mapped: Classified output from the map step.
        answers: ``{gap_id: answer}`` where answer is a string or
            ``{"answer": ..., "custom_notes": ...}``.
        resolved_by: Recorded on each resolution.

    Gap ids that match no unresolved gap are returned in ``unmatched``.
    """
    if not mapped:
        return _outcome({}, {}, unmatched=sorted(answers or {}))

    open_ids = {
        intent.get("gap_id")
        for _, intent in iter_procedure_intents(mapped)
        if is_unresolved_gap(intent)
    }

    resolutions: Dict[str, Dict[str, Any]] = {}
    unmatched: List[str] = []
    resolved_at = _now()
    for gap_id, answer in (answers or {}).items():
        if gap_id not in open_ids:
            unmatched.append(gap_id)
            continue
        if isinstance(answer, dict):
            resolution = {
                "answer": answer.get("answer", ""),
                "custom_notes": answer.get("custom_notes"),
            }
        else:
            resolution = {"answer": str(answer)}
        resolution["resolved_by"] = resolved_by
        resolution["resolved_at"] = resolved_at
        resolutions[gap_id] = {k: v for k, v in resolution.items() if v is not None}

    if unmatched:
        logger.warning("Answers for unknown or already resolved gaps: %s", ", ".join(unmatched))
    return _outcome(mapped, resolutions, unmatched=unmatched)
