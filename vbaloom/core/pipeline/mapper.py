"""Deterministic intent classifier (the ``map`` step).

Walks extracted intents, classifies each node as ``mechanical`` or ``gap``,
assigns stable ``gap_id`` values and aggregates statistics.  No LLM is
involved, so everything here is fully testable.

Conventions:

* ``gap_id`` is ``"<procedure>:<k>"`` where ``k`` counts gap nodes only, in
  depth-first document order, per procedure.
* Intent types outside the vocabulary become gap nodes (``original_type``
  keeps the extracted type) so they get an id and block generation.
* Container intents (branch, confirm-action, loop, error-handler) are
  classified ``gap`` when any descendant is an unresolved gap.  They are not
  counted in ``stats`` themselves; only leaf intents and gaps are, which
  keeps ``mechanical + gap == total`` and ``len(gaps) == stats["gap"]``.
"""

import logging
from typing import Any, Dict, List, Optional

from .models import Classification
from .status import collect_gaps
from .vocabulary import (
    CONTAINER_CHILD_KEYS,
    GAP_TYPE,
    INTENT_VOCABULARY,
    is_gap,
    is_unresolved_gap,
    iter_intents,
    transform_intents,
)

logger = logging.getLogger(__name__)


def _mapping_for(intent_type: str) -> Dict[str, Optional[str]]:
    vocab = INTENT_VOCABULARY[intent_type]
    return {"type": vocab["type"], "target": vocab["target"]}


def _as_gap(intent: Dict[str, Any]) -> Dict[str, Any]:
    """Turn an intent of unknown type into a gap node."""
    original_type = intent.get("type")
    node = dict(intent)
    node["type"] = GAP_TYPE
    node["original_type"] = original_type
    node.setdefault("vba_line", "")
    node["reason"] = f"Unknown intent type: {original_type}"
    return node


def classify_intent(intent: Dict[str, Any]) -> Classification:
    """Classify a single (already normalised) intent node.

    Containers look at their whole subtree.
    """
    if is_gap(intent):
        return Classification.GAP
    if intent.get("type") in CONTAINER_CHILD_KEYS:
        for child_key in CONTAINER_CHILD_KEYS[intent["type"]]:
            for node in iter_intents(intent.get(child_key)):
                if is_unresolved_gap(node):
                    return Classification.GAP
    return Classification.MECHANICAL


def _map_node(intent: Dict[str, Any], children: Dict[str, List[Any]]) -> Dict[str, Any]:
    node = dict(intent)
    node.update(children)
    if node.get("type") not in INTENT_VOCABULARY:
        node = _as_gap(node)
    node["classification"] = classify_intent(node).value
    node["mapping"] = _mapping_for(node["type"])
    return node


def _is_counted(intent: Dict[str, Any]) -> bool:
    return is_gap(intent) or intent.get("type") not in CONTAINER_CHILD_KEYS


def count_classifications(intents: Optional[List[Dict[str, Any]]]) -> Dict[str, int]:
    """Count classified leaf intents (recursively).  Containers are not counted."""
    mechanical = 0
    gap = 0
    for intent in iter_intents(intents):
        if not _is_counted(intent):
            continue
        if intent.get("classification") == Classification.GAP.value:
            gap += 1
        else:
            mechanical += 1
    return {"total": mechanical + gap, "mechanical": mechanical, "gap": gap}


def assign_gap_ids(intents: List[Dict[str, Any]], procedure_name: str, start: int = 0) -> int:
    """Assign ``gap_id`` to every gap node in document order.

    Returns the next free index.
    """
    idx = start
    for intent in iter_intents(intents):
        if is_gap(intent):
            intent["gap_id"] = f"{procedure_name}:{idx}"
            idx += 1
    return idx


def map_procedure(procedure: Dict[str, Any]) -> Dict[str, Any]:
    """Classify one procedure's intents.  The input is not modified."""
    name = procedure.get("name") or ""
    mapped_intents = transform_intents(procedure.get("intents"), _map_node)
    assign_gap_ids(mapped_intents, name)
    return {
        "name": name,
        "trigger": procedure.get("trigger"),
        "intents": mapped_intents,
        "stats": count_classifications(mapped_intents),
    }


def map_intents(intent_result: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Map an extraction result to classified output.

    Args:
        intent_result: ``{"procedures": [{name, trigger, intents}], "gaps": [...]}``
            as produced by the extract step.  ``None`` is treated as zero
            procedures.

    Returns:
        ``{"procedures", "stats", "gaps", "warnings"}``
    """
    warnings: List[str] = []

    if not isinstance(intent_result, dict) or not isinstance(intent_result.get("procedures"), list):
        warnings.append("No intent result provided")
        procedures: List[Dict[str, Any]] = []
    else:
        procedures = [
            map_procedure(proc)
            for proc in intent_result["procedures"]
            if isinstance(proc, dict)
        ]

    stats = {"total": 0, "mechanical": 0, "gap": 0}
    for proc in procedures:
        for key in stats:
            stats[key] += proc["stats"][key]
        for intent in iter_intents(proc["intents"]):
            if intent.get("original_type") is not None:
                warnings.append(
                    f'Unknown intent type "{intent["original_type"]}" in {proc["name"]}'
                )

    # Module-level gaps reported by extraction have no procedure to live in
    module_gaps = intent_result.get("gaps") if isinstance(intent_result, dict) else None
    for gap in module_gaps or []:
        if isinstance(gap, dict):
            warnings.append(
                f"Module-level gap in {gap.get('procedure') or '(module-level)'}: "
                f"{gap.get('reason') or gap.get('vba_line') or 'unknown pattern'}"
            )

    mapped = {"procedures": procedures, "stats": stats, "warnings": warnings}
    mapped["gaps"] = collect_gaps(mapped)

    logger.debug(
        "Mapped %d procedure(s): %d mechanical, %d gap",
        len(procedures), stats["mechanical"], stats["gap"],
    )
    return mapped
