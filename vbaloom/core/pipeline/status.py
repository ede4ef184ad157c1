"""Gap state machine: unresolved-gap detection and module status inference.

Persisted modules come in more than one shape (mapped data nested under
``intents.mapped`` or stored at top level; generated source stored as
``generated_source``, ``cljs_source`` or ``cljsSource``).
:func:`normalize_module` folds them into one canonical dict, and the status
logic only ever reads that.
"""

from typing import Any, Dict, List, Optional

from .models import ModuleStatus, StepName
from .vocabulary import is_gap, is_unresolved_gap, iter_procedure_intents

_GENERATED_SOURCE_KEYS = ("generated_source", "cljs_source", "cljsSource")


def has_unresolved_gaps(mapped: Optional[Dict[str, Any]]) -> bool:
    """True iff any gap node, at any depth, has no ``resolution`` object."""
    return any(is_unresolved_gap(intent) for _, intent in iter_procedure_intents(mapped))


def collect_gaps(mapped: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten every gap node into ``{procedure, gap_id, vba_line, reason}``.

    Order is depth-first document order, the same order used for ``gap_id``
    assignment.
    """
    gaps = []
    for procedure, intent in iter_procedure_intents(mapped):
        if not is_gap(intent):
            continue
        entry = {
            "procedure": procedure,
            "gap_id": intent.get("gap_id"),
            "vba_line": intent.get("vba_line"),
            "reason": intent.get("reason"),
        }
        if intent.get("resolution") is not None:
            entry["resolution"] = intent["resolution"]
        gaps.append(entry)
    return gaps


def count_unresolved_gaps(mapped: Optional[Dict[str, Any]]) -> int:
    return sum(1 for _, intent in iter_procedure_intents(mapped) if is_unresolved_gap(intent))


def normalize_module(record: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return the canonical module shape for a persisted record.

    Canonical keys: ``name``, ``vba_source``, ``intents``, ``mapped``,
    ``generated_source``, ``version``, ``status``.  ``intents`` holds the raw
    extraction result; when the stored intents blob is the wrapper written
    by the pipeline store (``{"intents": ..., "mapped": ...}``) it is
    unwrapped.
    """
    record = record or {}
    intents = record.get("intents")
    mapped = record.get("mapped")

    if isinstance(intents, dict):
        if mapped is None:
            mapped = intents.get("mapped")
        if "procedures" not in intents and "intents" in intents:
            intents = intents.get("intents") or (intents if intents.get("mapped") else None)

    generated_source = None
    for key in _GENERATED_SOURCE_KEYS:
        if record.get(key):
            generated_source = record[key]
            break

    return {
        "name": record.get("name") or record.get("module_name"),
        "vba_source": record.get("vba_source") or record.get("vbaSource"),
        "intents": intents,
        "mapped": mapped,
        "generated_source": generated_source,
        "version": record.get("version"),
        "status": record.get("status"),
    }


def get_module_status(module: Optional[Dict[str, Any]]) -> ModuleStatus:
    """Infer the next pipeline step from accumulated module data.

    Decision table, evaluated top to bottom:

    1. no module, or no intents        -> extract / pending
    2. intents but no mapped data      -> map / pending
    3. mapped with unresolved gaps     -> resolve-gaps / pending
    4. no unresolved gaps, no source   -> generate / pending
    5. generated source present        -> complete / complete
    """
    if not module:
        return ModuleStatus(StepName.EXTRACT.value, "pending")

    canonical = normalize_module(module)
    if not canonical["intents"]:
        return ModuleStatus(StepName.EXTRACT.value, "pending")

    mapped = canonical["mapped"]
    if not mapped:
        return ModuleStatus(StepName.MAP.value, "pending")

    if has_unresolved_gaps(mapped):
        return ModuleStatus(StepName.RESOLVE_GAPS.value, "pending")

    if not canonical["generated_source"]:
        return ModuleStatus(StepName.GENERATE.value, "pending")

    return ModuleStatus("complete", "complete")
