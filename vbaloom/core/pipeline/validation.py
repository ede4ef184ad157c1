"""Structural validation of extraction output.

Checks the shape the LLM returned and flags intent types outside the
vocabulary.  Validation never rejects: the result is attached to the
extract step output and the mapper turns unknown types into gaps.
"""

from typing import Any, Dict, List

from .vocabulary import KNOWN_INTENT_TYPES, child_keys


def _validate_intent_list(
    intents: List[Any],
    proc_name: str,
    unknown: List[str],
    warnings: List[str],
) -> None:
    for intent in intents:
        if not isinstance(intent, dict) or not intent.get("type"):
            warnings.append(f'Intent in "{proc_name}" missing type')
            continue
        if intent["type"] not in KNOWN_INTENT_TYPES:
            unknown.append(intent["type"])
        for key in child_keys(intent):
            _validate_intent_list(intent[key], proc_name, unknown, warnings)


def validate_intents(result: Any) -> Dict[str, Any]:
    """Validate an extraction result.

    Returns:
        ``{"valid": bool, "unknown": [types], "warnings": [str]}``
    """
    if not isinstance(result, dict):
        return {"valid": False, "unknown": [], "warnings": ["Result is not an object"]}

    if not isinstance(result.get("procedures"), list):
        return {"valid": False, "unknown": [], "warnings": ["Missing procedures array"]}

    warnings: List[str] = []
    unknown: List[str] = []

    for proc in result["procedures"]:
        if not isinstance(proc, dict):
            warnings.append("Procedure is not an object")
            continue
        name = proc.get("name")
        if not name:
            warnings.append("Procedure missing name")
        if not isinstance(proc.get("intents"), list):
            warnings.append(f'Procedure "{name or "?"}" missing intents array')
            continue
        _validate_intent_list(proc["intents"], name or "?", unknown, warnings)

    if result.get("gaps") is not None and not isinstance(result["gaps"], list):
        warnings.append("gaps should be an array")

    unique_unknown = list(dict.fromkeys(unknown))
    return {
        "valid": not warnings and not unique_unknown,
        "unknown": unique_unknown,
        "warnings": warnings,
    }
