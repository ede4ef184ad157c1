"""Extract strategies: VBA source -> structured intents.

Input:  ``{"vba_source", "module_name", "app_objects"?}``
Output: ``{"intents": {"procedures": [...], "gaps": [...]}, "validation": {...}}``
"""

import copy
import logging
from typing import Any, Dict

from ...utils.llm_utils import complete_text, parse_json_output, resolve_llm
from .. import prompts
from ..validation import validate_intents

logger = logging.getLogger(__name__)

# Canned extraction of:
#
#   Sub btnSave_Click()
#     If IsNull(Me.txtName) Then
#       MsgBox "Name is required"
#       Exit Sub
#     End If
#     DoCmd.RunCommand acCmdSaveRecord
#   End Sub
MOCK_INTENTS: Dict[str, Any] = {
    "procedures": [
        {
            "name": "btnSave_Click",
            "trigger": "on-click",
            "intents": [
                {"type": "validate-required", "field": "txtName", "message": "Name is required"},
                {"type": "save-record"},
            ],
        }
    ],
    "gaps": [],
}


async def extract_llm(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    """LLM extraction through the configured llama-index LLM."""
    vba_source = input.get("vba_source")
    if not vba_source:
        raise ValueError("vba_source is required")

    module_name = input.get("module_name") or "Module"
    app_objects = input.get("app_objects") or context.get("app_objects")

    llm = resolve_llm(context)
    prompt = prompts.build_extraction_prompt(vba_source, module_name, app_objects)
    raw = await complete_text(llm, prompt, purpose="extract")

    intents = parse_json_output(raw)
    if not isinstance(intents, dict):
        raise ValueError(f"Intent extraction returned {type(intents).__name__}, expected an object")

    validation = validate_intents(intents)
    if not validation["valid"]:
        logger.warning(
            "Extraction for %s has issues: unknown=%s warnings=%s",
            module_name, validation["unknown"], validation["warnings"],
        )
    return {"intents": intents, "validation": validation}


async def extract_mock(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    """Deterministic fixture extraction, for tests and offline runs.

    ``context["mock_intents"]`` replaces the built-in fixture.
    """
    intents = copy.deepcopy(context.get("mock_intents") or MOCK_INTENTS)
    return {"intents": intents, "validation": validate_intents(intents)}
