"""LLM prompt templates for the translation pipeline.

  extract        VBA module -> structured intents (JSON)
  gap-questions  gaps -> one user-facing question per gap (JSON array)
  generate/full  mechanical ClojureScript -> placeholders completed
"""

from typing import Any, Dict, List, Optional

from .vocabulary import INTENT_VOCABULARY

TRANSLATION_ROLE = """You are an expert at migrating Microsoft Access applications to a
ClojureScript web client. You know VBA event procedures (DoCmd, Me.Control,
TempVars, domain aggregate functions) and how each maps onto the client's
state, form and transform APIs."""


def _format_vocabulary() -> str:
    lines = []
    for intent_type, vocab in INTENT_VOCABULARY.items():
        lines.append(f"- `{intent_type}`: {vocab['description']}")
    return "\n".join(lines)


def _format_app_objects(app_objects: Optional[Dict[str, Any]]) -> str:
    if not app_objects:
        return ""
    parts = []
    for label, key in (("Tables", "tables"), ("Queries", "queries"),
                       ("Forms", "forms"), ("Reports", "reports")):
        names = app_objects.get(key) or []
        if names:
            parts.append(f"{label}: {', '.join(names)}")
    if not parts:
        return ""
    return "\n\nDatabase objects in this application:\n" + "\n".join(parts)


def build_extraction_prompt(
    vba_source: str,
    module_name: str,
    app_objects: Optional[Dict[str, Any]] = None,
) -> str:
    """Prompt for the extract step."""
    return f"""{TRANSLATION_ROLE}

## Task
Extract the intent of every procedure in the VBA module "{module_name}".
Describe WHAT each statement does using only this vocabulary:

{_format_vocabulary()}

Rules:
- `branch` and `confirm-action` hold nested intents in `then` and `else`;
  `loop` and `error-handler` hold nested intents in `children`.
- Anything that does not fit the vocabulary is a `gap` with `vba_line`
  (the original statement) and `reason` (why it cannot be mapped).
- Keep intents in source order.
- Output ONLY a JSON object, no markdown fences, shaped as:
  {{"procedures": [{{"name": "btnSave_Click", "trigger": "on-click",
    "intents": [{{"type": "save-record"}}]}}],
   "gaps": []}}{_format_app_objects(app_objects)}

## VBA module "{module_name}"
{vba_source}
"""


def build_gap_questions_prompt(
    gaps: List[Dict[str, Any]],
    vba_source: str,
    module_name: str,
) -> str:
    """Prompt for the gap-questions step."""
    gap_lines = "\n".join(
        f"{i + 1}. [{g.get('gap_id')}] in {g.get('procedure')}: "
        f"`{g.get('vba_line') or ''}` ({g.get('reason') or 'no reason given'})"
        for i, g in enumerate(gaps)
    )
    return f"""{TRANSLATION_ROLE}

## Task
The following VBA statements from module "{module_name}" could not be
translated mechanically. For each one, write a short question a business
user can answer to decide how the web app should behave, plus 2-4 concrete
suggestions.

{gap_lines}

Output ONLY a JSON array with one object per gap, in the same order:
[{{"question": "...", "suggestions": ["...", "..."]}}]

## VBA module
{vba_source or '(source not available)'}
"""


def build_completion_prompt(
    procedure_names: List[str],
    mechanical_source: str,
    vba_source: str,
    module_name: str,
    resolved_gaps: Optional[List[Dict[str, Any]]] = None,
) -> str:
    """Prompt for the full generate strategy."""
    decisions = ""
    if resolved_gaps:
        decisions = "\n\n## Resolved gaps (user decisions)\n" + "\n".join(
            f"- VBA: {g.get('vba_line')}\n  Answer: {g.get('answer')}"
            + (f"\n  Notes: {g['notes']}" if g.get("notes") else "")
            for g in resolved_gaps
        )

    return f"""{TRANSLATION_ROLE}

## Task
A partial ClojureScript translation of VBA module "{module_name}" was
generated mechanically. Replace the comment placeholders
(`;; UNMAPPED: ...` and `;; GAP RESOLVED: ...`) with working ClojureScript.
For resolved gaps, implement the user's decision.

Rules:
- Keep the existing namespace, function names and event-handlers map.
- Use `go` blocks and `<!` for async data access.
- Domain aggregates and SQL go through `/api/data/<table>`.
- Return ONLY the complete ClojureScript source, no markdown.

Procedures needing work: {', '.join(procedure_names)}{decisions}

## VBA module
{vba_source or '(source not available)'}

## Mechanical translation
{mechanical_source}
"""

