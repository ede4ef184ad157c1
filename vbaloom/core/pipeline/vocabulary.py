"""Intent vocabulary and the shared tree walkers.

An intent is a ``type``-discriminated dict.  Container intents hold nested
intent lists under ``then``/``else`` (branch, confirm-action) or
``children`` (loop, error-handler).  The classifier, generator, gap scanner
and resolvers all walk the tree through :func:`iter_intents` or
:func:`transform_intents` so the child-key rules live in one place.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional

# intent type -> mapping descriptor {type, target} + the VBA it stands for
INTENT_VOCABULARY: Dict[str, Dict[str, Optional[str]]] = {
    "open-form":           {"description": 'DoCmd.OpenForm "X"', "type": "flow", "target": "open-object-flow"},
    "open-form-filtered":  {"description": 'DoCmd.OpenForm "X", , , "filter"', "type": "flow", "target": "open-object-flow"},
    "open-report":         {"description": 'DoCmd.OpenReport "X"', "type": "flow", "target": "open-object-flow"},
    "close-form":          {"description": 'DoCmd.Close acForm, "X"', "type": "flow", "target": "close-tab-flow"},
    "close-current":       {"description": "DoCmd.Close (no args)", "type": "flow", "target": "close-current-tab-flow"},
    "goto-record":         {"description": "DoCmd.GoToRecord , , acNext/acPrevious/...", "type": "flow", "target": "navigate-to-record-flow"},
    "requery":             {"description": "Me.Requery", "type": "flow", "target": "set-view-mode-flow"},
    "save-record":         {"description": "DoCmd.RunCommand acCmdSaveRecord", "type": "flow", "target": "save-current-record-flow"},
    "delete-record":       {"description": "DoCmd.RunCommand acCmdDeleteRecord", "type": "flow", "target": "delete-current-record-flow"},
    "new-record":          {"description": "DoCmd.GoToRecord , , acNewRec", "type": "transform", "target": "new-record"},
    "validate-required":   {"description": "If IsNull(Me.Field) Then MsgBox ... Exit Sub", "type": "template", "target": "branch-alert-abort"},
    "validate-condition":  {"description": "If condition Then MsgBox ... Exit Sub", "type": "template", "target": "branch-alert-abort"},
    "show-message":        {"description": 'MsgBox "Info"', "type": "effect", "target": "js/alert"},
    "confirm-action":      {"description": "If MsgBox(..., vbYesNo) = vbYes", "type": "template", "target": "branch-confirm"},
    "set-control-visible": {"description": "Me.Control.Visible = False", "type": "transform", "target": "update-control"},
    "set-control-enabled": {"description": "Me.Control.Enabled = False", "type": "transform", "target": "update-control"},
    "set-control-value":   {"description": "Me.Control = value", "type": "transform", "target": "update-control"},
    "set-filter":          {"description": 'Me.Filter = "..." / Me.FilterOn', "type": "transform", "target": "set-form-definition"},
    "set-record-source":   {"description": 'Me.RecordSource = "..."', "type": "transform", "target": "set-form-definition"},
    "read-field":          {"description": "Me.txtField / Me!FieldName", "type": "state-read", "target": None},
    "write-field":         {"description": "Me.txtField = value", "type": "state-write", "target": "current-record"},
    "set-tempvar":         {"description": "TempVars!VarName = value", "type": "flow", "target": "sync-form-state-flow"},
    "dlookup":             {"description": "DLookup(...)", "type": "effect", "target": "fetch-data"},
    "dcount":              {"description": "DCount(...)", "type": "effect", "target": "run-query"},
    "dsum":                {"description": "DSum(...)", "type": "effect", "target": "run-query"},
    "run-sql":             {"description": 'DoCmd.RunSQL "INSERT..."', "type": "effect", "target": "data-crud"},
    "branch":              {"description": "If/ElseIf/Else", "type": "structural", "target": None},
    "loop":                {"description": "For/Do While", "type": "structural", "target": None},
    "error-handler":       {"description": "On Error GoTo/Resume", "type": "structural", "target": None},
    "gap":                 {"description": "Unmappable pattern", "type": "gap", "target": None},
}

KNOWN_INTENT_TYPES = frozenset(INTENT_VOCABULARY)

GAP_TYPE = "gap"

# Container type -> keys holding nested intent lists, in document order.
CONTAINER_CHILD_KEYS: Dict[str, tuple] = {
    "branch": ("then", "else"),
    "confirm-action": ("then", "else"),
    "loop": ("children",),
    "error-handler": ("children",),
}

# Every key that may hold nested intents on any node.  Walkers honour all of
# them so that stray children on unexpected node types are never skipped.
_ALL_CHILD_KEYS = ("then", "else", "children")


def child_keys(intent: Dict[str, Any]) -> List[str]:
    """Keys of *intent* that hold a nested intent list, in document order."""
    return [k for k in _ALL_CHILD_KEYS if isinstance(intent.get(k), list)]


def is_container(intent: Dict[str, Any]) -> bool:
    return intent.get("type") in CONTAINER_CHILD_KEYS or bool(child_keys(intent))


def is_gap(intent: Dict[str, Any]) -> bool:
    return intent.get("type") == GAP_TYPE


def is_unresolved_gap(intent: Dict[str, Any]) -> bool:
    return is_gap(intent) and intent.get("resolution") is None


def iter_intents(intents: Optional[List[Dict[str, Any]]]) -> Iterator[Dict[str, Any]]:
    """Yield every intent depth-first in document order (parents first)."""
    for intent in intents or []:
        if not isinstance(intent, dict):
            continue
        yield intent
        for key in child_keys(intent):
            yield from iter_intents(intent[key])


def iter_procedure_intents(data: Optional[Dict[str, Any]]) -> Iterator[tuple]:
    """Yield ``(procedure_name, intent)`` for every intent of every procedure."""
    if not isinstance(data, dict):
        return
    for proc in data.get("procedures") or []:
        for intent in iter_intents(proc.get("intents")):
            yield proc.get("name"), intent


def transform_intents(
    intents: Optional[List[Dict[str, Any]]],
    fn: Callable[[Dict[str, Any], Dict[str, List[Any]]], Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """Rebuild an intent list bottom-up.

    For each node, its child lists are transformed first; ``fn(node,
    children)`` then receives the original node and a ``{key: new_list}``
    dict and returns the replacement node.  Leaves are visited in document
    order.
    """
    out = []
    for intent in intents or []:
        if not isinstance(intent, dict):
            continue
        children = {key: transform_intents(intent[key], fn) for key in child_keys(intent)}
        out.append(fn(intent, children))
    return out
