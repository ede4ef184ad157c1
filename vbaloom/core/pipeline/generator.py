"""Mechanical ClojureScript generator (``generate`` / ``mechanical``).

Turns classified intents into ClojureScript flow code for the web client:
one ``(ns ...)`` form per module, one ``defn`` per procedure, and an
``event-handlers`` map wiring control events to those functions.

Every vocabulary type has an emission rule.  Gaps become comment markers so
the output stays a syntactically valid, reviewable skeleton:

* unresolved gap  -> ``;; UNMAPPED: <vba line or reason>``
* resolved gap    -> ``;; GAP RESOLVED: ...`` followed by the user decision
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .mapper import count_classifications
from .vocabulary import is_gap, iter_intents

logger = logging.getLogger(__name__)

# goto-record position -> navigate keyword
_RECORD_POSITIONS = {
    "next": ":next",
    "previous": ":previous",
    "first": ":first",
    "last": ":last",
}


def to_clojure_name(name: Optional[str]) -> str:
    """Convert a VBA identifier to a ClojureScript identifier.

    ``"btnSave_Click"`` -> ``"btn-save-click"``,
    ``"PipelineTest"`` -> ``"pipeline-test"``.
    """
    if not name:
        return ""
    out = []
    prev = ""
    for ch in name.replace("_", "-"):
        if prev.islower() and ch.isupper():
            out.append("-")
        out.append(ch)
        prev = ch
    return "".join(out).lower()


def escape_cljs(text: Any) -> str:
    """Escape a value for use inside a ClojureScript string literal."""
    if text is None:
        return ""
    return str(text).replace("\\", "\\\\").replace('"', '\\"')


def _expr(value: Any) -> str:
    """Render an intent value as a ClojureScript expression.

    Strings are VBA expressions already rewritten by extraction and are
    emitted verbatim.
    """
    if value is None or value == "":
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flag(value: Any) -> str:
    return "1" if value else "0"


# ── Intent emission ──────────────────────────────────────────────────


def _emit_list(intents: Optional[List[Dict[str, Any]]], indent: int) -> List[str]:
    return [code for code in (generate_intent_cljs(i, indent) for i in intents or []) if code]


def _close(code: str, pad: str, parens: str = ")") -> str:
    """Append closing parens, on their own line when *code* ends in a comment."""
    if code.rsplit("\n", 1)[-1].lstrip().startswith(";;"):
        return f"{code}\n{pad}{parens}"
    return code + parens


def _emit_if(test: str, intent: Dict[str, Any], indent: int) -> str:
    pad = " " * indent
    then_code = "\n".join(_emit_list(intent.get("then"), indent + 2))
    else_code = "\n".join(_emit_list(intent.get("else"), indent + 2))
    if else_code:
        return (
            f"{pad}(if {test}\n"
            f"{pad}  (do\n{_close(then_code, pad + '  ')}\n"
            f"{pad}  (do\n{_close(else_code, pad + '  ', '))')}"
        )
    return f"{pad}(when {test}\n{_close(then_code, pad)}"


def _inline(text: Any) -> str:
    """Collapse *text* to one line for use after a `;;` marker."""
    return " ".join(str(text).split())


def _comment(pad: str, label: str, text: Any) -> List[str]:
    """``;;`` comment lines for *text*, one per source line."""
    lines = [line.strip() for line in escape_cljs(text).splitlines()]
    lines = [line for line in lines if line] or [""]
    out = [f"{pad};; {label}: {lines[0]}"]
    out.extend(f"{pad};;   {line}" for line in lines[1:])
    return out


def _emit_gap(intent: Dict[str, Any], pad: str) -> str:
    what = intent.get("vba_line") or intent.get("reason") or "unknown pattern"
    resolution = intent.get("resolution")
    if resolution is None:
        lines = _comment(pad, "UNMAPPED", what)
        reason = intent.get("reason")
        if reason and reason != what:
            lines.extend(_comment(pad, "Reason", reason))
        return "\n".join(lines)

    answer = resolution.get("answer") or ""
    lines = _comment(pad, "GAP RESOLVED", what) + _comment(pad, "User decision", answer)
    if resolution.get("custom_notes"):
        lines.extend(_comment(pad, "Notes", resolution["custom_notes"]))
    lines.append(f'{pad};; TODO: Implement "{_inline(escape_cljs(answer))}"')
    return "\n".join(lines)


def _domain_call(fn: str) -> Callable[[Dict[str, Any], str], str]:
    def emit(intent: Dict[str, Any], pad: str) -> str:
        return (
            f'{pad}(data/{fn} "{escape_cljs(intent.get("table"))}" '
            f'"{escape_cljs(intent.get("field"))}" '
            f'"{escape_cljs(intent.get("criteria"))}")'
        )
    return emit


def _field_path(intent: Dict[str, Any]) -> str:
    return f"[:form-editor :current-record :{to_clojure_name(intent.get('field'))}]"


_SIMPLE_EMITTERS: Dict[str, Callable[[Dict[str, Any], str], str]] = {
    "open-form": lambda i, pad: f'{pad}(state/open-object! :forms "{escape_cljs(i.get("form"))}")',
    "open-form-filtered": lambda i, pad: (
        f'{pad}(state/open-object! :forms "{escape_cljs(i.get("form"))}"'
        f' {{:filter "{escape_cljs(i.get("filter"))}"}})'
    ),
    "open-report": lambda i, pad: f'{pad}(state/open-object! :reports "{escape_cljs(i.get("report"))}")',
    "close-form": lambda i, pad: f'{pad}(state/close-tab! :forms "{escape_cljs(i.get("form"))}")',
    "close-current": lambda i, pad: (
        f"{pad}(let [tab (:active-tab @state/app-state)]\n"
        f"{pad}  (state/close-tab! (:type tab) (:id tab)))"
    ),
    "goto-record": lambda i, pad: (
        f"{pad}(state-form/navigate-to-record! {_RECORD_POSITIONS.get(i.get('position'), ':next')})"
    ),
    "new-record": lambda i, pad: f"{pad}(t/dispatch! :new-record)",
    "requery": lambda i, pad: f"{pad}(state-form/load-records!)",
    "save-record": lambda i, pad: f"{pad}(state-form/save-current-record!)",
    "delete-record": lambda i, pad: f"{pad}(state-form/delete-current-record!)",
    "show-message": lambda i, pad: f'{pad}(js/alert "{escape_cljs(i.get("message"))}")',
    "validate-required": lambda i, pad: (
        f"{pad}(when (nil? (get-in @state/app-state {_field_path(i)}))\n"
        f'{pad}  (js/alert "{escape_cljs(i.get("message"))}")\n'
        f'{pad}  (throw (js/Error. "validation")))'
    ),
    "validate-condition": lambda i, pad: (
        f"{pad};; Validation: {_inline(escape_cljs(i.get('condition')))}\n"
        f"{pad}(when {i.get('condition') or 'false'}\n"
        f'{pad}  (js/alert "{escape_cljs(i.get("message"))}")\n'
        f'{pad}  (throw (js/Error. "validation")))'
    ),
    "set-control-visible": lambda i, pad: (
        f"{pad};; Set {_inline(i.get('control'))} visible={_inline(i.get('value'))}\n"
        f'{pad}(t/dispatch! :update-control :detail "{escape_cljs(i.get("control"))}" :visible {_flag(i.get("value"))})'
    ),
    "set-control-enabled": lambda i, pad: (
        f"{pad};; Set {_inline(i.get('control'))} enabled={_inline(i.get('value'))}\n"
        f'{pad}(t/dispatch! :update-control :detail "{escape_cljs(i.get("control"))}" :enabled {_flag(i.get("value"))})'
    ),
    "set-control-value": lambda i, pad: (
        f"{pad};; Set {_inline(i.get('control'))} = {_inline(i.get('value'))}\n"
        f'{pad}(t/dispatch! :update-control :detail "{escape_cljs(i.get("control"))}" :value {_expr(i.get("value"))})'
    ),
    "set-filter": lambda i, pad: (
        f"{pad};; Set filter: {_inline(escape_cljs(i.get('filter')))}\n"
        f"{pad}(t/dispatch! :set-form-definition\n"
        f'{pad}  (assoc (get-in @state/app-state [:form-editor :current]) :filter "{escape_cljs(i.get("filter"))}"))'
    ),
    "set-record-source": lambda i, pad: (
        f"{pad};; Set record source: {_inline(escape_cljs(i.get('record_source')))}\n"
        f"{pad}(t/dispatch! :set-form-definition\n"
        f'{pad}  (assoc (get-in @state/app-state [:form-editor :current]) :record-source "{escape_cljs(i.get("record_source"))}"))'
    ),
    "read-field": lambda i, pad: f"{pad}(get-in @state/app-state {_field_path(i)})",
    "write-field": lambda i, pad: (
        f"{pad}(swap! state/app-state assoc-in {_field_path(i)} {_expr(i.get('value'))})"
    ),
    "set-tempvar": lambda i, pad: (
        f"{pad};; TempVar: {_inline(i.get('name'))} = {_inline(i.get('value'))}\n"
        f'{pad}(state/sync-form-state! {{"_tempvars" {{"{escape_cljs(i.get("name"))}" {_expr(i.get("value"))}}}}})'
    ),
    "dlookup": _domain_call("dlookup"),
    "dcount": _domain_call("dcount"),
    "dsum": _domain_call("dsum"),
    "run-sql": lambda i, pad: f'{pad}(data/run-sql! "{escape_cljs(i.get("sql"))}")',
}


def generate_intent_cljs(intent: Dict[str, Any], indent: int) -> str:
    """Generate ClojureScript for one classified intent (recursive)."""
    pad = " " * indent
    intent_type = intent.get("type")

    if is_gap(intent):
        return _emit_gap(intent, pad)

    if intent_type == "branch":
        return _emit_if(intent.get("condition") or "true", intent, indent)

    if intent_type == "confirm-action":
        return _emit_if(f'(js/confirm "{escape_cljs(intent.get("message"))}")', intent, indent)

    if intent_type == "loop":
        body = "\n".join(_emit_list(intent.get("children"), indent + 2))
        return (
            f"{pad};; Loop: {_inline(escape_cljs(intent.get('description') or 'iteration'))}\n"
            f"{pad}(doseq [record (state-form/current-records)]\n{_close(body, pad)}"
        )

    if intent_type == "error-handler":
        label = escape_cljs(intent.get("label") or "error-handler")
        body = "\n".join(_emit_list(intent.get("children"), indent + 2))
        return (
            f"{pad};; Error handler: {_inline(intent.get('label') or 'default')}\n"
            f"{pad}(try\n"
            f"{body}\n"
            f"{pad}  (catch js/Error e\n"
            f'{pad}    (when-not (= (.-message e) "validation")\n'
            f'{pad}      (state/log-error! (.-message e) "{label}"))))'
        )

    emitter = _SIMPLE_EMITTERS.get(intent_type)
    if emitter is None:
        return f"{pad};; UNKNOWN INTENT: {_inline(intent_type)}"
    return emitter(intent, pad)


# ── Namespace + requires ─────────────────────────────────────────────

_REQUIRE_NEEDS = {
    "state": {
        "open-form", "open-form-filtered", "open-report", "close-form",
        "close-current", "read-field", "write-field", "set-tempvar",
        "validate-required", "set-filter", "set-record-source", "error-handler",
    },
    "state-form": {
        "goto-record", "requery", "save-record", "delete-record", "loop",
    },
    "transforms": {
        "new-record", "set-control-visible", "set-control-enabled",
        "set-control-value", "set-filter", "set-record-source",
    },
    "data": {"dlookup", "dcount", "dsum", "run-sql"},
}

_REQUIRE_FORMS = {
    "state-form": "[app.state-form :as state-form]",
    "transforms": "[app.transforms.core :as t]",
    "data": "[app.data :as data]",
}


def collect_requires(procedures: List[Dict[str, Any]]) -> Dict[str, bool]:
    """Determine which namespaces the generated code needs."""
    used = set()
    for proc in procedures:
        for intent in iter_intents(proc.get("intents")):
            used.add(intent.get("type"))
    return {ns: bool(types & used) for ns, types in _REQUIRE_NEEDS.items()}


def generate_namespace(module_name: str, needs: Dict[str, bool]) -> str:
    """Generate the ``(ns ...)`` form."""
    ns_name = f"app.modules.{to_clojure_name(module_name) or 'unnamed'}"
    requires = ["[app.state :as state :refer [app-state]]"]
    for key, form in _REQUIRE_FORMS.items():
        if needs.get(key):
            requires.append(form)
    joined = "\n            ".join(requires)
    return (
        f"(ns {ns_name}\n"
        f'  "Generated from VBA module: {escape_cljs(module_name)}"\n'
        f"  (:require {joined}))"
    )


def _fn_name(proc: Dict[str, Any]) -> str:
    return to_clojure_name(proc.get("name")) or "unnamed-procedure"


def generate_procedure(proc: Dict[str, Any]) -> str:
    """Generate the ``defn`` for one procedure."""
    fn_name = _fn_name(proc)
    trigger = f" ({proc['trigger']})" if proc.get("trigger") else ""
    body = "\n".join(_emit_list(proc.get("intents"), 4)) or "  ;; (no intents)"
    return (
        f"(defn {fn_name}\n"
        f'  "Generated from VBA: {escape_cljs(proc.get("name"))}{escape_cljs(trigger)}"\n'
        f"  []\n"
        f"{_close(body, '')}"
    )


def generate_event_handlers(procedures: List[Dict[str, Any]]) -> str:
    """Generate the ``event-handlers`` map for procedures with a trigger."""
    entries = []
    for proc in procedures:
        if not proc.get("trigger"):
            continue
        parts = (proc.get("name") or "").split("_")
        control = parts[0] if len(parts) > 1 else "Form"
        entries.append(f'   "{control}.{proc["trigger"]}" {_fn_name(proc)}')

    if not entries:
        return ""

    body = "\n".join(entries)
    return (
        "(def event-handlers\n"
        '  "Map control events to handler functions"\n'
        f"  {{{body.lstrip()}}})\n"
    )


def gap_procedures(procedures: List[Dict[str, Any]]) -> List[str]:
    """Names of procedures containing at least one gap node."""
    return [
        proc.get("name")
        for proc in procedures
        if any(is_gap(i) for i in iter_intents(proc.get("intents")))
    ]


def generate_mechanical(mapped: Optional[Dict[str, Any]], module_name: str) -> Dict[str, Any]:
    """Generate ClojureScript for all mapped procedures, no LLM.

    Returns:
        ``{"source": str, "stats": {total_procedures, mechanical_count,
        gap_count, gap_procedures}}``.  The source is never empty: a module
        without procedures still gets its namespace form.
    """
    procedures = (mapped or {}).get("procedures") or []

    mechanical = 0
    gap = 0
    for proc in procedures:
        stats = proc.get("stats") or count_classifications(proc.get("intents"))
        mechanical += stats.get("mechanical", 0)
        gap += stats.get("gap", 0)

    ns = generate_namespace(module_name, collect_requires(procedures))
    procs = "\n\n".join(generate_procedure(p) for p in procedures)
    handlers = generate_event_handlers(procedures)

    source = "\n\n".join(part.rstrip("\n") for part in (ns, procs, handlers) if part) + "\n"

    logger.debug(
        "Generated %d procedure(s) for %s (%d mechanical, %d gap)",
        len(procedures), module_name, mechanical, gap,
    )

    return {
        "source": source,
        "stats": {
            "total_procedures": len(procedures),
            "mechanical_count": mechanical,
            "gap_count": gap,
            "gap_procedures": gap_procedures(procedures),
        },
    }
