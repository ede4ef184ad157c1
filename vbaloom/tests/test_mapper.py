"""Tests for the deterministic classifier (map step)."""

import copy
import re

from vbaloom.core.pipeline.mapper import (
    assign_gap_ids,
    classify_intent,
    count_classifications,
    map_intents,
    map_procedure,
)
from vbaloom.core.pipeline.models import Classification


def _gap(line="x", reason="r"):
    return {"type": "gap", "vba_line": line, "reason": reason}


class TestMapIntents:

    def test_show_message_and_gap(self):
        mapped = map_intents({
            "procedures": [
                {"name": "btnGo_Click", "trigger": "on-click",
                 "intents": [{"type": "show-message", "message": "hi"}, _gap()]},
            ]
        })

        assert mapped["stats"] == {"total": 2, "mechanical": 1, "gap": 1}
        gap = mapped["procedures"][0]["intents"][1]
        assert gap["gap_id"] == "btnGo_Click:0"
        assert gap["classification"] == "gap"

    def test_null_input_is_zero_procedures(self):
        mapped = map_intents(None)

        assert mapped["procedures"] == []
        assert mapped["stats"] == {"total": 0, "mechanical": 0, "gap": 0}
        assert mapped["gaps"] == []
        assert "No intent result provided" in mapped["warnings"]

    def test_input_is_not_mutated(self, gap_intents):
        original = copy.deepcopy(gap_intents)
        map_intents(gap_intents)
        assert gap_intents == original

    def test_stats_invariants(self, gap_intents):
        mapped = map_intents(gap_intents)
        stats = mapped["stats"]

        assert stats["mechanical"] + stats["gap"] == stats["total"]
        assert len(mapped["gaps"]) == stats["gap"]
        assert stats == {"total": 5, "mechanical": 3, "gap": 2}

    def test_gap_ids_are_sequential_in_document_order(self, gap_intents):
        mapped = map_intents(gap_intents)

        ids = [g["gap_id"] for g in mapped["gaps"] if g["procedure"] == "btnLookup_Click"]
        assert ids == ["btnLookup_Click:0", "btnLookup_Click:1"]
        for gap_id in ids:
            assert re.match(r"^btnLookup_Click:\d+$", gap_id)
        # the nested gap comes first
        assert mapped["gaps"][0]["reason"] == "DLookup with dynamic criteria"

    def test_gap_ids_scoped_per_procedure(self):
        mapped = map_intents({
            "procedures": [
                {"name": "A", "intents": [_gap(), _gap()]},
                {"name": "B", "intents": [_gap()]},
            ]
        })
        assert [g["gap_id"] for g in mapped["gaps"]] == ["A:0", "A:1", "B:0"]

    def test_branch_with_gap_child_is_gap(self, gap_intents):
        mapped = map_intents(gap_intents)
        branch = mapped["procedures"][0]["intents"][1]

        assert branch["classification"] == "gap"
        assert branch["mapping"] == {"type": "structural", "target": None}
        assert branch["else"][0]["classification"] == "mechanical"

    def test_branch_without_gaps_is_mechanical(self):
        mapped = map_intents({
            "procedures": [
                {"name": "P", "intents": [
                    {"type": "branch", "condition": "c",
                     "then": [{"type": "save-record"}], "else": [{"type": "requery"}]},
                ]},
            ]
        })
        branch = mapped["procedures"][0]["intents"][0]
        assert branch["classification"] == "mechanical"
        assert mapped["stats"] == {"total": 2, "mechanical": 2, "gap": 0}

    def test_gaps_inside_loop_and_error_handler(self):
        mapped = map_intents({
            "procedures": [
                {"name": "P", "intents": [
                    {"type": "error-handler", "label": "ErrH", "children": [
                        {"type": "loop", "children": [_gap("a")]},
                        _gap("b"),
                    ]},
                ]},
            ]
        })
        assert [g["vba_line"] for g in mapped["gaps"]] == ["a", "b"]
        assert [g["gap_id"] for g in mapped["gaps"]] == ["P:0", "P:1"]
        assert mapped["procedures"][0]["intents"][0]["classification"] == "gap"

    def test_unknown_type_becomes_gap(self):
        mapped = map_intents({
            "procedures": [
                {"name": "P", "intents": [{"type": "launch-rocket", "vba_line": "Launch"}]},
            ]
        })
        node = mapped["procedures"][0]["intents"][0]

        assert node["type"] == "gap"
        assert node["original_type"] == "launch-rocket"
        assert node["reason"] == "Unknown intent type: launch-rocket"
        assert node["gap_id"] == "P:0"
        assert mapped["stats"]["gap"] == 1
        assert any("launch-rocket" in w for w in mapped["warnings"])

    def test_module_level_gaps_become_warnings(self):
        mapped = map_intents({
            "procedures": [],
            "gaps": [{"procedure": "(module-level)", "vba_line": "Declare Function", "reason": "API declare"}],
        })
        assert mapped["warnings"] == ["Module-level gap in (module-level): API declare"]
        assert mapped["gaps"] == []

    def test_every_node_gets_mapping(self, clean_intents):
        mapped = map_intents(clean_intents)
        intents = mapped["procedures"][0]["intents"]

        assert intents[0]["mapping"] == {"type": "template", "target": "branch-alert-abort"}
        assert intents[1]["mapping"] == {"type": "flow", "target": "save-current-record-flow"}
        assert mapped["stats"] == {"total": 2, "mechanical": 2, "gap": 0}


class TestHelpers:

    def test_classify_resolved_gap_in_branch_is_mechanical(self):
        branch = {
            "type": "branch",
            "then": [{"type": "gap", "resolution": {"answer": "ok"}}],
        }
        assert classify_intent(branch) == Classification.MECHANICAL

    def test_count_classifications_ignores_containers(self):
        intents = [
            {"type": "branch", "classification": "gap",
             "then": [{"type": "gap", "classification": "gap"}],
             "else": [{"type": "requery", "classification": "mechanical"}]},
        ]
        assert count_classifications(intents) == {"total": 2, "mechanical": 1, "gap": 1}

    def test_assign_gap_ids_returns_next_index(self):
        intents = [_gap(), {"type": "requery"}, _gap()]
        assert assign_gap_ids(intents, "P", start=3) == 5
        assert intents[0]["gap_id"] == "P:3"
        assert intents[2]["gap_id"] == "P:4"

    def test_map_procedure_keeps_name_and_trigger(self):
        proc = map_procedure({"name": "Form_Load", "trigger": "on-load", "intents": []})
        assert proc["name"] == "Form_Load"
        assert proc["trigger"] == "on-load"
        assert proc["stats"] == {"total": 0, "mechanical": 0, "gap": 0}
