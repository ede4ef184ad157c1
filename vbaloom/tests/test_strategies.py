"""Tests for the built-in step strategies."""

import json
from unittest.mock import patch

import pytest

from vbaloom.core.pipeline.mapper import map_intents
from vbaloom.core.pipeline.strategies.extract import MOCK_INTENTS, extract_llm, extract_mock
from vbaloom.core.pipeline.strategies.gap_questions import (
    DEFAULT_SUGGESTIONS,
    gap_questions_llm,
    gap_questions_skip,
    gap_questions_template,
)
from vbaloom.core.pipeline.strategies.generate import generate_full, generate_mechanical_strategy
from vbaloom.core.pipeline.strategies.map import map_deterministic
from vbaloom.core.pipeline.strategies.resolve_gaps import (
    resolve_gaps_auto,
    resolve_gaps_manual,
    resolve_gaps_skip,
)

VBA = '''Private Sub btnSave_Click()
    If IsNull(Me.txtName) Then
        MsgBox "Name is required"
        Exit Sub
    End If
    DoCmd.RunCommand acCmdSaveRecord
End Sub
'''


# ── extract ──────────────────────────────────────────────────────────────


class TestExtract:

    @pytest.mark.asyncio
    async def test_mock_fixture(self):
        result = await extract_mock({"vba_source": VBA, "module_name": "Form_Orders"}, {})

        procs = result["intents"]["procedures"]
        assert len(procs) == 1
        assert procs[0]["name"] == "btnSave_Click"
        assert procs[0]["trigger"] == "on-click"
        assert [i["type"] for i in procs[0]["intents"]] == ["validate-required", "save-record"]
        assert result["validation"]["valid"] is True

    @pytest.mark.asyncio
    async def test_mock_returns_a_copy(self):
        result = await extract_mock({}, {})
        result["intents"]["procedures"].clear()
        assert len(MOCK_INTENTS["procedures"]) == 1

    @pytest.mark.asyncio
    async def test_mock_then_map_is_two_mechanical_intents(self):
        extracted = await extract_mock({}, {})
        mapped = map_intents(extracted["intents"])

        assert len(mapped["procedures"]) == 1
        intents = mapped["procedures"][0]["intents"]
        assert len(intents) == 2
        assert all(i["classification"] == "mechanical" for i in intents)

    @pytest.mark.asyncio
    async def test_mock_override_from_context(self, gap_intents):
        result = await extract_mock({}, {"mock_intents": gap_intents})
        assert result["intents"] == gap_intents
        assert result["intents"] is not gap_intents

    @pytest.mark.asyncio
    async def test_llm_parses_fenced_json(self, llm_factory, clean_intents):
        llm = llm_factory("```json\n" + json.dumps(clean_intents) + "\n```")

        result = await extract_llm(
            {"vba_source": VBA, "module_name": "Form_Orders", "app_objects": {"tables": ["Orders"]}},
            {"llm": llm},
        )

        assert result["intents"] == clean_intents
        assert result["validation"]["valid"] is True
        prompt = llm.acomplete.call_args.args[0]
        assert 'VBA module "Form_Orders"' in prompt
        assert "btnSave_Click" in prompt
        assert "Tables: Orders" in prompt

    @pytest.mark.asyncio
    async def test_llm_reports_unknown_types(self, llm_factory):
        llm = llm_factory({"procedures": [{"name": "P", "intents": [{"type": "teleport"}]}]})
        result = await extract_llm({"vba_source": VBA}, {"llm": llm})
        assert result["validation"]["unknown"] == ["teleport"]

    @pytest.mark.asyncio
    async def test_llm_requires_source(self, llm_factory):
        llm = llm_factory("{}")
        with pytest.raises(ValueError, match="vba_source is required"):
            await extract_llm({"module_name": "M"}, {"llm": llm})
        llm.acomplete.assert_not_called()

    @pytest.mark.asyncio
    async def test_llm_rejects_non_object(self, llm_factory):
        llm = llm_factory("[1, 2]")
        with pytest.raises(ValueError, match="expected an object"):
            await extract_llm({"vba_source": VBA}, {"llm": llm})


# ── map ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_map_deterministic(gap_intents):
    result = await map_deterministic({"intents": gap_intents}, {})

    assert result["stats"] == result["mapped"]["stats"]
    assert result["gaps"] == result["mapped"]["gaps"]
    assert result["stats"]["gap"] == 2


# ── gap-questions ────────────────────────────────────────────────────────


class TestGapQuestions:

    @pytest.mark.asyncio
    async def test_template(self, gap_intents):
        result = await gap_questions_template({"mapped": map_intents(gap_intents)}, {})

        questions = result["gap_questions"]
        assert len(questions) == 2
        assert questions[1]["gap_id"] == "btnLookup_Click:1"
        assert questions[1]["question"] == (
            'This VBA code does: "Shell "notepad.exe"". How should this work in the web app?'
        )
        assert questions[1]["suggestions"] == DEFAULT_SUGGESTIONS

    @pytest.mark.asyncio
    async def test_template_skips_resolved(self, gap_intents):
        mapped = map_intents(gap_intents)
        mapped["procedures"][0]["intents"][2]["resolution"] = {"answer": "skip"}

        result = await gap_questions_template({"mapped": mapped}, {})
        assert [q["gap_id"] for q in result["gap_questions"]] == ["btnLookup_Click:0"]

    @pytest.mark.asyncio
    async def test_template_treats_empty_resolution_as_resolved(self, gap_intents):
        mapped = map_intents(gap_intents)
        mapped["procedures"][0]["intents"][2]["resolution"] = {}

        result = await gap_questions_template({"mapped": mapped}, {})
        assert [q["gap_id"] for q in result["gap_questions"]] == ["btnLookup_Click:0"]

    @pytest.mark.asyncio
    async def test_skip(self, gap_intents):
        result = await gap_questions_skip({"mapped": map_intents(gap_intents)}, {})
        assert result == {"gap_questions": []}

    @pytest.mark.asyncio
    async def test_llm_merges_with_gap_info(self, llm_factory, gap_intents):
        llm = llm_factory([
            {"question": "Which customer field should be shown?", "suggestions": ["Name", "Email"]},
        ])

        result = await gap_questions_llm(
            {"mapped": map_intents(gap_intents), "vba_source": VBA, "module_name": "Form_Orders"},
            {"llm": llm},
        )

        first, second = result["gap_questions"]
        assert first["gap_id"] == "btnLookup_Click:0"
        assert first["question"] == "Which customer field should be shown?"
        assert first["suggestions"] == ["Name", "Email"]
        # missing entry falls back to the template
        assert second["question"].startswith("This VBA code does:")
        assert "[btnLookup_Click:1]" in llm.acomplete.call_args.args[0]

    @pytest.mark.asyncio
    async def test_llm_accepts_wrapped_object(self, llm_factory, gap_intents):
        llm = llm_factory({"questions": [{"question": "Q1"}, {"question": "Q2", "suggestions": ["a"]}]})
        result = await gap_questions_llm({"mapped": map_intents(gap_intents)}, {"llm": llm})

        assert [q["question"] for q in result["gap_questions"]] == ["Q1", "Q2"]
        assert result["gap_questions"][0]["suggestions"] == DEFAULT_SUGGESTIONS

    @pytest.mark.asyncio
    async def test_llm_not_called_without_gaps(self, llm_factory, clean_intents):
        llm = llm_factory("[]")
        result = await gap_questions_llm({"mapped": map_intents(clean_intents)}, {"llm": llm})

        assert result == {"gap_questions": []}
        llm.acomplete.assert_not_called()


# ── resolve-gaps ─────────────────────────────────────────────────────────


class TestResolveGaps:

    @pytest.mark.asyncio
    async def test_skip_returns_identical_mapped(self, gap_intents):
        mapped = map_intents(gap_intents)
        result = await resolve_gaps_skip({"mapped": mapped}, {})

        assert result["mapped"] is mapped
        assert result["changed"] is False
        assert result["resolved_count"] == 0
        assert result["remaining_gaps"] == 2

    @pytest.mark.asyncio
    async def test_auto_uses_context_app_objects(self, gap_intents):
        mapped = map_intents(gap_intents)
        result = await resolve_gaps_auto({"mapped": mapped}, {"app_objects": {"tables": ["Customers"]}})

        assert result["changed"] is True
        assert result["resolved_count"] == 1
        assert result["remaining_gaps"] == 1
        assert result["mapped"] is not mapped

    @pytest.mark.asyncio
    async def test_auto_without_matches_is_identity(self, gap_intents):
        mapped = map_intents(gap_intents)
        result = await resolve_gaps_auto({"mapped": mapped, "app_objects": {"tables": ["Other"]}}, {})

        assert result["changed"] is False
        assert result["mapped"] is mapped

    @pytest.mark.asyncio
    async def test_manual(self, gap_intents):
        mapped = map_intents(gap_intents)
        result = await resolve_gaps_manual(
            {"mapped": mapped, "answers": {"btnLookup_Click:1": "Skip this functionality", "nope:0": "x"}},
            {"user": "alice"},
        )

        assert result["resolved_count"] == 1
        assert result["unmatched"] == ["nope:0"]
        resolution = result["mapped"]["procedures"][0]["intents"][2]["resolution"]
        assert resolution["resolved_by"] == "alice"


# ── generate ─────────────────────────────────────────────────────────────


class TestGenerate:

    @pytest.mark.asyncio
    async def test_mechanical(self, clean_intents):
        result = await generate_mechanical_strategy(
            {"mapped": map_intents(clean_intents), "module_name": "PipelineTest"}, {},
        )
        assert "pipeline-test" in result["source"]
        assert result["stats"]["total_procedures"] == 1

    @pytest.mark.asyncio
    async def test_full_without_gaps_skips_llm(self, llm_factory, clean_intents):
        llm = llm_factory("(ns other)")
        result = await generate_full({"mapped": map_intents(clean_intents), "module_name": "M"}, {"llm": llm})

        llm.acomplete.assert_not_called()
        assert result["source"].startswith("(ns app.modules.m")

    @pytest.mark.asyncio
    async def test_full_completes_gaps(self, llm_factory, gap_intents):
        mapped = map_intents(gap_intents)
        mapped["procedures"][0]["intents"][2]["resolution"] = {"answer": "Open a link", "custom_notes": "new tab"}
        llm = llm_factory("```clojure\n(ns app.modules.orders)\n(defn btn-lookup-click [] nil)\n```")

        result = await generate_full(
            {"mapped": mapped, "module_name": "Orders", "vba_source": VBA}, {"llm": llm},
        )

        assert result["llm_completed"] is True
        assert result["source"] == "(ns app.modules.orders)\n(defn btn-lookup-click [] nil)\n"
        assert result["stats"]["gap_procedures"] == ["btnLookup_Click"]
        prompt = llm.acomplete.call_args.args[0]
        assert "Answer: Open a link" in prompt
        assert "Notes: new tab" in prompt
        assert ";; UNMAPPED:" in prompt

    @pytest.mark.asyncio
    async def test_full_falls_back_on_llm_error(self, llm_factory, gap_intents):
        llm = llm_factory(RuntimeError("provider down"))
        result = await generate_full({"mapped": map_intents(gap_intents), "module_name": "Orders"}, {"llm": llm})

        assert result["llm_completed"] is False
        assert result["fallback_error"] == "provider down"
        assert ";; UNMAPPED:" in result["source"]

    @pytest.mark.asyncio
    async def test_full_falls_back_on_empty_response(self, llm_factory, gap_intents):
        llm = llm_factory("   ")
        result = await generate_full({"mapped": map_intents(gap_intents), "module_name": "Orders"}, {"llm": llm})

        assert result["fallback_error"] == "Empty LLM response"
        assert result["source"].startswith("(ns app.modules.orders")

    @pytest.mark.asyncio
    async def test_full_without_llm(self, gap_intents):
        with patch("vbaloom.core.pipeline.strategies.generate.has_llm", return_value=False):
            result = await generate_full({"mapped": map_intents(gap_intents), "module_name": "Orders"}, {})

        assert result["llm_completed"] is False
        assert "fallback_error" not in result
