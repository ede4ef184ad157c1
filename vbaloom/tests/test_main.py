"""Tests for the command line entry point."""

import json
from unittest.mock import patch

import pytest

from vbaloom.__main__ import _needs_llm, _parse_strategies, main

VBA = '''Private Sub btnSave_Click()
    DoCmd.RunCommand acCmdSaveRecord
End Sub
'''


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "Form_Orders.bas"
    path.write_text(VBA)
    return path


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    monkeypatch.delenv("VBALOOM_CONFIG", raising=False)
    monkeypatch.setattr("vbaloom.setting.setting.load_dotenv", lambda: None)


def test_parse_strategies():
    assert _parse_strategies(["extract=mock", " generate = mechanical "]) == {
        "extract": "mock", "generate": "mechanical",
    }
    assert _parse_strategies(None) == {}


def test_needs_llm():
    assert _needs_llm({}) is True
    assert _needs_llm({
        "extract": "mock", "gap-questions": "template", "generate": "mechanical",
    }) is False


def test_run_mock(tmp_path, source_file, capsys):
    output = tmp_path / "form_orders.cljs"

    with patch("vbaloom.__main__._configure_llm") as configure:
        code = main([
            "--config", str(tmp_path / "absent.yaml"),
            "run", "--source", str(source_file),
            "--strategy", "extract=mock",
            "--strategy", "gap-questions=template",
            "--strategy", "generate=mechanical",
            "-o", str(output),
        ])

    assert code == 0
    configure.assert_not_called()
    result = json.loads(capsys.readouterr().out)
    assert result["status"] == "complete"
    assert [r["step"] for r in result["results"]] == ["extract", "map", "generate"]
    assert output.read_text().startswith("(ns app.modules.form-orders")


def test_run_with_intents_file(tmp_path, source_file, capsys, gap_intents):
    intents_path = tmp_path / "intents.json"
    intents_path.write_text(json.dumps(gap_intents))

    # extract keeps its llm default, but is skipped because intents are supplied
    with patch("vbaloom.__main__._configure_llm"):
        code = main([
            "--config", str(tmp_path / "absent.yaml"),
            "run", "--source", str(source_file), "--module-name", "Lookup",
            "--intents", str(intents_path),
            "--strategy", "gap-questions=skip",
            "--strategy", "resolve-gaps=skip",
            "--strategy", "generate=mechanical",
        ])

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert [r["step"] for r in result["results"]] == ["map", "gap-questions", "resolve-gaps", "generate"]
    assert result["module_status"]["step"] == "resolve-gaps"


def test_run_bad_strategy_pair(tmp_path, source_file):
    code = main(["--config", str(tmp_path / "absent.yaml"), "run", "--source", str(source_file),
                 "--strategy", "extract"])
    assert code == 2


def test_run_unknown_strategy(tmp_path, source_file):
    code = main(["--config", str(tmp_path / "absent.yaml"), "run", "--source", str(source_file),
                 "--strategy", "extract=mock", "--strategy", "gap-questions=template",
                 "--strategy", "generate=magic"])
    assert code == 2
