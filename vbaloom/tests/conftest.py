"""Shared fixtures for the VBALoom test suite."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest


def make_llm(*responses):
    """Fake llama-index LLM whose ``acomplete`` returns *responses* in order.

    A response that is an exception instance is raised instead.
    """
    llm = MagicMock()
    side_effect = [
        r if isinstance(r, BaseException) else SimpleNamespace(text=r if isinstance(r, str) else json.dumps(r))
        for r in responses
    ]
    llm.acomplete = AsyncMock(side_effect=side_effect)
    return llm


@pytest.fixture
def llm_factory():
    return make_llm


@pytest.fixture
def gap_intents():
    """Extraction result with one gap nested in a branch and one at top level."""
    return {
        "procedures": [
            {
                "name": "btnLookup_Click",
                "trigger": "on-click",
                "intents": [
                    {"type": "show-message", "message": "Looking up"},
                    {
                        "type": "branch",
                        "condition": "(some? x)",
                        "then": [
                            {
                                "type": "gap",
                                "vba_line": 'x = DLookup("Name", "Customers", "ID=1")',
                                "reason": "DLookup with dynamic criteria",
                            },
                        ],
                        "else": [{"type": "save-record"}],
                    },
                    {
                        "type": "gap",
                        "vba_line": "Shell \"notepad.exe\"",
                        "reason": "Shell call",
                    },
                ],
            },
            {
                "name": "Form_Load",
                "trigger": "on-load",
                "intents": [{"type": "requery"}],
            },
        ],
        "gaps": [],
    }


@pytest.fixture
def clean_intents():
    return {
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
