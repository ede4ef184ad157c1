"""Tests for ModuleStore persistence (in-memory SQLite)."""

import pytest

from vbaloom.core.db import DatabaseManager, ModuleNotFound, ModuleStore
from vbaloom.core.pipeline import StepResult, map_intents


@pytest.fixture
def store():
    manager = DatabaseManager("sqlite://")
    manager.create_tables()
    module_store = ModuleStore(manager)
    module_store.register_database("db1", "Orders", tables=["Customers"], forms=["frmCustomers"])
    yield module_store
    manager.dispose()


def _result(step, **result):
    return StepResult(step=step, strategy="test", result=result)


class TestDatabases:

    def test_app_objects(self, store):
        assert store.app_objects("db1") == {
            "tables": ["Customers"],
            "queries": [],
            "forms": ["frmCustomers"],
            "reports": [],
        }

    def test_unknown_database_has_no_objects(self, store):
        assert store.app_objects("nope") == {}

    def test_register_updates(self, store):
        store.register_database("db1", "Orders v2", tables=["Customers", "Orders"])
        assert store.app_objects("db1")["tables"] == ["Customers", "Orders"]
        assert store.app_objects("db1")["forms"] == []


class TestModules:

    def test_import_versions(self, store):
        assert store.import_module("db1", "Form_Orders", "Sub a()") == 1
        assert store.import_module("db1", "Form_Orders", "Sub b()") == 2

        module = store.load("Form_Orders", "db1")
        assert module["version"] == 2
        assert module["vba_source"] == "Sub b()"
        assert not module["intents"]
        assert module["mapped"] is None

        rows = store.list_current("db1")
        assert [(r["name"], r["version"]) for r in rows] == [("Form_Orders", 2)]

    def test_load_missing(self, store):
        with pytest.raises(ModuleNotFound, match='Module "Ghost" not found'):
            store.load("Ghost", "db1")

    def test_persist_each_step(self, store, gap_intents):
        store.import_module("db1", "M", "Sub a()")
        mapped = map_intents(gap_intents)

        store.persist_step_result("M", "db1", _result("extract", intents=gap_intents, validation={"valid": True}))
        assert store.load("M", "db1")["intents"] == gap_intents

        store.persist_step_result("M", "db1", _result("map", mapped=mapped, stats=mapped["stats"]))
        store.persist_step_result("M", "db1", _result("gap-questions", gap_questions=[{"gap_id": "x"}]))
        store.persist_step_result("M", "db1", _result("generate", source="(ns m)\n"))

        module = store.load("M", "db1")
        assert module["mapped"] == mapped
        assert module["generated_source"] == "(ns m)\n"

        row = store.list_current("db1")[0]
        assert row["step"] == "resolve-gaps"
        assert row["has_cljs"] is True
        assert row["module_status"] == "imported"

    def test_unchanged_resolution_keeps_source(self, store, clean_intents):
        store.import_module("db1", "M", "Sub a()")
        mapped = map_intents(clean_intents)
        store.persist_step_result("M", "db1", _result("map", mapped=mapped, stats=mapped["stats"]))
        store.persist_step_result("M", "db1", _result("generate", source="(ns m)\n"))

        store.persist_step_result("M", "db1", _result("resolve-gaps", mapped={"bogus": True}, changed=False))

        module = store.load("M", "db1")
        assert module["mapped"] == mapped
        assert module["generated_source"] == "(ns m)\n"
        assert store.list_current("db1")[0]["step"] == "complete"

    def test_re_extract_clears_downstream(self, store, clean_intents):
        store.import_module("db1", "M", "Sub a()")
        mapped = map_intents(clean_intents)
        store.persist_step_result("M", "db1", _result("map", mapped=mapped, stats=mapped["stats"]))
        store.persist_step_result("M", "db1", _result("generate", source="(ns m)\n"))

        store.persist_step_result("M", "db1", _result("extract", intents=clean_intents, validation={}))

        module = store.load("M", "db1")
        assert module["mapped"] is None
        assert module["generated_source"] is None
        assert store.list_current("db1")[0]["step"] == "map"

    def test_save_mapped_clears_source(self, store, clean_intents):
        store.import_module("db1", "M", "Sub a()")
        store.persist_step_result("M", "db1", _result("generate", source="(ns m)\n"))

        store.save_mapped("M", "db1", map_intents(clean_intents))

        assert store.load("M", "db1")["generated_source"] is None

    def test_list_current_scoped_to_database(self, store):
        store.register_database("db2", "Other")
        store.import_module("db1", "A", "Sub a()")
        store.import_module("db2", "B", "Sub b()")

        assert [r["name"] for r in store.list_current("db1")] == ["A"]
        assert store.list_current("db1")[0]["step"] == "extract"
