"""ModuleStore: pipeline state persistence for VBA modules.

Step output is folded into the latest module version's ``intents`` JSON:

  extract        intents, validation   (clears downstream state)
  map            mapped, stats         (clears gap_questions)
  gap-questions  gap_questions
  resolve-gaps   mapped                (only when changed)
  generate       cljs_source column
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..pipeline.models import StepName, StepResult
from ..pipeline.status import get_module_status, normalize_module
from .db import DatabaseManager
from .models import AccessDatabase, Module

logger = logging.getLogger(__name__)


class ModuleNotFound(LookupError):
    def __init__(self, name: str, database_id: str):
        self.name = name
        self.database_id = database_id
        super().__init__(f'Module "{name}" not found')


class ModuleStore:
    """Reads and writes module pipeline state through a DatabaseManager."""

    def __init__(self, db_manager: DatabaseManager):
        self._db = db_manager

    # ── Databases ──────────────────────────────────────────────────────

    def register_database(
        self,
        database_id: str,
        name: str,
        tables: Optional[List[str]] = None,
        queries: Optional[List[str]] = None,
        forms: Optional[List[str]] = None,
        reports: Optional[List[str]] = None,
    ) -> None:
        """Create or update an Access database and its object catalogue."""
        with self._db.get_session() as session:
            db = session.get(AccessDatabase, database_id)
            if db is None:
                db = AccessDatabase(database_id=database_id, name=name)
                session.add(db)
            db.name = name
            db.tables = list(tables or [])
            db.queries = list(queries or [])
            db.forms = list(forms or [])
            db.reports = list(reports or [])
        logger.info(f"Registered database {database_id} ({name})")

    def app_objects(self, database_id: str) -> Dict[str, List[str]]:
        """Object catalogue for auto-resolution; empty when unknown."""
        with self._db.get_session() as session:
            db = session.get(AccessDatabase, database_id)
            return db.app_objects() if db else {}

    # ── Modules ────────────────────────────────────────────────────────

    @staticmethod
    def _latest(session: Session, name: str, database_id: str) -> Optional[Module]:
        return (
            session.query(Module)
            .filter(Module.name == name, Module.database_id == database_id)
            .order_by(Module.version.desc())
            .first()
        )

    def _require_latest(self, session: Session, name: str, database_id: str) -> Module:
        module = self._latest(session, name, database_id)
        if module is None:
            raise ModuleNotFound(name, database_id)
        return module

    def import_module(self, database_id: str, name: str, vba_source: str) -> int:
        """Store *vba_source* as a new current version of module *name*.

        Returns:
            The new version number.
        """
        with self._db.get_session() as session:
            previous = self._latest(session, name, database_id)
            version = (previous.version + 1) if previous else 1
            (
                session.query(Module)
                .filter(Module.name == name, Module.database_id == database_id)
                .update({Module.is_current: False}, synchronize_session=False)
            )
            session.add(Module(
                database_id=database_id,
                name=name,
                version=version,
                vba_source=vba_source,
                intents={},
                is_current=True,
            ))
        logger.info(f"Imported module {name} v{version} into database {database_id}")
        return version

    def load(self, name: str, database_id: str) -> Dict[str, Any]:
        """Latest version of a module, normalised.

        Raises:
            ModuleNotFound: no such module in the database.
        """
        with self._db.get_session() as session:
            return normalize_module(self._require_latest(session, name, database_id).to_record())

    def persist_step_result(self, name: str, database_id: str, step_result: StepResult) -> None:
        """Fold one step's output into the latest module version."""
        result = step_result.result or {}
        step = StepName(step_result.step)

        with self._db.get_session() as session:
            module = self._require_latest(session, name, database_id)
            data = dict(module.intents or {})

            if step == StepName.EXTRACT:
                data = {"intents": result.get("intents"), "validation": result.get("validation")}
                module.cljs_source = None
            elif step == StepName.MAP:
                data["mapped"] = result.get("mapped")
                data["stats"] = result.get("stats")
                data.pop("gap_questions", None)
                module.cljs_source = None
            elif step == StepName.GAP_QUESTIONS:
                data["gap_questions"] = result.get("gap_questions") or []
            elif step == StepName.RESOLVE_GAPS:
                if result.get("changed"):
                    data["mapped"] = result.get("mapped")
                    module.cljs_source = None
            elif step == StepName.GENERATE:
                module.cljs_source = result.get("source")

            # Reassign so the JSON column is flagged dirty
            module.intents = data
        logger.debug(f"Persisted {step.value} result for {name} ({database_id})")

    def save_mapped(self, name: str, database_id: str, mapped: Dict[str, Any]) -> None:
        """Replace the mapped data of the latest version (human gap answers)."""
        with self._db.get_session() as session:
            module = self._require_latest(session, name, database_id)
            module.intents = {**(module.intents or {}), "mapped": mapped}
            module.cljs_source = None

    def list_current(self, database_id: str) -> List[Dict[str, Any]]:
        """Pipeline position of every current module in a database."""
        with self._db.get_session() as session:
            modules = (
                session.query(Module)
                .filter(Module.database_id == database_id, Module.is_current.is_(True))
                .order_by(Module.name)
                .all()
            )
            rows = []
            for module in modules:
                status = get_module_status(module.to_record())
                rows.append({
                    "name": module.name,
                    "version": module.version,
                    "step": status.step,
                    "status": status.status,
                    "has_vba": bool(module.vba_source),
                    "has_cljs": bool(module.cljs_source),
                    "module_status": module.status,
                })
            return rows
