"""VBA -> ClojureScript translation pipeline.

Steps run in a fixed order (extract, map, gap-questions, resolve-gaps,
generate); each step has named strategies registered in
:class:`StepRegistry`.  Importing this package registers the built-in
strategies.
"""

from . import strategies  # noqa: F401  (registers built-in strategies)
from .errors import PipelineError, StrategyExecutionFailure, UnknownStep, UnknownStrategy
from .generator import generate_mechanical, to_clojure_name
from .mapper import map_intents
from .models import (
    STEP_ORDER,
    Classification,
    ModuleStatus,
    ResolveOutcome,
    RunResult,
    StepDefinition,
    StepName,
    StepResult,
)
from .registry import StepRegistry, get_step, list_strategies
from .resolution import apply_gap_answers, auto_resolve_gaps
from .runner import run_pipeline, run_step
from .status import (
    collect_gaps,
    count_unresolved_gaps,
    get_module_status,
    has_unresolved_gaps,
    normalize_module,
)
from .validation import validate_intents

__all__ = [
    "STEP_ORDER",
    "Classification",
    "ModuleStatus",
    "PipelineError",
    "ResolveOutcome",
    "RunResult",
    "StepDefinition",
    "StepName",
    "StepRegistry",
    "StepResult",
    "StrategyExecutionFailure",
    "UnknownStep",
    "UnknownStrategy",
    "apply_gap_answers",
    "auto_resolve_gaps",
    "collect_gaps",
    "count_unresolved_gaps",
    "generate_mechanical",
    "get_module_status",
    "get_step",
    "has_unresolved_gaps",
    "list_strategies",
    "map_intents",
    "normalize_module",
    "run_pipeline",
    "run_step",
    "to_clojure_name",
    "validate_intents",
]
