"""Data contracts for the translation pipeline.

Intents, procedures and mapped output stay plain dicts: they arrive as LLM
JSON and are persisted as JSON.  The orchestration records below are
dataclasses for transport between layers, with ``to_dict()`` for the wire.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional


class StepName(str, Enum):
    """The five pipeline steps, in execution order."""
    EXTRACT = "extract"
    MAP = "map"
    GAP_QUESTIONS = "gap-questions"
    RESOLVE_GAPS = "resolve-gaps"
    GENERATE = "generate"


STEP_ORDER: List[StepName] = [
    StepName.EXTRACT,
    StepName.MAP,
    StepName.GAP_QUESTIONS,
    StepName.RESOLVE_GAPS,
    StepName.GENERATE,
]


class Classification(str, Enum):
    MECHANICAL = "mechanical"
    GAP = "gap"


# async (input, context) -> output
StrategyFn = Callable[[Dict[str, Any], Dict[str, Any]], Awaitable[Dict[str, Any]]]


@dataclass
class StepDefinition:
    """A pipeline step and the strategies registered for it."""

    name: StepName
    default_strategy: str
    strategies: Dict[str, StrategyFn] = field(default_factory=dict)
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name.value,
            "default_strategy": self.default_strategy,
            "strategies": list(self.strategies),
            "description": self.description,
        }


@dataclass
class StepResult:
    """Output of one strategy invocation.  ``duration`` is in milliseconds."""

    step: str
    strategy: str
    result: Dict[str, Any]
    duration: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "strategy": self.strategy,
            "result": self.result,
            "duration": self.duration,
        }


@dataclass
class ModuleStatus:
    """Where a module sits in the pipeline: the next step to run."""

    step: str
    status: str  # "pending" | "complete"

    def to_dict(self) -> Dict[str, str]:
        return {"step": self.step, "status": self.status}


@dataclass
class RunResult:
    """Aggregate result of :func:`run_pipeline`."""

    status: str  # "complete" | "failed"
    results: List[StepResult] = field(default_factory=list)
    module_status: Optional[ModuleStatus] = None
    failed_step: Optional[str] = None
    error: Optional[str] = None

    def step(self, name: str) -> Optional[StepResult]:
        """Return the result recorded for step *name*, if it ran."""
        for r in self.results:
            if r.step == name:
                return r
        return None

    @property
    def step_names(self) -> List[str]:
        return [r.step for r in self.results]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": self.status,
            "results": [r.to_dict() for r in self.results],
            "module_status": self.module_status.to_dict() if self.module_status else None,
        }
        if self.failed_step is not None:
            data["failed_step"] = self.failed_step
            data["error"] = self.error
        return data


@dataclass
class ResolveOutcome:
    """Result of attaching resolutions to gap nodes.

    ``changed`` is the explicit "mapped was modified" signal.  When it is
    ``False``, ``mapped`` is the very object that was passed in, so callers
    may also rely on identity.
    """

    mapped: Dict[str, Any]
    changed: bool = False
    resolved_count: int = 0
    remaining_gaps: int = 0
    unmatched: List[str] = field(default_factory=list)
