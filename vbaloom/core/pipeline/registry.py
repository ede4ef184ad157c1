"""Pipeline step registry.

Simple dict-based registry.  All steps and strategies are registered at
import time via ``strategies/__init__.py``.  No plugin discovery: every
strategy ships with the package.

Step names are :class:`StepName` members internally; callers at the API
boundary may pass the plain strings (``"gap-questions"``).
"""

import logging
from typing import Any, Dict, List, Union

from .errors import UnknownStep, UnknownStrategy
from .models import STEP_ORDER, StepDefinition, StepName, StrategyFn

logger = logging.getLogger(__name__)


def coerce_step_name(name: Union[str, StepName]) -> StepName:
    """Convert a wire step name to :class:`StepName`, raising ``UnknownStep``."""
    if isinstance(name, StepName):
        return name
    try:
        return StepName(name)
    except ValueError:
        raise UnknownStep(str(name)) from None


class StepRegistry:
    """Registry for pipeline steps.

    Class-level store so the runner can call ``StepRegistry.get_step(...)``
    without holding an instance.
    """

    _steps: Dict[StepName, StepDefinition] = {}

    @classmethod
    def register_step(
        cls,
        name: StepName,
        default_strategy: str,
        strategies: Dict[str, StrategyFn],
        description: str = "",
    ) -> StepDefinition:
        """Register a step and its strategies."""
        if default_strategy not in strategies:
            raise ValueError(
                f"Default strategy {default_strategy!r} is not among {list(strategies)} for {name.value}"
            )
        definition = StepDefinition(
            name=name,
            default_strategy=default_strategy,
            strategies=dict(strategies),
            description=description,
        )
        cls._steps[name] = definition
        logger.debug(
            "Registered pipeline step: %s (strategies=%s, default=%s)",
            name.value, ", ".join(strategies), default_strategy,
        )
        return definition

    @classmethod
    def get_step(cls, name: Union[str, StepName]) -> StepDefinition:
        """Get a step definition.  Raises ``UnknownStep``."""
        step_name = coerce_step_name(name)
        definition = cls._steps.get(step_name)
        if definition is None:
            raise UnknownStep(step_name.value)
        return definition

    @classmethod
    def get_strategy(cls, name: Union[str, StepName], strategy: str) -> StrategyFn:
        """Get one strategy function.  Raises ``UnknownStep``/``UnknownStrategy``."""
        definition = cls.get_step(name)
        fn = definition.strategies.get(strategy)
        if fn is None:
            raise UnknownStrategy(definition.name.value, strategy, list(definition.strategies))
        return fn

    @classmethod
    def list_strategies(cls, name: Union[str, StepName]) -> List[str]:
        return list(cls.get_step(name).strategies)

    @classmethod
    def list_steps(cls) -> List[Dict[str, Any]]:
        """List all registered steps, in pipeline order, with metadata."""
        return [cls._steps[name].to_dict() for name in STEP_ORDER if name in cls._steps]


def get_step(name: Union[str, StepName]) -> StepDefinition:
    """Get a step definition by name.  Raises ``UnknownStep``."""
    return StepRegistry.get_step(name)


def list_strategies(name: Union[str, StepName]) -> List[str]:
    """List available strategy names for a step.  Raises ``UnknownStep``."""
    return StepRegistry.list_strategies(name)
