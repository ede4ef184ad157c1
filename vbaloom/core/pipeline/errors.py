"""Pipeline error taxonomy.

Lookup errors (:class:`UnknownStep`, :class:`UnknownStrategy`) are caller
bugs and are raised before any strategy runs.  :class:`StrategyExecutionFailure`
wraps whatever the strategy itself raised; it may be transient (LLM provider
outage) and callers may retry it.  The runner never retries.
"""

from typing import List, Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class UnknownStep(PipelineError, LookupError):
    """Step name is not one of the registered pipeline steps."""

    def __init__(self, step: str):
        self.step = step
        super().__init__(f"Unknown pipeline step: {step}")


class UnknownStrategy(PipelineError, LookupError):
    """Strategy name is not registered for the given step."""

    def __init__(self, step: str, strategy: str, available: Optional[List[str]] = None):
        self.step = step
        self.strategy = strategy
        self.available = list(available or [])
        super().__init__(
            f'Unknown strategy "{strategy}" for step "{step}". '
            f"Available: {', '.join(self.available)}"
        )


class StrategyExecutionFailure(PipelineError):
    """The invoked strategy raised.  ``__cause__`` holds the original error."""

    def __init__(self, step: str, strategy: str, cause: BaseException):
        self.step = step
        self.strategy = strategy
        self.cause = cause
        super().__init__(f"Step {step} ({strategy}) failed: {cause}")
