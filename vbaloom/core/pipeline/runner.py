"""Pipeline runner.

``run_step`` invokes one strategy; ``run_pipeline`` drives the five steps
in order over an accumulator dict, skipping steps whose output is already
present:

  extract        skipped when ``intents`` or ``mapped`` is supplied
  map            skipped when ``mapped`` is supplied
  gap-questions  } included only when the mapped data has at least one gap
  resolve-gaps   }
  generate       always runs, last

A failing strategy stops the run.  Completed step results are kept in the
returned :class:`RunResult` alongside the failed step and its error.
"""

import logging
import time
from typing import Any, Dict, Optional, Union

from .errors import StrategyExecutionFailure
from .models import RunResult, StepName, StepResult
from .registry import StepRegistry, coerce_step_name
from .status import collect_gaps, get_module_status

logger = logging.getLogger(__name__)

# Accumulator keys forwarded from the caller's initial input.
_SEED_KEYS = ("vba_source", "module_name", "app_objects", "intents", "mapped", "answers", "resolved_by")


async def run_step(
    step: Union[str, StepName],
    input: Dict[str, Any],
    context: Optional[Dict[str, Any]] = None,
    strategy: Optional[str] = None,
) -> StepResult:
    """Run one step with *strategy* (or the step's default).

    Raises:
        UnknownStep, UnknownStrategy: before the strategy is invoked.
        StrategyExecutionFailure: the strategy raised; the original error is
            chained as ``__cause__``.
    """
    definition = StepRegistry.get_step(step)
    strategy_name = strategy or definition.default_strategy
    fn = StepRegistry.get_strategy(definition.name, strategy_name)
    step_value = definition.name.value

    logger.info("Running step %s (strategy=%s)", step_value, strategy_name)
    t0 = time.time()
    try:
        result = await fn(input, context or {})
    except Exception as e:
        logger.error("Step %s (%s) failed: %s", step_value, strategy_name, e, exc_info=True)
        raise StrategyExecutionFailure(step_value, strategy_name, e) from e
    duration = int((time.time() - t0) * 1000)

    logger.debug("Step %s (%s) finished in %dms", step_value, strategy_name, duration)
    return StepResult(step=step_value, strategy=strategy_name, result=result, duration=duration)


def _validate_config(strategy_config: Optional[Dict[str, str]]) -> Dict[StepName, str]:
    """Resolve every configured step/strategy before anything runs."""
    resolved: Dict[StepName, str] = {}
    for step, strategy in (strategy_config or {}).items():
        step_name = coerce_step_name(step)
        StepRegistry.get_strategy(step_name, strategy)
        resolved[step_name] = strategy
    return resolved


def _final_status_record(acc: Dict[str, Any]) -> Dict[str, Any]:
    # Mapped data supplied without intents still counts as extracted.
    return {
        "name": acc.get("module_name"),
        "vba_source": acc.get("vba_source"),
        "intents": acc.get("intents") or ({"procedures": []} if acc.get("mapped") else None),
        "mapped": acc.get("mapped"),
        "generated_source": acc.get("generated_source"),
    }


async def run_pipeline(
    initial_input: Dict[str, Any],
    context: Optional[Dict[str, Any]] = None,
    strategy_config: Optional[Dict[str, str]] = None,
) -> RunResult:
    """Run the pipeline over *initial_input*.

    Args:
        initial_input: Seed data.  ``vba_source`` and ``module_name`` for a
            fresh module; ``intents`` or ``mapped`` to resume part way.
        context: Passed unchanged to every strategy.
        strategy_config: ``{step: strategy}`` overrides; unlisted steps use
            their defaults.

    Raises:
        UnknownStep, UnknownStrategy: a config entry does not resolve.  No
            step has run when this is raised.
    """
    strategies = _validate_config(strategy_config)
    context = context or {}
    acc: Dict[str, Any] = {k: initial_input[k] for k in _SEED_KEYS if k in initial_input}
    results = []

    def _failed(step: StepName, error: str) -> RunResult:
        return RunResult(
            status="failed",
            results=results,
            module_status=get_module_status(_final_status_record(acc)),
            failed_step=step.value,
            error=error,
        )

    async def _run(step: StepName) -> StepResult:
        step_result = await run_step(step, dict(acc), context, strategies.get(step))
        results.append(step_result)
        return step_result

    try:
        if not acc.get("intents") and not acc.get("mapped"):
            extracted = await _run(StepName.EXTRACT)
            acc["intents"] = extracted.result.get("intents")

        if acc.get("mapped"):
            gap_count = len(collect_gaps(acc["mapped"]))
        else:
            if not acc.get("intents"):
                return _failed(StepName.MAP, "No intents available to map")
            mapped = await _run(StepName.MAP)
            acc["mapped"] = mapped.result.get("mapped")
            gap_count = (mapped.result.get("stats") or {}).get("gap", 0)

        if gap_count > 0:
            questions = await _run(StepName.GAP_QUESTIONS)
            acc["gap_questions"] = questions.result.get("gap_questions") or []

            resolved = await _run(StepName.RESOLVE_GAPS)
            if resolved.result.get("changed"):
                acc["mapped"] = resolved.result.get("mapped")
        else:
            logger.debug("No gaps in %s, skipping gap-questions and resolve-gaps", acc.get("module_name"))

        generated = await _run(StepName.GENERATE)
        acc["generated_source"] = generated.result.get("source")
    except StrategyExecutionFailure as e:
        return _failed(coerce_step_name(e.step), str(e.cause))

    module_status = get_module_status(_final_status_record(acc))
    logger.info(
        "Pipeline complete for %s: steps=%s, next=%s",
        acc.get("module_name"), ", ".join(r.step for r in results), module_status.step,
    )
    return RunResult(status="complete", results=results, module_status=module_status)
