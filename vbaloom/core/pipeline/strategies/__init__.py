"""Built-in pipeline strategies, registered on import."""

from ..models import StepName
from ..registry import StepRegistry
from .extract import extract_llm, extract_mock
from .gap_questions import gap_questions_llm, gap_questions_skip, gap_questions_template
from .generate import generate_full, generate_mechanical_strategy
from .map import map_deterministic
from .resolve_gaps import resolve_gaps_auto, resolve_gaps_manual, resolve_gaps_skip

StepRegistry.register_step(
    StepName.EXTRACT,
    "llm",
    {"llm": extract_llm, "mock": extract_mock},
    "Extract structured intents from VBA source",
)
StepRegistry.register_step(
    StepName.MAP,
    "deterministic",
    {"deterministic": map_deterministic},
    "Classify intents as mechanical or gap",
)
StepRegistry.register_step(
    StepName.GAP_QUESTIONS,
    "llm",
    {"llm": gap_questions_llm, "template": gap_questions_template, "skip": gap_questions_skip},
    "Ask one question per untranslatable construct",
)
StepRegistry.register_step(
    StepName.RESOLVE_GAPS,
    "auto",
    {"auto": resolve_gaps_auto, "manual": resolve_gaps_manual, "skip": resolve_gaps_skip},
    "Attach resolutions to gaps",
)
StepRegistry.register_step(
    StepName.GENERATE,
    "full",
    {"full": generate_full, "mechanical": generate_mechanical_strategy},
    "Generate ClojureScript from classified intents",
)
