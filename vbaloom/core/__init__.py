# Lazy imports to avoid triggering full dependency chain.
# This allows targeted imports like `from vbaloom.core.db.models import Base`
# without pulling in the LLM provider packages.

__all__ = [
    "build_llm",
    "configure_llm",
    "get_step",
    "list_strategies",
    "run_step",
    "run_pipeline",
    "has_unresolved_gaps",
    "get_module_status",
]

_IMPORT_MAP = {
    "build_llm": ".model",
    "configure_llm": ".model",
    "get_step": ".pipeline",
    "list_strategies": ".pipeline",
    "run_step": ".pipeline",
    "run_pipeline": ".pipeline",
    "has_unresolved_gaps": ".pipeline",
    "get_module_status": ".pipeline",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'vbaloom.core' has no attribute {name}")
