"""Utility modules for the vbaloom core package.

This package contains shared utility functions used across the codebase.
"""

from .llm_utils import complete_text, has_llm, parse_json_output, resolve_llm, strip_code_fences

__all__ = ["complete_text", "has_llm", "parse_json_output", "resolve_llm", "strip_code_fences"]
