"""Map strategy: intents -> classified intents.

Input:  ``{"intents"}``
Output: ``{"mapped", "stats", "gaps"}``
"""

from typing import Any, Dict

from ..mapper import map_intents


async def map_deterministic(input: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
    """Deterministic mapping, no LLM involved."""
    mapped = map_intents(input.get("intents"))
    return {
        "mapped": mapped,
        "stats": dict(mapped["stats"]),
        "gaps": list(mapped["gaps"]),
    }
