"""Model selection against a static preference table."""

import logging
from typing import Optional, Sequence, Tuple

from .errors import InvalidArgumentError
from .state import SelectionPolicy

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama3.2:3b"

# Ranked preference table; never mutated at runtime
SELECTION_POLICIES: Tuple[SelectionPolicy, ...] = (
    SelectionPolicy("llama3.1:8b", min_memory_gb=16, priority=95),
    SelectionPolicy("mistral:7b", min_memory_gb=16, priority=90),
    SelectionPolicy("llama3.2:3b", min_memory_gb=8, priority=80),
    SelectionPolicy("phi3:mini", min_memory_gb=8, priority=70),
    SelectionPolicy("gemma2:2b", min_memory_gb=4, priority=60),
    SelectionPolicy("qwen2.5:1.5b", min_memory_gb=4, priority=50),
    SelectionPolicy("tinyllama", min_memory_gb=2, priority=40),
)


def _match(pattern: str, catalog: Sequence[str]) -> Optional[str]:
    """Exact match first, then prefix, then substring. Case-insensitive."""
    needle = pattern.lower()
    lowered = [(name, name.lower()) for name in catalog]
    for name, low in lowered:
        if low == needle:
            return name
    for name, low in lowered:
        if low.startswith(needle):
            return name
    for name, low in lowered:
        if needle in low:
            return name
    return None


def select_optimal(
    catalog: Sequence[str],
    available_memory_gb: float,
    policies: Sequence[SelectionPolicy] = SELECTION_POLICIES,
) -> str:
    """
    Pick the best model in the catalog for the available memory.

    Among table entries that match a catalog name and fit in memory, the
    strictly highest priority wins; ties keep table order. Falls back to
    the first catalog entry, or DEFAULT_MODEL for an empty catalog.
    """
    if not catalog:
        return DEFAULT_MODEL

    best: Optional[str] = None
    best_priority = None
    for policy in policies:
        name = _match(policy.pattern, catalog)
        if name is None or available_memory_gb < policy.min_memory_gb:
            continue
        if best_priority is None or policy.priority > best_priority:
            best, best_priority = name, policy.priority

    if best is None:
        logger.debug(f"No preferred model fits {available_memory_gb:.1f}GB, using {catalog[0]}")
        return catalog[0]
    return best


class ModelSelector:
    """
    Holds the currently selected model.

    An explicit override from set_selected() is pinned: automatic refreshes
    leave it alone, and only another set_selected() or choose() replaces it.
    """

    def __init__(self, selected: Optional[str] = None):
        self._selected = selected or None
        self._pinned = bool(self._selected)

    @property
    def selected(self) -> Optional[str]:
        return self._selected

    @property
    def pinned(self) -> bool:
        return self._pinned

    def set_selected(self, name: str) -> None:
        if not name or not name.strip():
            raise InvalidArgumentError("Model name cannot be empty")
        self._selected = name.strip()
        self._pinned = True
        logger.info(f"Model override: {self._selected}")

    def choose(self, catalog: Sequence[str], available_memory_gb: float) -> str:
        """Re-run the ranking and make its result the selection."""
        name = select_optimal(catalog, available_memory_gb)
        self._selected = name
        self._pinned = False
        logger.info(f"Selected model {name} ({len(catalog)} in catalog, {available_memory_gb:.1f}GB free)")
        return name

    def adopt(self, name: str) -> None:
        """Select a model without pinning it, e.g. the first catalog entry on demand."""
        self._selected = name
        self._pinned = False
        logger.info(f"Using model {name}")

    def clear(self) -> None:
        """Drop the selection, e.g. when the server reports no models."""
        if self._selected:
            logger.info(f"Cleared model selection ({self._selected})")
        self._selected = None
        self._pinned = False
