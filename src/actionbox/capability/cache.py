"""
Cache for capability classifications.

Classifying a tool against free-text capability descriptions needs an LLM
call, which is slow and not repeatable. The evaluator therefore never
classifies; it only reads this cache. Whoever owns the cache (normally the
ActionBoxEnforcer) populates it before evaluating and clears it whenever the
global policy is rebuilt, since the capability lists may have changed.

Entries are keyed by tool name only: the tool name determines the category,
params don't change the classification.

Thread safety: all access goes through one lock. Two threads classifying the
same new tool may both write; the last write wins.
"""

import threading

from actionbox.schema import CapabilityClassification


class CapabilityCache:
    """Thread-safe map of tool name -> CapabilityClassification."""

    def __init__(self) -> None:
        self._entries: dict[str, CapabilityClassification] = {}
        self._lock = threading.Lock()

    def get(self, tool_name: str) -> CapabilityClassification | None:
        with self._lock:
            return self._entries.get(tool_name)

    def set(self, tool_name: str, classification: CapabilityClassification) -> None:
        with self._lock:
            self._entries[tool_name] = classification

    def has(self, tool_name: str) -> bool:
        with self._lock:
            return tool_name in self._entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def snapshot(self) -> dict[str, CapabilityClassification]:
        """Copy of the current entries (for status/audit output)."""
        with self._lock:
            return dict(self._entries)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size

    def __contains__(self, tool_name: object) -> bool:
        return isinstance(tool_name, str) and self.has(tool_name)
