"""Per-process-instance variable context.

A VariableContext is the variable environment expressions are evaluated
against. It does not validate keys (callers filter them first) and does not
persist itself; caching is the ContextStore's job.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from typing import Any


class VariableContext:
    """Mutable mapping of variable name to value for one process instance.

    Individual operations are thread-safe; compound read-modify-write sequences
    must be guarded by the caller (see ``ContextStore.lock_for``).

    Example:
        context = VariableContext({"amount": 3})
        context.set("rate", 4)
        context.get("amount")  # 3
    """

    def __init__(self, variables: Mapping[str, Any] | None = None) -> None:
        self._variables: dict[str, Any] = dict(variables or {})
        self._lock = threading.Lock()

    def set(self, key: str, value: Any) -> None:
        """Set a variable, overwriting any existing value."""
        with self._lock:
            self._variables[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a variable value, or default if missing."""
        with self._lock:
            return self._variables.get(key, default)

    def remove(self, key: str) -> bool:
        """Remove a variable, return True if it existed."""
        with self._lock:
            if key in self._variables:
                del self._variables[key]
                return True
            return False

    def update(self, variables: Mapping[str, Any]) -> None:
        """Merge variables into this context (last write wins)."""
        with self._lock:
            self._variables.update(variables)

    def entries(self) -> dict[str, Any]:
        """Return a snapshot copy of all variables."""
        with self._lock:
            return dict(self._variables)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._variables)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._variables

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._variables

    def __len__(self) -> int:
        with self._lock:
            return len(self._variables)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __repr__(self) -> str:
        return f"VariableContext({self.entries()!r})"


__all__ = ["VariableContext"]
