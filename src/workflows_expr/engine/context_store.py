"""Variable context storage implementations.

Provides the cache of variable contexts keyed by process instance id.
Initial implementation uses in-memory storage.
"""

import threading
import weakref
from abc import ABC, abstractmethod

from workflows_expr.engine.variable_context import VariableContext


class ContextStore(ABC):
    """Abstract base class for variable context storage.

    Implementations must be safe for concurrent use: evaluation paths read
    contexts while mutation paths replace or modify them without any
    engine-level serialization.
    """

    @abstractmethod
    def contains_context(self, process_instance_id: int) -> bool:
        """Return True if a context is cached for the instance."""
        ...

    @abstractmethod
    def get_context(self, process_instance_id: int) -> VariableContext | None:
        """Return the cached context, or None if absent."""
        ...

    @abstractmethod
    def put_context(self, process_instance_id: int, context: VariableContext) -> None:
        """Cache a context, replacing any existing entry."""
        ...

    @abstractmethod
    def remove_context(self, process_instance_id: int) -> bool:
        """Remove a cached context, return True if one was removed."""
        ...

    @abstractmethod
    def list_context_ids(self) -> list[int]:
        """List ids of all cached contexts."""
        ...

    @abstractmethod
    def lock_for(self, process_instance_id: int) -> threading.RLock:
        """Return the lock guarding compound updates to one instance's context."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Drop all cached contexts."""
        ...


class InMemoryContextStore(ContextStore):
    """In-memory context storage for embedding and testing.

    Thread-safe implementation using threading locks: one lock for the map
    itself and one reentrant lock per instance id for compound updates.
    Per-instance locks are held weakly and disappear once no caller holds them.
    """

    def __init__(self) -> None:
        """Initialize empty context store."""
        self._contexts: dict[int, VariableContext] = {}
        self._instance_locks: weakref.WeakValueDictionary[int, threading.RLock] = (
            weakref.WeakValueDictionary()
        )
        self._lock = threading.Lock()

    def contains_context(self, process_instance_id: int) -> bool:
        with self._lock:
            return process_instance_id in self._contexts

    def get_context(self, process_instance_id: int) -> VariableContext | None:
        with self._lock:
            return self._contexts.get(process_instance_id)

    def put_context(self, process_instance_id: int, context: VariableContext) -> None:
        with self._lock:
            self._contexts[process_instance_id] = context

    def remove_context(self, process_instance_id: int) -> bool:
        with self._lock:
            if process_instance_id in self._contexts:
                del self._contexts[process_instance_id]
                return True
            return False

    def list_context_ids(self) -> list[int]:
        with self._lock:
            return list(self._contexts)

    def lock_for(self, process_instance_id: int) -> threading.RLock:
        with self._lock:
            lock = self._instance_locks.get(process_instance_id)
            if lock is None:
                lock = threading.RLock()
                self._instance_locks[process_instance_id] = lock
            return lock

    def clear(self) -> None:
        with self._lock:
            self._contexts.clear()


__all__ = ["ContextStore", "InMemoryContextStore"]
