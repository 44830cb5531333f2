"""Process data service abstraction and in-memory implementation.

The process service is the expression engine's window onto persisted process
state: variables stored for an instance, instance lookup by id, and child
discovery through a query object.

Services:
    - ProcessService: Abstract base class defining the service interface
    - ProcessInstanceQuery: Chainable query over process instances
    - InMemoryProcessService: Dict-backed service for embedding and tests
    - SqliteProcessService: SQLite-backed service (see sqlite_process_service)

Example:
    >>> service = InMemoryProcessService()
    >>> service.add_instance(ProcessInstance(id=1))
    >>> service.add_instance(ProcessInstance(id=2, parent_id=1))
    >>> [pi.id for pi in service.create_process_instance_query().parent_id(1).list()]
    [2]
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any

from .models import ProcessInstance, Variable


class ProcessInstanceQuery(ABC):
    """Chainable query over process instances.

    Filters are optional; an unfiltered query lists every known instance.
    Results are ordered by instance id.
    """

    def __init__(self) -> None:
        self._parent_id: int | None = None

    def parent_id(self, parent_id: int) -> ProcessInstanceQuery:
        """Restrict results to direct children of parent_id."""
        self._parent_id = parent_id
        return self

    @abstractmethod
    def list(self) -> list[ProcessInstance]:
        """Execute the query."""
        pass


class ProcessService(ABC):
    """Abstract base class for process data services.

    Failures (storage errors, broken connections) are not handled by the
    expression engine; they propagate to the caller.
    """

    @abstractmethod
    def get_process_variables(self, process_instance_id: int) -> list[Variable]:
        """Return persisted variables of an instance, in storage order."""
        pass

    @abstractmethod
    def get_process_instance_by_id(self, process_instance_id: int) -> ProcessInstance | None:
        """Return the instance with this id, or None if unknown."""
        pass

    @abstractmethod
    def create_process_instance_query(self) -> ProcessInstanceQuery:
        """Create a new, unfiltered instance query."""
        pass


class _InMemoryProcessInstanceQuery(ProcessInstanceQuery):
    def __init__(self, service: InMemoryProcessService) -> None:
        super().__init__()
        self._service = service

    def list(self) -> list[ProcessInstance]:
        instances = self._service.list_instances()
        if self._parent_id is not None:
            instances = [pi for pi in instances if pi.parent_id == self._parent_id]
        return instances


class InMemoryProcessService(ProcessService):
    """Process service that keeps instances and variables in memory.

    Thread-safe via a single lock around the backing dicts.
    """

    def __init__(self) -> None:
        self._instances: dict[int, ProcessInstance] = {}
        self._variables: dict[int, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def add_instance(self, instance: ProcessInstance) -> ProcessInstance:
        """Register (or replace) a process instance."""
        with self._lock:
            self._instances[instance.id] = instance
            self._variables.setdefault(instance.id, {})
        return instance

    def set_variable(self, process_instance_id: int, key: str, value: Any) -> None:
        """Persist a variable for an instance (upsert)."""
        with self._lock:
            self._variables.setdefault(process_instance_id, {})[key] = value

    def list_instances(self) -> list[ProcessInstance]:
        with self._lock:
            return sorted(self._instances.values(), key=lambda pi: pi.id)

    def get_process_variables(self, process_instance_id: int) -> list[Variable]:
        with self._lock:
            stored = dict(self._variables.get(process_instance_id, {}))
        return [
            Variable(process_instance_id=process_instance_id, key=key, value=value)
            for key, value in stored.items()
        ]

    def get_process_instance_by_id(self, process_instance_id: int) -> ProcessInstance | None:
        with self._lock:
            return self._instances.get(process_instance_id)

    def create_process_instance_query(self) -> ProcessInstanceQuery:
        return _InMemoryProcessInstanceQuery(self)


__all__ = ["ProcessService", "ProcessInstanceQuery", "InMemoryProcessService"]
