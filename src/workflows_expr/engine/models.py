"""
Pydantic models for process data exchanged with the process service.

- ProcessInstance: One running process execution, optionally nested under a parent
- Variable: A persisted variable record belonging to a process instance
"""

from typing import Any

from pydantic import BaseModel, Field


class ProcessInstance(BaseModel):
    """A running process instance in the process tree.

    Attributes:
        id: Unique process instance id
        parent_id: Parent instance id; values <= 0 mean the instance is a root
        process_id: Id of the process definition this instance executes
        business_id: Optional caller-supplied business key
        subject: Optional human-readable label
    """

    model_config = {"frozen": True}

    id: int
    parent_id: int = Field(default=0, description="Parent instance id (<= 0 for roots)")
    process_id: int | None = None
    business_id: str | None = None
    subject: str | None = None

    @property
    def is_root(self) -> bool:
        """True if this instance has no parent."""
        return self.parent_id <= 0


class Variable(BaseModel):
    """A persisted process variable.

    Keys are stored as-is; they are validated when loaded into a context.
    """

    model_config = {"arbitrary_types_allowed": True}

    process_instance_id: int
    key: str
    value: Any = None


__all__ = ["ProcessInstance", "Variable"]
