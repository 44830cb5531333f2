"""Shared test configuration for workflows-expr tests.

Provides:
- An in-memory process service seeded with a small process tree
- An ExpressionContext wired to it

Process tree used across tests:

    A (1, root)
    ├── B (2)
    │   └── D (4)
    └── C (3)
"""

import pytest

from workflows_expr.engine import (
    ExpressionContext,
    InMemoryProcessService,
    ProcessInstance,
)

A = ProcessInstance(id=1, subject="A")
B = ProcessInstance(id=2, parent_id=1, subject="B")
C = ProcessInstance(id=3, parent_id=1, subject="C")
D = ProcessInstance(id=4, parent_id=2, subject="D")


@pytest.fixture
def process_service() -> InMemoryProcessService:
    """In-memory process service containing the A/B/C/D tree, no variables."""
    service = InMemoryProcessService()
    for instance in (A, B, C, D):
        service.add_instance(instance)
    return service


@pytest.fixture
def expressions(process_service: InMemoryProcessService) -> ExpressionContext:
    """ExpressionContext over the tree with no providers."""
    return ExpressionContext(process_service)


@pytest.fixture
def tree() -> dict[str, ProcessInstance]:
    """The tree instances by name."""
    return {"A": A, "B": B, "C": C, "D": D}
