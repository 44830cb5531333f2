"""
Expression resolution across the process instance tree.

Resolution order for ``resolve(instance, expression)``:
1. The instance's own context
2. If it has a parent: the parent, then the parent's parent, and so on
3. Once a root is reached without a result: every descendant of that root,
   deepest subtrees first (see ``collect_descendants``)

The asymmetry is intentional. Non-root instances inherit from their
ancestors; roots look into sub-processes, which populate variables the root's
own orchestration expressions refer to.
"""

from __future__ import annotations

import logging
from typing import Any

from ..models import ProcessInstance
from ..process_service import ProcessService
from .evaluator import ExpressionEvaluator

logger = logging.getLogger(__name__)


class HierarchicalResolver:
    """
    Resolve expressions against an instance and, failing that, its relatives.

    Example:
        resolver = HierarchicalResolver(evaluator, process_service)
        resolver.resolve(child_instance, "${approver}")  # found on the parent
    """

    def __init__(self, evaluator: ExpressionEvaluator, process_service: ProcessService):
        self.evaluator = evaluator
        self.process_service = process_service

    def resolve(self, instance: ProcessInstance, expression: str) -> Any:
        """
        Resolve an expression, falling back to ancestors or descendants.

        Args:
            instance: Instance to start from
            expression: ``${...}`` expression, or literal text

        Returns:
            First non-None value found, or None

        Raises:
            UnsafeExpressionError: If the body is not whitelisted (raised on the
                first evaluation, the search does not continue)
        """
        visited: set[int] = set()
        current = instance
        while True:
            visited.add(current.id)
            value = self.evaluator.evaluate(current.id, expression)
            if value is not None:
                return value

            if current.parent_id > 0:
                if current.parent_id in visited:
                    logger.warning(
                        f"Cycle in process instance ancestry at {current.parent_id}, "
                        f"stopping resolution of {expression!r}"
                    )
                    return None
                parent = self.process_service.get_process_instance_by_id(current.parent_id)
                if parent is None:
                    logger.warning(
                        f"Parent process instance {current.parent_id} of {current.id} not found"
                    )
                    return None
                current = parent
                continue

            for descendant in self.collect_descendants(current.id):
                value = self.evaluator.evaluate(descendant.id, expression)
                if value is not None:
                    return value
            return None

    def collect_descendants(self, process_instance_id: int) -> list[ProcessInstance]:
        """
        Collect every descendant of an instance, deepest subtrees first.

        Each instance's children are appended after all of their own
        descendants; siblings keep query order. For A -> (B, C), B -> (D) the
        result for A is [D, B, C].

        Args:
            process_instance_id: Root of the subtree (not included)

        Returns:
            Descendant instances in discovery order
        """
        collected: list[ProcessInstance] = []
        seen: set[int] = {process_instance_id}
        stack: list[tuple[list[ProcessInstance], int]] = [
            (self._children(process_instance_id, seen), 0)
        ]
        while stack:
            children, index = stack.pop()
            if index < len(children):
                stack.append((children, index + 1))
                stack.append((self._children(children[index].id, seen), 0))
            else:
                collected.extend(children)
        return collected

    def _children(self, parent_id: int, seen: set[int]) -> list[ProcessInstance]:
        query = self.process_service.create_process_instance_query()
        children = []
        for child in query.parent_id(parent_id).list():
            if child.id in seen:
                logger.warning(f"Process instance {child.id} reached twice, skipping")
                continue
            seen.add(child.id)
            children.append(child)
        return children


__all__ = ["HierarchicalResolver"]
