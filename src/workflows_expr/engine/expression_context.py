"""Expression context facade for the process engine.

ExpressionContext is the single entry point the surrounding engine uses:
evaluating expressions and text templates, and managing the cached variable
context of each process instance.

Concurrency:
    - Evaluation entry points (eval, eval_with_fallback, eval_string) share one
      reentrant lock, so only one evaluation runs at a time process-wide.
    - Mutation entry points do not take that lock. They hold the context
      store's per-instance lock while they modify a context.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from .context_builder import ContextBuilder
from .context_store import ContextStore, InMemoryContextStore
from .exceptions import ContextNotFoundError
from .interpolation import TemplateInterpolator
from .models import ProcessInstance
from .process_service import ProcessService
from .providers import ExpressionProvider
from .resolver import ExpressionEvaluator, HierarchicalResolver, TransformRule
from .validation import filter_safe_variables
from .variable_context import VariableContext

logger = logging.getLogger(__name__)


class ExpressionContext:
    """Evaluate expressions and manage variable contexts for process instances.

    Example:
        expressions = ExpressionContext(process_service)
        expressions.create_context(instance, {"a": 3, "b": 4})
        expressions.eval(instance.id, "${a + b * 2}")           # 11
        expressions.eval_string(instance, "Sum is ${a + b}")    # "Sum is 7"
    """

    def __init__(
        self,
        process_service: ProcessService,
        context_store: ContextStore | None = None,
        providers: Sequence[ExpressionProvider] = (),
        rules: list[TransformRule] | None = None,
        expression_cache_size: int = 512,
    ):
        """
        Wire the evaluation pipeline.

        Args:
            process_service: Source of persisted variables and instance tree
            context_store: Context cache (default: in-memory)
            providers: Context data providers, applied in order
            rules: Extra evaluation rules
            expression_cache_size: Compiled expression cache size
        """
        self.process_service = process_service
        self.context_store = context_store or InMemoryContextStore()
        self.builder = ContextBuilder(process_service, self.context_store, providers)
        self.evaluator = ExpressionEvaluator(
            self.context_store,
            self.builder,
            process_service,
            rules=rules,
            cache_size=expression_cache_size,
        )
        self.resolver = HierarchicalResolver(self.evaluator, process_service)
        self.interpolator = TemplateInterpolator(self.resolver)
        self._eval_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Evaluation (serialized)
    # ------------------------------------------------------------------

    def eval_string(self, instance: ProcessInstance, text: str) -> str:
        """Substitute every ``${...}`` token in text, resolving across the tree."""
        with self._eval_lock:
            return self.interpolator.interpolate(instance, text)

    def eval(self, process_instance_id: int, expression: str) -> Any:
        """Evaluate an expression against one instance's context only."""
        with self._eval_lock:
            return self.evaluator.evaluate(process_instance_id, expression)

    def eval_with_fallback(self, instance: ProcessInstance, expression: str) -> Any:
        """Evaluate an expression, falling back to ancestors or descendants."""
        with self._eval_lock:
            return self.resolver.resolve(instance, expression)

    # ------------------------------------------------------------------
    # Context management
    # ------------------------------------------------------------------

    def create_context(
        self, instance: ProcessInstance, variables: dict[str, Any] | None
    ) -> VariableContext:
        """Create (or replace) an instance's context from variables plus provider data."""
        with self.context_store.lock_for(instance.id):
            return self.builder.create(instance, variables)

    def remove_context(self, instance: ProcessInstance) -> bool:
        """Drop an instance's cached context, return True if one existed."""
        with self.context_store.lock_for(instance.id):
            return self.context_store.remove_context(instance.id)

    def remove_context_variable(self, process_instance_id: int, key: str) -> None:
        """Remove one variable from a cached context; no-op if nothing is cached."""
        with self.context_store.lock_for(process_instance_id):
            context = self.context_store.get_context(process_instance_id)
            if context is not None:
                context.remove(key)

    def add_context_variables(
        self, instance: ProcessInstance, variables: dict[str, Any] | None
    ) -> None:
        """
        Merge variables into an instance's context, building it if needed.

        Raises:
            ContextNotFoundError: If no context exists or can be built
        """
        if not variables:
            return
        with self.context_store.lock_for(instance.id):
            context = self._get_or_build(instance)
            context.update(filter_safe_variables(variables, "addContextVariables"))

    def move_context_to_parent(self, instance: ProcessInstance) -> None:
        """
        Copy every variable of an instance's context into its parent's context.

        Roots are ignored. Existing parent values are overwritten.

        Raises:
            ContextNotFoundError: If the parent or the instance context is unavailable
        """
        parent_id = instance.parent_id
        if parent_id < 1:
            return

        parent = self.process_service.get_process_instance_by_id(parent_id)
        if parent is None:
            raise ContextNotFoundError(parent_id)

        with self.context_store.lock_for(parent_id):
            parent_context = self._get_or_build(parent)
            with self.context_store.lock_for(instance.id):
                context = self._get_or_build(instance)
                parent_context.update(context.entries())
        logger.debug(f"Moved context of process instance {instance.id} to parent {parent_id}")

    def get_context_variables(self, process_instance_id: int) -> dict[str, Any] | None:
        """Return a snapshot of a cached context, or None if nothing is cached."""
        context = self.context_store.get_context(process_instance_id)
        return context.entries() if context is not None else None

    def init_expression_context(self) -> int:
        """Rebuild the cached context of every known instance (cold-start warmup)."""
        return self.builder.build_all()

    def _get_or_build(self, instance: ProcessInstance) -> VariableContext:
        context = self.context_store.get_context(instance.id)
        if context is None:
            self.builder.build(instance)
            context = self.context_store.get_context(instance.id)
        if context is None:
            raise ContextNotFoundError(instance.id)
        return context


__all__ = ["ExpressionContext"]
