"""Lazy construction of variable contexts.

Contexts are built from persisted process variables plus whatever the
registered providers contribute, then installed in the context store. Keys
that fail validation are dropped with a warning at every entry point.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from .context_store import ContextStore
from .models import ProcessInstance
from .process_service import ProcessService
from .providers import ExpressionProvider
from .validation import filter_safe_variables
from .variable_context import VariableContext

logger = logging.getLogger(__name__)


class ContextBuilder:
    """Builds and installs variable contexts for process instances.

    Example:
        builder = ContextBuilder(process_service, context_store, providers)
        builder.build(instance)
        context = context_store.get_context(instance.id)
    """

    def __init__(
        self,
        process_service: ProcessService,
        context_store: ContextStore,
        providers: Sequence[ExpressionProvider] = (),
    ):
        self.process_service = process_service
        self.context_store = context_store
        self.providers = list(providers)

    def build(self, instance: ProcessInstance) -> None:
        """
        Build a context from persisted variables and install it.

        Any cached context for the instance is replaced. Storage errors from
        the process service propagate.

        Args:
            instance: Process instance to build a context for
        """
        persisted = {
            var.key: var.value for var in self.process_service.get_process_variables(instance.id)
        }
        self.create(instance, persisted, source="persisted variables")

    def create(
        self,
        instance: ProcessInstance,
        variables: dict[str, Any] | None,
        source: str = "user input",
    ) -> VariableContext:
        """
        Build a context from explicit variables plus provider data and install it.

        Args:
            instance: Process instance the context belongs to
            variables: Seed variables (unsafe keys are dropped)
            source: Origin of the seed variables, for warnings

        Returns:
            The installed context
        """
        context = VariableContext(filter_safe_variables(variables, source))
        self._apply_providers(instance, context)
        self.context_store.put_context(instance.id, context)
        logger.debug(f"Installed context for process instance {instance.id} ({len(context)} vars)")
        return context

    def build_all(self) -> int:
        """
        Rebuild the cached context of every known process instance.

        Only persisted variables are loaded; providers are consulted lazily
        when a context is next built for a single instance.

        Returns:
            Number of contexts installed
        """
        instances = self.process_service.create_process_instance_query().list()
        for instance in instances:
            persisted = {
                var.key: var.value
                for var in self.process_service.get_process_variables(instance.id)
            }
            context = VariableContext(filter_safe_variables(persisted, "persisted variables"))
            self.context_store.put_context(instance.id, context)
        logger.info(f"Initialized expression contexts for {len(instances)} process instances")
        return len(instances)

    def _apply_providers(self, instance: ProcessInstance, context: VariableContext) -> None:
        for provider in self.providers:
            if not provider.supports(instance):
                continue
            data = provider.get_data(instance)
            if data:
                context.update(
                    filter_safe_variables(data, f"provider {provider.__class__.__name__}")
                )


__all__ = ["ContextBuilder"]
