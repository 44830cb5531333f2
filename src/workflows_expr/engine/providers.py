"""Context data provider abstraction and implementations.

Providers contribute extra variables to a process instance's context when it
is built, e.g. the current user or values from an external system.

Providers:
    - ExpressionProvider: Abstract base class defining the provider interface
    - StaticExpressionProvider: Serves a fixed mapping, optionally per instance id

Third-party packages can register providers through entry points:

    [project.entry-points."workflows_expr.providers"]
    tenant = "my_package.providers:TenantProvider"

Example:
    >>> provider = StaticExpressionProvider({"tenant": "acme"})
    >>> provider.supports(ProcessInstance(id=1))
    True
"""

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from .models import ProcessInstance

logger = logging.getLogger(__name__)

PROVIDER_ENTRY_POINT_GROUP = "workflows_expr.providers"


class ExpressionProvider(ABC):
    """Abstract base class for context data providers.

    Providers are consulted in registration order; when two providers supply
    the same key the later one wins.

    Example:
        >>> class TenantProvider(ExpressionProvider):
        ...     def supports(self, instance: ProcessInstance) -> bool:
        ...         return instance.business_id is not None
        ...
        ...     def get_data(self, instance: ProcessInstance) -> dict[str, Any]:
        ...         return {"tenant": lookup_tenant(instance.business_id)}
    """

    @abstractmethod
    def supports(self, instance: ProcessInstance) -> bool:
        """Return True if this provider has data for the instance."""
        pass

    @abstractmethod
    def get_data(self, instance: ProcessInstance) -> dict[str, Any] | None:
        """Return variables to merge into the instance's context."""
        pass


class StaticExpressionProvider(ExpressionProvider):
    """Provider that serves the same mapping to every supported instance.

    Args:
        data: Variables to contribute
        instance_ids: If given, only these instances are supported
    """

    def __init__(self, data: dict[str, Any], instance_ids: Iterable[int] | None = None) -> None:
        self.data = dict(data)
        self.instance_ids = frozenset(instance_ids) if instance_ids is not None else None

    def supports(self, instance: ProcessInstance) -> bool:
        return self.instance_ids is None or instance.id in self.instance_ids

    def get_data(self, instance: ProcessInstance) -> dict[str, Any]:
        return dict(self.data)


def discover_providers(group: str = PROVIDER_ENTRY_POINT_GROUP) -> list[ExpressionProvider]:
    """
    Instantiate providers declared as package entry points.

    Entry points that fail to load or do not resolve to an ExpressionProvider
    subclass are skipped with a warning.

    Args:
        group: Entry point group name

    Returns:
        Provider instances in entry point order
    """
    from importlib.metadata import entry_points

    providers: list[ExpressionProvider] = []
    for entry_point in entry_points().select(group=group):
        try:
            provider_class = entry_point.load()
        except Exception as e:
            logger.warning(f"Failed to load expression provider '{entry_point.name}': {e}")
            continue

        if not (inspect.isclass(provider_class) and issubclass(provider_class, ExpressionProvider)):
            logger.warning(
                f"Entry point '{entry_point.name}' is not an ExpressionProvider subclass, skipping"
            )
            continue

        providers.append(provider_class())
        logger.debug(f"Registered expression provider '{entry_point.name}'")

    return providers


__all__ = [
    "ExpressionProvider",
    "StaticExpressionProvider",
    "discover_providers",
    "PROVIDER_ENTRY_POINT_GROUP",
]
