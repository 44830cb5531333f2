"""Expression engine core components.

This package evaluates small embedded expressions (variable references and
simple arithmetic) against per-process-instance variable contexts.

Key Components:

- ExpressionContext: Facade used by the process engine (evaluation + context management)
- ExpressionEvaluator: Whitelisted single-expression evaluation (Jinja2 sandbox)
- HierarchicalResolver: Parent/descendant fallback across the process tree
- TemplateInterpolator: ``${...}`` substitution in free text
- ContextBuilder: Lazy context construction from persisted variables and providers
- ContextStore / InMemoryContextStore: Context cache keyed by process instance id
- ProcessService / InMemoryProcessService / SqliteProcessService: Process data access
- ExpressionProvider: Pluggable context data
- ExpressionConfigLoader: YAML + Pydantic configuration
"""

from .config import ExpressionConfig, ExpressionConfigLoader, ProviderConfig
from .context_builder import ContextBuilder
from .context_store import ContextStore, InMemoryContextStore
from .exceptions import ContextNotFoundError, ExpressionError, UnsafeExpressionError
from .expression_context import ExpressionContext
from .interpolation import TemplateInterpolator, find_expressions, has_expressions
from .models import ProcessInstance, Variable
from .process_service import InMemoryProcessService, ProcessInstanceQuery, ProcessService
from .providers import ExpressionProvider, StaticExpressionProvider, discover_providers
from .resolver import ExpressionEvaluator, HierarchicalResolver
from .sqlite_process_service import SqliteProcessService
from .validation import is_safe_expression, is_safe_variable_key
from .variable_context import VariableContext

__all__ = [
    # Facade
    "ExpressionContext",
    # Pipeline
    "ExpressionEvaluator",
    "HierarchicalResolver",
    "TemplateInterpolator",
    "ContextBuilder",
    # Contexts
    "VariableContext",
    "ContextStore",
    "InMemoryContextStore",
    # Process data
    "ProcessInstance",
    "Variable",
    "ProcessService",
    "ProcessInstanceQuery",
    "InMemoryProcessService",
    "SqliteProcessService",
    # Providers
    "ExpressionProvider",
    "StaticExpressionProvider",
    "discover_providers",
    # Configuration
    "ExpressionConfig",
    "ExpressionConfigLoader",
    "ProviderConfig",
    # Validation
    "is_safe_expression",
    "is_safe_variable_key",
    "has_expressions",
    "find_expressions",
    # Exceptions
    "ExpressionError",
    "UnsafeExpressionError",
    "ContextNotFoundError",
]
