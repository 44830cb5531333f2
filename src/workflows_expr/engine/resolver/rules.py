"""
Rule system foundation for expression evaluation.

Rules run in priority order over an expression body before it reaches the
expression engine. Security rules gate the expression and run before the
variable context is loaded; the remaining rules may rewrite the body or the
variables it is evaluated against.

Rule Types:
    - SECURITY: Whitelist validation, runs first and may reject
    - SYNTAX: Expression rewrites so the engine reads the body as intended
    - COERCION: Variable coercion ahead of evaluation

Example:
    class UppercaseRule(TransformRule):
        rule_type = RuleType.COERCION
        priority = 60

        def applies_to(self, context: RuleContext) -> bool:
            return "name" in context.variables

        def transform(self, context: RuleContext) -> RuleContext:
            context.variables["name"] = str(context.variables["name"]).upper()
            return context

        @property
        def description(self) -> str:
            return "Uppercase the name variable"
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RuleType(Enum):
    """Types of evaluation rules."""

    SECURITY = "security"  # Whitelist validation
    SYNTAX = "syntax"  # Expression syntax transformations
    COERCION = "coercion"  # Variable coercion


@dataclass
class RuleContext:
    """
    Context passed to rules for processing.

    Attributes:
        expression: Expression body (delimiters stripped)
        variables: Variables the expression will be evaluated against
        process_instance_id: Instance being evaluated, for diagnostics
        metadata: Rule-specific metadata (e.g., expression type)
    """

    expression: str
    variables: dict[str, Any] = field(default_factory=dict)
    process_instance_id: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class TransformRule(ABC):
    """
    Base class for evaluation rules.

    Rules are applied in priority order (lower = higher priority). Security
    rules use priority 1-9, syntax rules 20+, coercion rules 50+.
    """

    rule_type: RuleType
    priority: int = 0  # Lower = higher priority

    @abstractmethod
    def applies_to(self, context: RuleContext) -> bool:
        """
        Check if rule applies to this context.

        Args:
            context: Current rule context

        Returns:
            True if rule should be applied
        """
        pass

    @abstractmethod
    def transform(self, context: RuleContext) -> RuleContext:
        """
        Apply transformation to context.

        Args:
            context: Current rule context

        Returns:
            Transformed rule context
        """
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this rule does."""
        pass
