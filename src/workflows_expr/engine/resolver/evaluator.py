"""
Single-expression evaluation against one process instance's context.

Pipeline:
    Raw text
        ↓
    Delimiter check (``${...}``; anything else passes through unchanged)
        ↓
    Security rules (whitelist; raises UnsafeExpressionError)
        ↓
    Context lookup (lazy build on cache miss)
        ↓
    Syntax and coercion rules
        ↓
    Jinja2 sandboxed expression engine

Engine failures (unknown identifiers in arithmetic, division by zero, type
mismatches, non-numeric arithmetic operands) are logged and returned as None.
"""

from __future__ import annotations

import functools
import logging
from typing import Any

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from ..context_builder import ContextBuilder
from ..context_store import ContextStore
from ..process_service import ProcessService
from ..variable_context import VariableContext
from .rules import RuleContext, RuleType, TransformRule
from .security_rules import ExpressionWhitelistRule, NumericCoercionRule
from .syntax_rules import NumberLiteralNormalizationRule

logger = logging.getLogger(__name__)

EXPRESSION_PREFIX = "${"
EXPRESSION_SUFFIX = "}"

_ENGINE_ERRORS = (TemplateError, ArithmeticError, TypeError, ValueError)


def is_number(value: Any) -> bool:
    """True for int and float values; bools are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ArithmeticSandbox(SandboxedEnvironment):
    """
    Sandboxed environment whose ``+ - * /`` only accept numeric operands.

    Strings, lists, dicts, bools and undefined operands raise TypeError, so
    ``*`` never repeats a sequence and ``+`` never concatenates one.
    """

    intercepted_binops = frozenset({"+", "-", "*", "/"})

    def call_binop(self, context: Any, operator: str, left: Any, right: Any) -> Any:
        if not (is_number(left) and is_number(right)):
            raise TypeError(
                f"unsupported operands for {operator}: "
                f"{type(left).__name__} and {type(right).__name__}"
            )
        return self.binop_table[operator](left, right)


def unwrap_expression(text: str) -> str | None:
    """
    Return the trimmed body of a ``${...}`` expression, or None if not wrapped.

    Examples:
        >>> unwrap_expression("  ${ a + b }  ")
        'a + b'
        >>> unwrap_expression("plain text") is None
        True
    """
    stripped = text.strip()
    if (
        len(stripped) >= len(EXPRESSION_PREFIX) + len(EXPRESSION_SUFFIX)
        and stripped.startswith(EXPRESSION_PREFIX)
        and stripped.endswith(EXPRESSION_SUFFIX)
    ):
        return stripped[len(EXPRESSION_PREFIX) : -len(EXPRESSION_SUFFIX)].strip()
    return None


class ExpressionEvaluator:
    """
    Evaluate ``${...}`` expressions against cached variable contexts.

    Example:
        evaluator = ExpressionEvaluator(context_store, context_builder, process_service)
        evaluator.evaluate(42, "${a + b * 2}")  # 11 when a=3, b=4
        evaluator.evaluate(42, "literal")      # "literal"
    """

    def __init__(
        self,
        context_store: ContextStore,
        context_builder: ContextBuilder,
        process_service: ProcessService,
        rules: list[TransformRule] | None = None,
        cache_size: int = 512,
    ):
        """
        Initialize expression evaluator.

        Args:
            context_store: Cache of variable contexts
            context_builder: Builds contexts on cache miss
            process_service: Looks up instances for lazy builds
            rules: Optional custom rules, merged with the defaults
            cache_size: Maximum number of compiled expressions kept
        """
        self.context_store = context_store
        self.context_builder = context_builder
        self.process_service = process_service
        self.rules = self._initialize_rules(rules)

        self.env = ArithmeticSandbox(undefined=StrictUndefined, autoescape=False)
        # Only context variables are visible to expressions
        self.env.globals.clear()
        self._compile = functools.lru_cache(maxsize=cache_size)(self._compile_expression)

    def _initialize_rules(self, custom_rules: list[TransformRule] | None) -> list[TransformRule]:
        default_rules: list[TransformRule] = [
            ExpressionWhitelistRule(),  # Security first
            NumberLiteralNormalizationRule(),
            NumericCoercionRule(),
        ]
        return sorted(default_rules + (custom_rules or []), key=lambda r: r.priority)

    def evaluate(self, process_instance_id: int, expression: str) -> Any:
        """
        Evaluate one expression against an instance's context.

        Args:
            process_instance_id: Instance whose context supplies variables
            expression: ``${...}`` expression, or literal text

        Returns:
            Evaluated value; the trimmed input for literal text; None if the
            context is missing or evaluation failed

        Raises:
            UnsafeExpressionError: If the body is not whitelisted
        """
        body = unwrap_expression(expression)
        if body is None:
            return expression.strip()

        rule_context = RuleContext(expression=body, process_instance_id=process_instance_id)
        rule_context = self._apply_rules(rule_context, security=True)

        context = self._get_context(process_instance_id)
        if context is None:
            logger.warning(
                f"ProcessInstance {process_instance_id} variable context does not exist!"
            )
            return None

        rule_context.variables = context.entries()
        rule_context = self._apply_rules(rule_context, security=False)
        return self._safe_evaluate(rule_context.expression, rule_context.variables)

    def _apply_rules(self, context: RuleContext, security: bool) -> RuleContext:
        for rule in self.rules:
            if (rule.rule_type == RuleType.SECURITY) != security:
                continue
            if rule.applies_to(context):
                context = rule.transform(context)
        return context

    def _get_context(self, process_instance_id: int) -> VariableContext | None:
        context = self.context_store.get_context(process_instance_id)
        if context is not None:
            return context

        instance = self.process_service.get_process_instance_by_id(process_instance_id)
        if instance is None:
            return None
        self.context_builder.build(instance)
        return self.context_store.get_context(process_instance_id)

    def _compile_expression(self, body: str) -> Any:
        return self.env.compile_expression(body)

    def _safe_evaluate(self, body: str, variables: dict[str, Any]) -> Any:
        try:
            return self._compile(body)(variables)
        except _ENGINE_ERRORS as e:
            logger.info(f"Evaluation of expression '{body}' failed: {e}")
            return None


__all__ = [
    "ExpressionEvaluator",
    "ArithmeticSandbox",
    "is_number",
    "unwrap_expression",
    "EXPRESSION_PREFIX",
    "EXPRESSION_SUFFIX",
]
