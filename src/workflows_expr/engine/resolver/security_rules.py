"""
Security and coercion rules for expression evaluation.

Rules:
    - ExpressionWhitelistRule: Reject bodies outside the allowed shapes
    - NumericCoercionRule: Coerce numeric strings used in arithmetic
"""

import logging
import re
from typing import Any

from ..exceptions import UnsafeExpressionError
from ..validation import is_safe_expression
from .classifier import ExpressionClassifier, ExpressionType
from .rules import RuleContext, RuleType, TransformRule

logger = logging.getLogger(__name__)

_INT_STRING = re.compile(r"[+-]?[0-9]+")
_FLOAT_STRING = re.compile(r"[+-]?(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class ExpressionWhitelistRule(TransformRule):
    """
    Reject expressions that are not a number, an identifier, or a simple
    arithmetic chain.

    Applies to every expression. There is no bypass.
    """

    rule_type = RuleType.SECURITY
    priority = 1  # Security rules run first

    def __init__(self) -> None:
        self.classifier = ExpressionClassifier()

    def applies_to(self, context: RuleContext) -> bool:
        return True

    def transform(self, context: RuleContext) -> RuleContext:
        if not is_safe_expression(context.expression):
            logger.warning(
                f"Disallowed expression evaluation attempt for processInstanceId "
                f"{context.process_instance_id}: {context.expression!r}"
            )
            raise UnsafeExpressionError(context.expression, context.process_instance_id)
        context.metadata["expression_type"] = self.classifier.classify(context.expression)
        return context

    @property
    def description(self) -> str:
        return "Allow only numbers, identifiers and + - * / chains"


class NumericCoercionRule(TransformRule):
    """
    Coerce numeric strings to numbers for arithmetic chains.

    Transforms: {"a": "3", "b": 4} with ``a + b`` → {"a": 3, "b": 4}
    Reason: Variables loaded from forms or storage often hold numbers as text.
    Operands that are still not numbers make evaluation fail (see ArithmeticSandbox).
    """

    rule_type = RuleType.COERCION
    priority = 50

    def applies_to(self, context: RuleContext) -> bool:
        return context.metadata.get("expression_type") == ExpressionType.ARITHMETIC

    def transform(self, context: RuleContext) -> RuleContext:
        context.variables = {
            key: coerce_numeric(value) for key, value in context.variables.items()
        }
        return context

    @property
    def description(self) -> str:
        return "Coerce numeric strings to int/float in arithmetic expressions"


def coerce_numeric(value: Any) -> Any:
    """Convert int/float-looking strings to numbers, leave everything else as is."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if _INT_STRING.fullmatch(text):
        return int(text)
    if _FLOAT_STRING.fullmatch(text):
        return float(text)
    return value
