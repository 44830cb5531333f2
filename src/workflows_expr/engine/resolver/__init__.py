"""
Expression resolver package.

This package evaluates whitelisted ``${...}`` expressions with a sandboxed
Jinja2 expression engine and resolves them across the process instance tree.

The architecture uses a rule-based pipeline:
1. Security rules (whitelist) gate the expression body
2. The instance's variable context is loaded (built lazily on cache miss)
3. Syntax and coercion rules prepare the body and variables
4. Jinja2 evaluates the body (arithmetic on numbers only)
5. The hierarchical resolver falls back to ancestors or descendants

Public API:
    - ExpressionEvaluator: Single-instance evaluation
    - HierarchicalResolver: Tree-aware resolution
    - TransformRule: Base class for custom rules
    - ExpressionClassifier: Expression shape detection
"""

from .classifier import ExpressionClassifier, ExpressionType
from .evaluator import ArithmeticSandbox, ExpressionEvaluator, is_number, unwrap_expression
from .hierarchy import HierarchicalResolver
from .rules import RuleContext, RuleType, TransformRule
from .security_rules import ExpressionWhitelistRule, NumericCoercionRule, coerce_numeric
from .syntax_rules import NumberLiteralNormalizationRule

__all__ = [
    "ExpressionEvaluator",
    "HierarchicalResolver",
    "TransformRule",
    "RuleType",
    "RuleContext",
    "ExpressionClassifier",
    "ExpressionType",
    "ExpressionWhitelistRule",
    "NumericCoercionRule",
    "NumberLiteralNormalizationRule",
    "ArithmeticSandbox",
    "is_number",
    "coerce_numeric",
    "unwrap_expression",
]
