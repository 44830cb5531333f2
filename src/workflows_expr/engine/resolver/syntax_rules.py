"""
Syntax transformation rules for expression evaluation.

These rules rewrite whitelisted bodies so the Jinja2 lexer reads them the
way the whitelist accepted them.

Rules:
    - NumberLiteralNormalizationRule: Strip leading zeros from number literals
"""

import re

from .rules import RuleContext, RuleType, TransformRule

# Leading zeros of a number literal (not inside an identifier or a fraction)
_LEADING_ZEROS = re.compile(r"(?<![A-Za-z0-9_.])0+(?=[0-9])")


class NumberLiteralNormalizationRule(TransformRule):
    """
    Strip leading zeros from integer parts of number literals.

    Transforms: 007 + a → 7 + a, 00.5 → 0.5
    Reason: Jinja2 does not lex zero-padded integers
    """

    rule_type = RuleType.SYNTAX
    priority = 20

    def applies_to(self, context: RuleContext) -> bool:
        return bool(_LEADING_ZEROS.search(context.expression))

    def transform(self, context: RuleContext) -> RuleContext:
        context.expression = _LEADING_ZEROS.sub("", context.expression)
        return context

    @property
    def description(self) -> str:
        return "Strip leading zeros from number literals"
