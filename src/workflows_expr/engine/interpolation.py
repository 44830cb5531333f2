"""
String interpolation of embedded ``${...}`` expressions.

Only a restricted token shape is recognized inside free text: an identifier,
optionally followed by one operator and a second identifier or number:

    "Total: ${amount}"          -> "Total: 30"
    "Net: ${gross - discount}"  -> "Net: 25"
    "Half: ${amount / 2}"       -> "Half: 15.0"

Tokens are resolved through the HierarchicalResolver, so a child instance's
text can refer to its parent's variables. A token that resolves to None is
replaced with the empty string.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ProcessInstance
    from .resolver import HierarchicalResolver

# Pattern to detect ${identifier} / ${identifier <op> term} tokens
INTERPOLATION_PATTERN = re.compile(
    r"\$\{[a-zA-Z_][a-zA-Z0-9_]*"
    r"(?: *[+\-*/] *(?:[a-zA-Z_][a-zA-Z0-9_]*|[0-9]+(?:\.[0-9]+)?))?\}",
    re.ASCII,
)


def has_expressions(value: Any) -> bool:
    """
    Check if a value contains interpolation tokens.

    Examples:
        >>> has_expressions("Hello ${name}")
        True
        >>> has_expressions("Hello")
        False
    """
    return isinstance(value, str) and bool(INTERPOLATION_PATTERN.search(value))


def find_expressions(value: str) -> list[str]:
    """Return interpolation tokens in order of appearance."""
    return INTERPOLATION_PATTERN.findall(value)


def to_text(value: Any) -> str:
    """Render an evaluated value for substitution into text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TemplateInterpolator:
    """
    Substitute embedded expressions in free text.

    Example:
        interpolator = TemplateInterpolator(resolver)
        interpolator.interpolate(instance, "Order ${order_id} for ${customer}")
    """

    def __init__(self, resolver: HierarchicalResolver):
        self.resolver = resolver

    def interpolate(self, instance: ProcessInstance, text: str) -> str:
        """
        Replace every token in text with its resolved value.

        Args:
            instance: Instance to resolve tokens against
            text: Free text (empty or None is returned as-is)

        Returns:
            Text with tokens substituted, or the original text if there were none

        Raises:
            UnsafeExpressionError: If any token is rejected; no partial result
                is returned
        """
        if not text:
            return text

        parts: list[str] = []
        position = 0
        for match in INTERPOLATION_PATTERN.finditer(text):
            value = self.resolver.resolve(instance, match.group())
            parts.append(text[position : match.start()])
            parts.append(to_text(value))
            position = match.end()

        if not parts:
            return text
        parts.append(text[position:])
        return "".join(parts)


__all__ = [
    "TemplateInterpolator",
    "INTERPOLATION_PATTERN",
    "has_expressions",
    "find_expressions",
    "to_text",
]
