"""Whitelist validation for variable keys and expression bodies.

Everything that reaches the expression engine passes through here first.
Keys are validated before they are stored in a variable context; expression
bodies are validated before they are compiled.

Accepted expression shapes (body with ``${`` / ``}`` already stripped):
    - a decimal number: ``42``, ``3.14``
    - a bare identifier: ``amount``, ``_total``
    - a chain of identifiers/numbers joined by ``+ - * /``: ``a + b * 2``

Only ASCII letters, digits, ``_``, the four operators, ``.`` and the space
character are accepted. Names the expression engine reads as literals or
operators (``true``, ``none``, ``and``, ...) are neither valid keys nor
valid identifiers in an expression.
"""

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_IDENTIFIER = r"[a-zA-Z_][a-zA-Z0-9_]*"
_NUMBER = r"[0-9]+(?:\.[0-9]+)?"
_TERM = rf"(?:{_IDENTIFIER}|{_NUMBER})"

KEY_PATTERN = re.compile(_IDENTIFIER, re.ASCII)
NUMBER_PATTERN = re.compile(_NUMBER, re.ASCII)
ARITHMETIC_PATTERN = re.compile(rf"{_TERM}(?: *[+\-*/] *{_TERM})*", re.ASCII)
IDENTIFIER_TOKEN = re.compile(_IDENTIFIER, re.ASCII)

ALLOWED_EXPRESSION_PATTERNS = (NUMBER_PATTERN, KEY_PATTERN, ARITHMETIC_PATTERN)

# Jinja2 literals and keyword operators
RESERVED_NAMES = frozenset("true false none True False None and or not in is if else".split())


def is_safe_variable_key(key: Any) -> bool:
    """
    Check whether a variable key may be stored in a context.

    Args:
        key: Candidate key (non-strings are never safe)

    Returns:
        True if key matches ``^[A-Za-z_][A-Za-z0-9_]*$`` and is not reserved

    Examples:
        >>> is_safe_variable_key("order_total")
        True
        >>> is_safe_variable_key("bad-key!")
        False
        >>> is_safe_variable_key("true")
        False
    """
    return (
        isinstance(key, str)
        and KEY_PATTERN.fullmatch(key) is not None
        and key not in RESERVED_NAMES
    )


def is_safe_expression(expression: Any) -> bool:
    """
    Check whether an expression body matches one of the allowed shapes.

    Args:
        expression: Expression body without delimiters

    Returns:
        True if the body is a number, an identifier, or an arithmetic chain,
        and names no reserved word
    """
    if isinstance(expression, str) and any(
        pattern.fullmatch(expression) for pattern in ALLOWED_EXPRESSION_PATTERNS
    ):
        reserved = RESERVED_NAMES.intersection(IDENTIFIER_TOKEN.findall(expression))
        if not reserved:
            return True
        logger.warning(f"Expression uses reserved names {sorted(reserved)}: {expression!r}")
        return False
    logger.warning(f"Expression does not match allowed safe patterns: {expression!r}")
    return False


def filter_safe_variables(variables: dict[str, Any] | None, source: str) -> dict[str, Any]:
    """
    Drop entries whose keys fail validation, logging each rejected key.

    Args:
        variables: Candidate key/value pairs (None is treated as empty)
        source: Where the variables came from, for the warning message

    Returns:
        New dict containing only the safe entries, in original order
    """
    safe: dict[str, Any] = {}
    if not variables:
        return safe
    for key, value in variables.items():
        if is_safe_variable_key(key):
            safe[key] = value
        else:
            logger.warning(f"Unsafe variable key detected in {source}: {key!r}")
    return safe


__all__ = [
    "is_safe_variable_key",
    "is_safe_expression",
    "filter_safe_variables",
    "KEY_PATTERN",
    "NUMBER_PATTERN",
    "ARITHMETIC_PATTERN",
    "RESERVED_NAMES",
]
