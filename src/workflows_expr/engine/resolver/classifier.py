"""
Expression classification for evaluation routing.

Expression Types:
    NUMBER: Numeric literal (``42``, ``3.5``)
    IDENTIFIER: Single variable reference (``amount``)
    ARITHMETIC: Identifiers/numbers joined by ``+ - * /`` (``a + b * 2``)
    UNSAFE: Anything else; never evaluated
"""

from enum import Enum

from ..validation import ARITHMETIC_PATTERN, KEY_PATTERN, NUMBER_PATTERN


class ExpressionType(Enum):
    """Whitelisted expression shapes."""

    NUMBER = "number"
    IDENTIFIER = "identifier"
    ARITHMETIC = "arithmetic"
    UNSAFE = "unsafe"


class ExpressionClassifier:
    """
    Classify expression bodies by shape.

    Example:
        classifier = ExpressionClassifier()
        classifier.classify("a + b")
        # Returns: ExpressionType.ARITHMETIC
    """

    def classify(self, expression: str) -> ExpressionType:
        """
        Classify an expression body (delimiters already stripped).

        Args:
            expression: Expression body

        Returns:
            ExpressionType enum value
        """
        if NUMBER_PATTERN.fullmatch(expression):
            return ExpressionType.NUMBER
        if KEY_PATTERN.fullmatch(expression):
            return ExpressionType.IDENTIFIER
        if ARITHMETIC_PATTERN.fullmatch(expression):
            return ExpressionType.ARITHMETIC
        return ExpressionType.UNSAFE
