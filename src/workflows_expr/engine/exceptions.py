"""Expression engine exceptions.

Exception Hierarchy:
    ExpressionError (base)
    ├── UnsafeExpressionError (expression rejected by the whitelist)
    └── ContextNotFoundError (no cached or buildable context on a mutation path)

Evaluation failures inside the expression engine are not represented here:
they are recovered by the evaluator and surface to callers as ``None``.
"""

from __future__ import annotations


class ExpressionError(Exception):
    """Base exception for all expression engine errors."""

    pass


class UnsafeExpressionError(ExpressionError, ValueError):
    """
    Expression body does not match any whitelisted shape.

    Raised before the expression engine is reached. Unlike a missing variable,
    this signals potentially hostile input, so it is never converted to ``None``.

    Attributes:
        expression: Rejected expression body (delimiters stripped)
        process_instance_id: Instance the evaluation targeted, if known
    """

    def __init__(self, expression: str, process_instance_id: int | None = None):
        self.expression = expression
        self.process_instance_id = process_instance_id
        super().__init__(f"Unsafe expression detected: {expression}")

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"UnsafeExpressionError(expression={self.expression!r}, "
            f"process_instance_id={self.process_instance_id})"
        )


class ContextNotFoundError(ExpressionError, LookupError):
    """
    Variable context does not exist and could not be built.

    Raised by mutation paths (add variables, move to parent) that cannot
    proceed without a context. Read paths return ``None`` instead.

    Attributes:
        process_instance_id: Instance whose context is missing
    """

    def __init__(self, process_instance_id: int):
        self.process_instance_id = process_instance_id
        super().__init__(
            f"ProcessInstance [{process_instance_id}] expression context does not exist!"
        )

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"ContextNotFoundError(process_instance_id={self.process_instance_id})"


__all__ = ["ExpressionError", "UnsafeExpressionError", "ContextNotFoundError"]
