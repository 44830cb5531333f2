"""Sandboxed expression evaluation for process engines."""

__version__ = "0.1.0"
