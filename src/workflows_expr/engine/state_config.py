"""State directory configuration.

Provides the default location of the process database based on the current
working directory. Uses SHA256 hash of CWD for path-based isolation across
different projects.

Architecture:
    ~/.workflows/
      states/
        <hash-of-cwd>/
          processes.db      # SQLite database for process instances and variables
"""

from __future__ import annotations

import hashlib
from pathlib import Path


class StateConfig:
    """State directory configuration for workflows-expr.

    Each project (working directory) has its own state directory. Multiple
    server instances started from the same directory share the same state.
    """

    @staticmethod
    def get_state_dir() -> Path:
        """Get state directory for current working directory.

        Creates directory structure if it doesn't exist.

        Returns:
            Path to state directory: ~/.workflows/states/<hash-of-cwd>/
        """
        cwd_hash = hashlib.sha256(str(Path.cwd()).encode()).hexdigest()[:16]
        state_dir = Path.home() / ".workflows" / "states" / cwd_hash
        state_dir.mkdir(parents=True, exist_ok=True)
        return state_dir

    @staticmethod
    def get_db_path() -> Path:
        """Get SQLite process database path for current working directory."""
        return StateConfig.get_state_dir() / "processes.db"


__all__ = ["StateConfig"]
