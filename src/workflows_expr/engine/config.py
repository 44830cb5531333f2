"""Expression engine configuration.

Configuration file location priority:
1. Explicit path passed to ExpressionConfigLoader
2. WORKFLOWS_EXPR_CONFIG environment variable
3. Standard location: ~/.workflows/expr-config.yml
4. Built-in defaults (if no config file found)

Example config file:
```yaml
database_path: ~/.workflows/processes.db
warm_contexts_on_startup: true
expression_cache_size: 1024
discover_entry_points: true

providers:
  - data:
      company: acme
      currency: EUR
  - data:
      approver: alice
    instance_ids: [42, 43]
```
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from .providers import StaticExpressionProvider
from .state_config import StateConfig
from .validation import is_safe_variable_key

logger = logging.getLogger(__name__)

# ===========================================================================
# Configuration Models
# ===========================================================================


class ProviderConfig(BaseModel):
    """Static context data contributed to every (or selected) process instance."""

    data: dict[str, Any] = Field(description="Variables to add to matching contexts")
    instance_ids: list[int] | None = Field(
        default=None,
        description="Restrict to these process instance ids (default: all instances)",
    )

    @field_validator("data")
    @classmethod
    def validate_keys(cls, v: dict[str, Any]) -> dict[str, Any]:
        """Reject provider keys that could never be stored in a context."""
        bad_keys = [key for key in v if not is_safe_variable_key(key)]
        if bad_keys:
            raise ValueError(f"Invalid variable keys in provider data: {', '.join(bad_keys)}")
        return v

    def to_provider(self) -> StaticExpressionProvider:
        return StaticExpressionProvider(self.data, self.instance_ids)


class ExpressionConfig(BaseModel):
    """Root configuration model."""

    database_path: Path | None = Field(
        default=None,
        description="SQLite process database (default: per-project state directory)",
    )
    warm_contexts_on_startup: bool = Field(
        default=False,
        description="Build every instance's context when the server starts",
    )
    expression_cache_size: int = Field(
        default=512,
        ge=1,
        le=100000,
        description="Maximum number of compiled expressions kept in memory",
    )
    discover_entry_points: bool = Field(
        default=True,
        description="Load providers from the workflows_expr.providers entry point group",
    )
    providers: list[ProviderConfig] = Field(default_factory=list)

    @field_validator("database_path")
    @classmethod
    def expand_database_path(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    def resolved_database_path(self) -> Path:
        """Database path, falling back to the per-project state directory."""
        return self.database_path or StateConfig.get_db_path()


# ===========================================================================
# Configuration Loader
# ===========================================================================


class ExpressionConfigLoader:
    """Loader for expression engine configuration from YAML file.

    Usage:
        ```python
        loader = ExpressionConfigLoader()
        config = loader.load_config()
        ```

    Thread Safety:
        load_config() caches its result; load once during app startup.
    """

    def __init__(self, config_path: str | Path | None = None):
        """Initialize config loader with optional explicit path.

        Args:
            config_path: Explicit path to config file (optional).
                If not provided, uses environment variable or standard location.
        """
        self._config: ExpressionConfig | None = None
        self._explicit_path = Path(config_path) if config_path else None

    def get_config_path(self) -> Path | None:
        """Determine config file path using priority order.

        Returns:
            Path to config file, or None if file doesn't exist
        """
        # Priority 1: Explicit path
        if self._explicit_path:
            if self._explicit_path.exists():
                return self._explicit_path
            logger.warning(f"Explicit expression config path does not exist: {self._explicit_path}")
            return None

        # Priority 2: Environment variable
        env_path_str = os.getenv("WORKFLOWS_EXPR_CONFIG")
        if env_path_str:
            env_path = Path(env_path_str).expanduser()
            if env_path.exists():
                return env_path
            logger.warning(f"WORKFLOWS_EXPR_CONFIG path does not exist: {env_path}")
            return None

        # Priority 3: Standard location
        standard_path = Path.home() / ".workflows" / "expr-config.yml"
        if standard_path.exists():
            return standard_path

        return None

    def load_config(self) -> ExpressionConfig:
        """Load and validate configuration from file.

        Returns:
            Validated ExpressionConfig (defaults if no config file found)

        Raises:
            ValueError: If config file is invalid or fails validation
        """
        if self._config is not None:
            return self._config

        config_path = self.get_config_path()

        if config_path is None:
            logger.info("No expression config file found, using defaults")
            self._config = ExpressionConfig()
            return self._config

        logger.info(f"Loading expression config from: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)

            if raw_config is None:
                raw_config = {}
            if not isinstance(raw_config, dict):
                raise ValueError("Config file must contain a YAML dictionary")

            config = ExpressionConfig(**raw_config)
            logger.info(f"Loaded expression config: {len(config.providers)} static providers")

            self._config = config
            return config

        except (yaml.YAMLError, ValueError) as e:
            raise ValueError(f"Failed to load expression config from {config_path}: {e}")


__all__ = ["ExpressionConfig", "ExpressionConfigLoader", "ProviderConfig"]
