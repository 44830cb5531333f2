"""FastMCP server initialization for workflows-expr.

This module initializes the MCP server and manages shared resources via lifespan context.
All tool implementations are in the tools module.

Following the official Anthropic Python SDK patterns:
- Lifespan context manager for resource initialization and cleanup
- Context injection for tool access to shared resources
- FastMCP server with stdio transport
"""

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from .context import AppContext, AppContextType
from .engine import (
    ExpressionConfig,
    ExpressionConfigLoader,
    ExpressionContext,
    ExpressionProvider,
    ProcessService,
    SqliteProcessService,
    discover_providers,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Shared Resources and Lifespan Management
# =============================================================================


def build_providers(config: ExpressionConfig) -> list[ExpressionProvider]:
    """Collect providers: static ones from config first, then entry points."""
    providers: list[ExpressionProvider] = [p.to_provider() for p in config.providers]
    if config.discover_entry_points:
        providers.extend(discover_providers())
    return providers


def create_app_context(config: ExpressionConfig, process_service: ProcessService) -> AppContext:
    """Wire the expression engine for a process service.

    Args:
        config: Loaded configuration
        process_service: Initialized process data service

    Returns:
        AppContext ready to be served to tools
    """
    expressions = ExpressionContext(
        process_service,
        providers=build_providers(config),
        expression_cache_size=config.expression_cache_size,
    )
    if config.warm_contexts_on_startup:
        count = expressions.init_expression_context()
        logger.info(f"Warmed {count} expression contexts")
    return AppContext(expressions=expressions, process_service=process_service, config=config)


@asynccontextmanager
async def app_lifespan(_server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage application lifecycle with resource initialization and cleanup.

    This lifespan context manager:
    1. Loads configuration (WORKFLOWS_EXPR_CONFIG or ~/.workflows/expr-config.yml)
    2. Opens the SQLite process database
    3. Wires the expression engine and optional context warmup
    4. Yields context to make resources available to tools
    5. Closes the database on shutdown

    Args:
        _server: FastMCP server instance (unused, required by FastMCP signature)

    Yields:
        AppContext with initialized resources
    """
    logger.info("Initializing MCP server resources...")

    config = ExpressionConfigLoader().load_config()
    db_path = config.resolved_database_path()

    process_service = SqliteProcessService(db_path)
    process_service.initialize()
    logger.info(f"Process database: {db_path}")

    try:
        yield create_app_context(config, process_service)
    finally:
        logger.info("Shutting down MCP server...")
        process_service.close()


# Initialize MCP server with lifespan management
mcp = FastMCP("workflows-expr", lifespan=app_lifespan)


def main() -> None:
    """Entry point for running the MCP server.

    This function is called when the server is run directly via:
    - python -m workflows_expr
    - workflows-expr (console script)

    Defaults to stdio transport for MCP protocol communication.
    """
    # Get log level from environment variable, default to INFO
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    log_level_str = os.getenv("WORKFLOWS_EXPR_LOG_LEVEL", "INFO").upper()

    if log_level_str not in valid_log_levels:
        print(
            f"Warning: Invalid WORKFLOWS_EXPR_LOG_LEVEL '{log_level_str}'. "
            f"Valid levels: {', '.join(sorted(valid_log_levels))}. "
            "Using INFO.",
            file=sys.stderr,
        )
        log_level_str = "INFO"

    log_level = getattr(logging, log_level_str)

    # Configure logging to stderr (MCP requirement)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    logger.info("Starting MCP server (press Ctrl+C to stop)...")

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down gracefully...")
    except Exception as e:
        logger.exception(f"Server error: {e}")
        sys.exit(1)

    logger.info("Server shutdown complete")


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "mcp",
    "main",
    "AppContext",
    "AppContextType",
    "create_app_context",
    "build_providers",
]
