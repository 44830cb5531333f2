"""MCP tool implementations for expression evaluation.

This module exposes the expression engine to MCP clients.

Following official Anthropic MCP Python SDK patterns:
- Tool functions decorated with @mcp.tool()
- Flat parameter signatures with Annotated types for validation
- Async functions for all tools; blocking engine and SQLite calls run in
  worker threads via asyncio.to_thread
- Clear docstrings (become tool descriptions)
"""

import asyncio
import json
from typing import Annotated, Any

from mcp.types import ToolAnnotations
from pydantic import Field

from .context import AppContext, AppContextType
from .engine import ContextNotFoundError, ProcessInstance, UnsafeExpressionError
from .server import mcp

ProcessInstanceId = Annotated[
    int,
    Field(description="Process instance id", ge=1),
]


def _app_context(ctx: AppContextType) -> AppContext:
    return ctx.request_context.lifespan_context


def _jsonable(value: Any) -> Any:
    """Round-trip through JSON so opaque context values become plain data."""
    return json.loads(json.dumps(value, default=str))


def _instance_not_found(process_instance_id: int) -> dict[str, Any]:
    return {
        "status": "failure",
        "error": f"Process instance {process_instance_id} not found",
    }


async def _lookup(app_ctx: AppContext, process_instance_id: int) -> ProcessInstance | None:
    return await asyncio.to_thread(
        app_ctx.process_service.get_process_instance_by_id, process_instance_id
    )


# =============================================================================
# Evaluation Tools
# =============================================================================


@mcp.tool(
    annotations=ToolAnnotations(
        title="Evaluate Expression",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def evaluate_expression(
    process_instance_id: ProcessInstanceId,
    expression: Annotated[
        str,
        Field(description="Expression like ${amount * 2}; other text is returned as-is"),
    ],
    fallback: Annotated[
        bool,
        Field(description="Search parent (or, for roots, descendant) instances if not found"),
    ] = True,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Evaluate one ${...} expression against a process instance's variables."""
    app_ctx = _app_context(ctx)
    try:
        if fallback:
            instance = await _lookup(app_ctx, process_instance_id)
            if instance is None:
                return _instance_not_found(process_instance_id)
            value = await asyncio.to_thread(
                app_ctx.expressions.eval_with_fallback, instance, expression
            )
        else:
            value = await asyncio.to_thread(
                app_ctx.expressions.eval, process_instance_id, expression
            )
    except UnsafeExpressionError as e:
        return {"status": "failure", "error": str(e)}

    return {"status": "success", "found": value is not None, "value": _jsonable(value)}


@mcp.tool(
    annotations=ToolAnnotations(
        title="Evaluate Template",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def evaluate_template(
    process_instance_id: ProcessInstanceId,
    text: Annotated[str, Field(description="Free text containing ${...} tokens")],
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Substitute every ${...} token in text using the process instance's variables."""
    app_ctx = _app_context(ctx)
    instance = await _lookup(app_ctx, process_instance_id)
    if instance is None:
        return _instance_not_found(process_instance_id)
    try:
        result = await asyncio.to_thread(app_ctx.expressions.eval_string, instance, text)
    except UnsafeExpressionError as e:
        return {"status": "failure", "error": str(e)}
    return {"status": "success", "text": result}


# =============================================================================
# Context Management Tools
# =============================================================================


@mcp.tool(
    annotations=ToolAnnotations(
        title="Get Context Variables",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def get_context_variables(
    process_instance_id: ProcessInstanceId,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Show the cached variables of a process instance."""
    variables = await asyncio.to_thread(
        _app_context(ctx).expressions.get_context_variables, process_instance_id
    )
    if variables is None:
        return {
            "status": "failure",
            "error": f"No cached context for process instance {process_instance_id}",
        }
    return {"status": "success", "variables": _jsonable(variables)}


@mcp.tool(
    annotations=ToolAnnotations(
        title="Set Context Variables",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def set_context_variables(
    process_instance_id: ProcessInstanceId,
    variables: Annotated[
        dict[str, Any],
        Field(description="Variables to merge; keys must be identifiers"),
    ],
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Merge variables into a process instance's context. Invalid keys are skipped."""
    app_ctx = _app_context(ctx)
    instance = await _lookup(app_ctx, process_instance_id)
    if instance is None:
        return _instance_not_found(process_instance_id)
    try:
        await asyncio.to_thread(app_ctx.expressions.add_context_variables, instance, variables)
    except ContextNotFoundError as e:
        return {"status": "failure", "error": str(e)}
    return {
        "status": "success",
        "variables": _jsonable(app_ctx.expressions.get_context_variables(process_instance_id)),
    }


@mcp.tool(
    annotations=ToolAnnotations(
        title="Remove Context Variable",
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def remove_context_variable(
    process_instance_id: ProcessInstanceId,
    key: Annotated[str, Field(description="Variable name", min_length=1)],
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Remove one variable from a process instance's cached context."""
    await asyncio.to_thread(
        _app_context(ctx).expressions.remove_context_variable, process_instance_id, key
    )
    return {"status": "success"}


@mcp.tool(
    annotations=ToolAnnotations(
        title="Move Context To Parent",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def move_context_to_parent(
    process_instance_id: ProcessInstanceId,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Copy a process instance's variables into its parent's context."""
    app_ctx = _app_context(ctx)
    instance = await _lookup(app_ctx, process_instance_id)
    if instance is None:
        return _instance_not_found(process_instance_id)
    if instance.is_root:
        return {"status": "success", "moved": False, "message": "Instance has no parent"}
    try:
        await asyncio.to_thread(app_ctx.expressions.move_context_to_parent, instance)
    except ContextNotFoundError as e:
        return {"status": "failure", "error": str(e)}
    return {"status": "success", "moved": True, "parent_id": instance.parent_id}


@mcp.tool(
    annotations=ToolAnnotations(
        title="Warm Contexts",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def warm_contexts(*, ctx: AppContextType) -> dict[str, Any]:
    """Rebuild the cached context of every known process instance."""
    count = await asyncio.to_thread(_app_context(ctx).expressions.init_expression_context)
    return {"status": "success", "contexts": count}
