"""Tests for the MCP tool layer.

Tools are called directly with a mock MCP context whose lifespan context is
a real AppContext over an in-memory process service.
"""

import threading
from unittest.mock import MagicMock, patch

import pytest

from workflows_expr.context import AppContext
from workflows_expr.engine import ExpressionConfig, InMemoryProcessService, ProcessInstance
from workflows_expr.server import build_providers, create_app_context
from workflows_expr.tools import (
    evaluate_expression,
    evaluate_template,
    get_context_variables,
    move_context_to_parent,
    remove_context_variable,
    set_context_variables,
    warm_contexts,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def app_context(process_service: InMemoryProcessService) -> AppContext:
    config = ExpressionConfig(
        discover_entry_points=False,
        providers=[{"data": {"tenant": "acme"}, "instance_ids": [1]}],
    )
    return create_app_context(config, process_service)


@pytest.fixture
def mock_context(app_context: AppContext) -> MagicMock:
    """Create mock MCP context with AppContext for testing tools."""
    mock_ctx = MagicMock()
    mock_ctx.request_context.lifespan_context = app_context
    return mock_ctx


# =============================================================================
# Evaluation tools
# =============================================================================


class TestEvaluateExpression:
    async def test_with_fallback(self, mock_context: MagicMock, app_context: AppContext) -> None:
        app_context.expressions.create_context(ProcessInstance(id=1), {"a": 3, "b": 4})

        result = await evaluate_expression(2, "${a + b * 2}", ctx=mock_context)

        assert result == {"status": "success", "found": True, "value": 11}

    async def test_without_fallback(self, mock_context: MagicMock, app_context: AppContext) -> None:
        app_context.expressions.create_context(ProcessInstance(id=1), {"a": 3})

        result = await evaluate_expression(2, "${a}", fallback=False, ctx=mock_context)

        assert result == {"status": "success", "found": False, "value": None}

    async def test_provider_data_visible(self, mock_context: MagicMock) -> None:
        result = await evaluate_expression(4, "${tenant}", ctx=mock_context)
        assert result["value"] == "acme"

    async def test_unsafe_expression(self, mock_context: MagicMock) -> None:
        result = await evaluate_expression(1, "${__import__('os')}", ctx=mock_context)
        assert result["status"] == "failure"
        assert "Unsafe expression detected" in result["error"]

    async def test_unknown_instance(self, mock_context: MagicMock) -> None:
        result = await evaluate_expression(99, "${a}", ctx=mock_context)
        assert result == {"status": "failure", "error": "Process instance 99 not found"}

    async def test_literal_text(self, mock_context: MagicMock) -> None:
        result = await evaluate_expression(1, "plain", ctx=mock_context)
        assert result == {"status": "success", "found": True, "value": "plain"}

    async def test_blocking_calls_run_in_worker_threads(
        self, mock_context: MagicMock, app_context: AppContext
    ) -> None:
        loop_thread = threading.get_ident()
        threads: list[int] = []
        lookup = app_context.process_service.get_process_instance_by_id
        resolve = app_context.expressions.eval_with_fallback

        def recording_lookup(process_instance_id):
            threads.append(threading.get_ident())
            return lookup(process_instance_id)

        def recording_resolve(instance, expression):
            threads.append(threading.get_ident())
            return resolve(instance, expression)

        with (
            patch.object(
                app_context.process_service,
                "get_process_instance_by_id",
                side_effect=recording_lookup,
            ),
            patch.object(
                app_context.expressions, "eval_with_fallback", side_effect=recording_resolve
            ),
        ):
            result = await evaluate_expression(1, "${tenant}", ctx=mock_context)

        assert result["value"] == "acme"
        assert len(threads) >= 2
        assert loop_thread not in threads


class TestEvaluateTemplate:
    async def test_substitutes_tokens(
        self, mock_context: MagicMock, app_context: AppContext
    ) -> None:
        app_context.expressions.create_context(ProcessInstance(id=2, parent_id=1), {"amount": 30})

        result = await evaluate_template(2, "${tenant} owes ${amount}", ctx=mock_context)

        assert result == {"status": "success", "text": "acme owes 30"}

    async def test_unknown_instance(self, mock_context: MagicMock) -> None:
        result = await evaluate_template(99, "${a}", ctx=mock_context)
        assert result["status"] == "failure"


# =============================================================================
# Context management tools
# =============================================================================


class TestContextTools:
    async def test_get_without_cached_context(self, mock_context: MagicMock) -> None:
        result = await get_context_variables(3, ctx=mock_context)
        assert result["status"] == "failure"
        assert "No cached context" in result["error"]

    async def test_set_then_get(self, mock_context: MagicMock) -> None:
        result = await set_context_variables(
            3, {"amount": 5, "bad key": 1, "when": {"day": 1}}, ctx=mock_context
        )
        assert result == {"status": "success", "variables": {"amount": 5, "when": {"day": 1}}}

        result = await get_context_variables(3, ctx=mock_context)
        assert result == {"status": "success", "variables": {"amount": 5, "when": {"day": 1}}}

    async def test_set_unknown_instance(self, mock_context: MagicMock) -> None:
        result = await set_context_variables(99, {"a": 1}, ctx=mock_context)
        assert result["status"] == "failure"

    async def test_non_json_values_rendered_as_text(
        self, mock_context: MagicMock, app_context: AppContext
    ) -> None:
        app_context.expressions.create_context(ProcessInstance(id=3, parent_id=1), {"obj": object})
        result = await get_context_variables(3, ctx=mock_context)
        assert result["variables"] == {"obj": str(object)}

    async def test_remove_variable(self, mock_context: MagicMock) -> None:
        await set_context_variables(3, {"a": 1, "b": 2}, ctx=mock_context)

        assert await remove_context_variable(3, "a", ctx=mock_context) == {"status": "success"}

        result = await get_context_variables(3, ctx=mock_context)
        assert result["variables"] == {"b": 2}

    async def test_move_to_parent(self, mock_context: MagicMock) -> None:
        await set_context_variables(4, {"result": "done"}, ctx=mock_context)

        result = await move_context_to_parent(4, ctx=mock_context)

        assert result == {"status": "success", "moved": True, "parent_id": 2}
        parent = await get_context_variables(2, ctx=mock_context)
        assert parent["variables"] == {"result": "done"}

    async def test_move_root(self, mock_context: MagicMock) -> None:
        result = await move_context_to_parent(1, ctx=mock_context)
        assert result["status"] == "success"
        assert result["moved"] is False

    async def test_move_unknown_instance(self, mock_context: MagicMock) -> None:
        result = await move_context_to_parent(99, ctx=mock_context)
        assert result["status"] == "failure"

    async def test_warm_contexts(
        self, mock_context: MagicMock, process_service: InMemoryProcessService
    ) -> None:
        process_service.set_variable(2, "status", "open")

        assert await warm_contexts(ctx=mock_context) == {"status": "success", "contexts": 4}

        result = await get_context_variables(2, ctx=mock_context)
        assert result["variables"] == {"status": "open"}


# =============================================================================
# Server wiring
# =============================================================================


class TestServerWiring:
    def test_build_providers_from_config(self) -> None:
        config = ExpressionConfig(
            discover_entry_points=False, providers=[{"data": {"a": 1}}, {"data": {"b": 2}}]
        )
        providers = build_providers(config)
        assert [p.get_data(ProcessInstance(id=1)) for p in providers] == [{"a": 1}, {"b": 2}]

    def test_warm_on_startup(self, process_service: InMemoryProcessService) -> None:
        process_service.set_variable(1, "a", 1)
        config = ExpressionConfig(discover_entry_points=False, warm_contexts_on_startup=True)

        app_context = create_app_context(config, process_service)

        assert app_context.expressions.get_context_variables(1) == {"a": 1}
        assert app_context.config is config
