"""Tests for key and expression whitelist validation."""

import logging

import pytest

from workflows_expr.engine.resolver import ExpressionClassifier, ExpressionType
from workflows_expr.engine.validation import (
    filter_safe_variables,
    is_safe_expression,
    is_safe_variable_key,
)

# -----------------------------------------------------------------------
# Variable keys
# -----------------------------------------------------------------------


class TestVariableKeys:
    @pytest.mark.parametrize("key", ["a", "_", "_private", "order_total", "A1_b2", "x9"])
    def test_identifier_keys_are_safe(self, key: str) -> None:
        assert is_safe_variable_key(key)

    @pytest.mark.parametrize(
        "key",
        ["", "1abc", "a.b", "call(", "a;b", "a b", " a", "a\n", "bad-key!", "${a}", "ä"],
    )
    def test_other_keys_are_unsafe(self, key: str) -> None:
        assert not is_safe_variable_key(key)

    @pytest.mark.parametrize("key", [None, 1, 1.5, ("a",)])
    def test_non_string_keys_are_unsafe(self, key: object) -> None:
        assert not is_safe_variable_key(key)

    @pytest.mark.parametrize(
        "key", ["true", "false", "none", "True", "False", "None", "and", "not"]
    )
    def test_engine_literals_and_keywords_are_unsafe(self, key: str) -> None:
        assert not is_safe_variable_key(key)

    @pytest.mark.parametrize("key", ["true_value", "nonempty", "is_open", "Nones"])
    def test_names_containing_reserved_words_are_safe(self, key: str) -> None:
        assert is_safe_variable_key(key)


# -----------------------------------------------------------------------
# Expression bodies
# -----------------------------------------------------------------------


class TestExpressions:
    @pytest.mark.parametrize(
        "body",
        [
            "42",
            "3.14",
            "amount",
            "_tmp",
            "a+b",
            "a + b * 2",
            "a - 1.5 / c",
            "1+2",
            "price*quantity-discount",
        ],
    )
    def test_whitelisted_shapes(self, body: str) -> None:
        assert is_safe_expression(body)

    @pytest.mark.parametrize(
        "body",
        [
            "",
            "a; deleteAll()",
            "a.b()",
            "a.b",
            "a(1)",
            "${a}",
            "{a}",
            "a = 1",
            "a == 1",
            "a ** b",
            "a +",
            "-1",
            ".5",
            "1.",
            "a[0]",
            "__import__('os')",
            "a | upper",
            "a\n",
            "'text'",
        ],
    )
    def test_everything_else_is_rejected(self, body: str) -> None:
        assert not is_safe_expression(body)

    @pytest.mark.parametrize(
        "body",
        [
            "a\u2003+\u3000b",
            "a\u00a0+ b",
            "a\n+b",
            "a\t+ b",
            "a +\rb",
            "\u0661",
            "a\u0660",
        ],
    )
    def test_non_ascii_characters_and_other_whitespace_are_rejected(self, body: str) -> None:
        assert not is_safe_expression(body)

    @pytest.mark.parametrize(
        "body", ["true", "false", "none", "None", "a + true", "not", "a + none * 2"]
    )
    def test_engine_literals_and_keywords_are_rejected(self, body: str) -> None:
        assert not is_safe_expression(body)

    def test_reserved_word_inside_identifier_is_allowed(self) -> None:
        assert is_safe_expression("true_total + nonempty")

    def test_rejection_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            assert not is_safe_expression("a.b()")
        assert "a.b()" in caplog.text

    def test_non_string_is_rejected(self) -> None:
        assert not is_safe_expression(None)


class TestClassifier:
    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ("42", ExpressionType.NUMBER),
            ("4.5", ExpressionType.NUMBER),
            ("amount", ExpressionType.IDENTIFIER),
            ("a + 1", ExpressionType.ARITHMETIC),
            ("a.b", ExpressionType.UNSAFE),
        ],
    )
    def test_classify(self, body: str, expected: ExpressionType) -> None:
        assert ExpressionClassifier().classify(body) == expected


# -----------------------------------------------------------------------
# Filtering
# -----------------------------------------------------------------------


class TestFilterSafeVariables:
    def test_drops_unsafe_keys(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            safe = filter_safe_variables({"ok_key": 1, "bad-key!": 2}, "test")
        assert safe == {"ok_key": 1}
        assert "bad-key!" in caplog.text

    def test_none_is_empty(self) -> None:
        assert filter_safe_variables(None, "test") == {}

    def test_preserves_order(self) -> None:
        safe = filter_safe_variables({"b": 1, "a": 2, "c": 3}, "test")
        assert list(safe) == ["b", "a", "c"]
