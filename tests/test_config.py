"""Tests for expression engine configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from workflows_expr.engine import (
    ExpressionConfig,
    ExpressionConfigLoader,
    ProcessInstance,
    ProviderConfig,
)
from workflows_expr.engine.state_config import StateConfig


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at a temp dir and clear the config env var."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("WORKFLOWS_EXPR_CONFIG", raising=False)
    return home


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestExpressionConfig:
    def test_defaults(self) -> None:
        config = ExpressionConfig()
        assert config.database_path is None
        assert config.warm_contexts_on_startup is False
        assert config.expression_cache_size == 512
        assert config.discover_entry_points is True
        assert config.providers == []

    def test_database_path_expands_user(self, isolated_home: Path) -> None:
        config = ExpressionConfig(database_path="~/data/processes.db")
        assert config.database_path == isolated_home / "data" / "processes.db"
        assert config.resolved_database_path() == isolated_home / "data" / "processes.db"

    def test_resolved_database_path_defaults_to_state_dir(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        default_path = tmp_path / "state" / "processes.db"
        monkeypatch.setattr(StateConfig, "get_db_path", staticmethod(lambda: default_path))
        assert ExpressionConfig().resolved_database_path() == default_path

    @pytest.mark.parametrize("size", [0, 100001])
    def test_cache_size_bounds(self, size: int) -> None:
        with pytest.raises(ValidationError):
            ExpressionConfig(expression_cache_size=size)


class TestProviderConfig:
    def test_to_provider(self) -> None:
        provider = ProviderConfig(data={"tenant": "acme"}, instance_ids=[5]).to_provider()
        assert provider.supports(ProcessInstance(id=5))
        assert not provider.supports(ProcessInstance(id=6))
        assert provider.get_data(ProcessInstance(id=5)) == {"tenant": "acme"}

    def test_invalid_keys_rejected(self) -> None:
        with pytest.raises(ValidationError, match="bad-key"):
            ProviderConfig(data={"ok": 1, "bad-key": 2})


class TestExpressionConfigLoader:
    def test_no_config_file_uses_defaults(self) -> None:
        assert ExpressionConfigLoader().load_config() == ExpressionConfig()

    def test_explicit_path(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path / "config.yml",
            """
warm_contexts_on_startup: true
expression_cache_size: 64
providers:
  - data:
      company: acme
  - data:
      approver: alice
    instance_ids: [42]
""",
        )

        config = ExpressionConfigLoader(path).load_config()

        assert config.warm_contexts_on_startup is True
        assert config.expression_cache_size == 64
        assert [p.data for p in config.providers] == [{"company": "acme"}, {"approver": "alice"}]
        assert config.providers[1].instance_ids == [42]

    def test_missing_explicit_path_uses_defaults(self, tmp_path: Path) -> None:
        loader = ExpressionConfigLoader(tmp_path / "missing.yml")
        assert loader.get_config_path() is None
        assert loader.load_config() == ExpressionConfig()

    def test_env_var_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path / "env.yml", "expression_cache_size: 8\n")
        monkeypatch.setenv("WORKFLOWS_EXPR_CONFIG", str(path))

        loader = ExpressionConfigLoader()

        assert loader.get_config_path() == path
        assert loader.load_config().expression_cache_size == 8

    def test_explicit_path_beats_env_var(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        explicit = _write(tmp_path / "explicit.yml", "expression_cache_size: 1\n")
        env = _write(tmp_path / "env.yml", "expression_cache_size: 2\n")
        monkeypatch.setenv("WORKFLOWS_EXPR_CONFIG", str(env))

        assert ExpressionConfigLoader(explicit).load_config().expression_cache_size == 1

    def test_standard_location(self, isolated_home: Path) -> None:
        _write(isolated_home / ".workflows" / "expr-config.yml", "discover_entry_points: false\n")
        assert ExpressionConfigLoader().load_config().discover_entry_points is False

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "empty.yml", "")
        assert ExpressionConfigLoader(path).load_config() == ExpressionConfig()

    def test_result_is_cached(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "config.yml", "expression_cache_size: 3\n")
        loader = ExpressionConfigLoader(path)
        first = loader.load_config()
        path.write_text("expression_cache_size: 4\n", encoding="utf-8")
        assert loader.load_config() is first

    @pytest.mark.parametrize(
        "content",
        [
            "providers: [unclosed\n",
            "- just\n- a list\n",
            "expression_cache_size: not-a-number\n",
            "providers:\n  - data:\n      bad-key: 1\n",
        ],
    )
    def test_invalid_config_raises_value_error(self, tmp_path: Path, content: str) -> None:
        path = _write(tmp_path / "bad.yml", content)
        with pytest.raises(ValueError, match="Failed to load expression config"):
            ExpressionConfigLoader(path).load_config()
