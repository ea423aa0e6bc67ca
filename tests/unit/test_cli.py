from __future__ import annotations

from typing import Any, Dict, List

import pytest
from rich.console import Console
from typer.testing import CliRunner

from tolcan import config
from tolcan import main as main_module
from tolcan.reporter import print_rows

runner = CliRunner()


@pytest.fixture
def env(monkeypatch) -> None:
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_PORT", "5432")
    monkeypatch.setenv("DB_NAME", "app")
    monkeypatch.setenv("DB_USER", "svc")
    monkeypatch.setenv("DB_PASSWORD", "hunter2")
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def test_info_masks_the_password(env) -> None:
    result = runner.invoke(main_module.app, ["info"])

    assert result.exit_code == 0
    assert "DB=svc@db.internal:5432/app" in result.output
    assert "hunter2" not in result.output


def test_raw_prints_rows_with_parameters(env, monkeypatch) -> None:
    seen: Dict[str, Any] = {}

    async def fake_run_raw(settings, sql: str, params: List[str]) -> List[Dict[str, Any]]:
        seen.update(sql=sql, params=params, database=settings.database)
        return [{"id": 1, "name": "Ann"}]

    monkeypatch.setattr(main_module, "_run_raw", fake_run_raw)
    monkeypatch.setattr(main_module, "configure_logging", lambda **kwargs: None)

    result = runner.invoke(
        main_module.app, ["raw", "SELECT id, name FROM users WHERE id = $1::int", "-p", "1"]
    )

    assert result.exit_code == 0, result.output
    assert seen == {
        "sql": "SELECT id, name FROM users WHERE id = $1::int",
        "params": ["1"],
        "database": "app",
    }
    assert "Ann" in result.output


def test_print_rows_renders_nulls_and_row_count() -> None:
    console = Console(record=True, width=120)

    print_rows([{"id": 1, "email": None}, {"id": 2, "email": "b@example.com"}], console=console)

    text = console.export_text()
    assert "NULL" in text
    assert "b@example.com" in text
    assert "2 row(s)" in text


def test_print_rows_without_rows() -> None:
    console = Console(record=True, width=120)

    print_rows([], console=console)

    assert "No rows returned." in console.export_text()
