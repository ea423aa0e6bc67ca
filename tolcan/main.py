from __future__ import annotations

import asyncio
import sys
from typing import Any, Dict, List, Optional

import typer

from tolcan.config import DatabaseSettings, get_settings
from tolcan.infrastructure.database import Database
from tolcan.reporter import print_rows
from tolcan.utils.logging import configure_logging

app = typer.Typer(help="tolcan CLI.")


@app.command()
def info() -> None:
    """
    Show effective connection settings (password masked).
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.user}@{settings.host}:{settings.port}/{settings.database} | "
        f"ssl={settings.ssl} pool={settings.pool_min}..{settings.pool_max} "
        f"idle_timeout_ms={settings.idle_timeout_ms} "
        f"connect_timeout_ms={settings.connect_timeout_ms}"
    )


async def _run_raw(
    settings: DatabaseSettings, sql: str, params: List[str]
) -> List[Dict[str, Any]]:
    async with Database(settings) as db:
        return await db.raw(sql, params)


@app.command()
def raw(
    sql: str = typer.Argument(..., help="Statement to run, with $1, $2, ... placeholders."),
    param: Optional[List[str]] = typer.Option(
        None,
        "--param",
        "-p",
        help="Positional parameter value, repeatable. Values are sent as text; cast in SQL ($1::int).",
    ),
) -> None:
    """
    Run one statement and print the returned rows.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    rows = asyncio.run(_run_raw(settings, sql, list(param or [])))
    print_rows(rows, title=sql)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
