from __future__ import annotations

from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table


def _cell(value: Any) -> str:
    if value is None:
        return "[dim]NULL[/dim]"
    return str(value)


def print_rows(
    rows: List[Dict[str, Any]],
    title: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render query result rows as a rich table.

    Columns follow the key order of the first row; keys missing from later
    rows render as empty cells.
    """
    console = console or Console()

    if not rows:
        console.print("[yellow]No rows returned.[/yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        caption=f"{len(rows):,} row(s)",
    )

    columns = list(rows[0].keys())
    for column in columns:
        table.add_column(column, style="cyan", no_wrap=True)

    for row in rows:
        table.add_row(*(_cell(row[column]) if column in row else "" for column in columns))

    console.print(table)


__all__ = ["print_rows"]
