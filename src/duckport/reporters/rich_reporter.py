# src/duckport/reporters/rich_reporter.py
from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from duckport.results import QueryResult

console = Console()

MAX_ROWS = 50


def report_success(msg: str) -> None:
    console.print(f"[bold green]✅ {msg}[/bold green]")


def report_failure(msg: str) -> None:
    console.print(f"[bold red]❌ {msg}[/bold red]")


def _cell(value: Any) -> str:
    if value is None:
        return "[dim]NULL[/dim]"
    return escape(str(value))


def render_result(result: QueryResult, max_rows: int = MAX_ROWS, title: Optional[str] = None) -> None:
    """Print `result` as a table, truncated to `max_rows` rows."""
    table = Table(title=title, show_lines=False)
    for col in result.columns:
        table.add_column(escape(col), overflow="fold")
    for row in result.rows[:max_rows]:
        table.add_row(*(_cell(row[c]) for c in result.columns))
    console.print(table)

    shown = min(len(result), max_rows)
    footer = f"{len(result):,} row(s)"
    if shown < len(result):
        footer += f" (showing first {shown})"
    console.print(f"[blue]{footer}[/blue]")


def render_platform(info: Dict[str, Any]) -> None:
    table = Table(show_header=False)
    table.add_column("key", style="bold")
    table.add_column("value")
    for key in ("family", "binary", "library"):
        exists = info.get(f"{key}_exists")
        mark = "" if exists is None else (" [green]✓[/green]" if exists else " [red]missing[/red]")
        table.add_row(key, f"{info.get(key, '')}{mark}")
    console.print(table)
