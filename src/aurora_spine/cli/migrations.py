"""
CLI: ``aurora-spine migrations``: local inspection, no remote calls.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.markup import escape

from aurora_spine.cli.utils import console, fail, output_result
from aurora_spine.core.errors import MigrationLoadError
from aurora_spine.core.migrations import LOCK_FILE_NAME, MigrationLoader
from aurora_spine.ops.result import OperationResult

app = typer.Typer(no_args_is_help=True)


@app.command()
def plan(
    directory: Path = typer.Option(
        Path("migrations"), "--dir", "-d", envvar="MIGRATIONS_DIR", help="Migration root"
    ),
    lock_file: str = typer.Option(
        LOCK_FILE_NAME, "--lock-file", envvar="MIGRATION_LOCK_FILE", help="Sentinel file to skip"
    ),
    show_sql: bool = typer.Option(False, "--show-sql", help="Print every statement"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List migration units in replay order with their statement counts."""
    from aurora_spine.ops.database import plan_migrations

    result = plan_migrations(directory, lock_file, include_sql=show_sql)
    if json_out or not result.success:
        output_result(result, as_json=json_out, title="Migration Plan")
        return

    plan_data = result.data or {}
    units = plan_data.get("units", [])
    if not units:
        console.print(f"[dim]No migration units under {directory}.[/dim]")
        return
    output_result(
        OperationResult.ok([{"unit": u["unit"], "statements": u["statements"]} for u in units]),
        title=f"Migration Plan ({plan_data['total_statements']} statements)",
    )
    if show_sql:
        for unit in units:
            console.print(f"\n[bold]{unit['unit']}[/bold]")
            for index, sql in enumerate(unit["sql"]):
                console.print(f"  [cyan]{index:>3}[/cyan] {escape(sql)}", highlight=False)


@app.command()
def split(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    strict: bool = typer.Option(True, "--strict/--no-strict", help="Reject quoted semicolons"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Print the statements a SQL file splits into."""
    loader = MigrationLoader(strict=strict)
    try:
        statements = loader.split(file.read_text(encoding="utf-8"), source=str(file))
    except MigrationLoadError as exc:
        fail(exc)

    if json_out:
        console.print_json(json.dumps([s.sql for s in statements]))
        return
    for statement in statements:
        console.print(f"[cyan]{statement.index:>3}[/cyan] {escape(statement.sql)}", highlight=False)
