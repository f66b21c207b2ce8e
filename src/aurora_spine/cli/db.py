"""
CLI: ``aurora-spine db``: commands that talk to the configured cluster.
"""

from __future__ import annotations

import typer

from aurora_spine.cli.utils import make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.command()
def migrate(
    dry_run: bool = typer.Option(False, "--dry-run", help="Plan only, no remote calls"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Apply every migration unit in one transaction."""
    from aurora_spine.ops.database import run_migrations

    ctx = make_context(dry_run=dry_run)
    result = run_migrations(ctx)
    output_result(result, as_json=json_out, title="Migrations")


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Plan only, no remote calls"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Terminate connections, drop and recreate the database, then migrate."""
    from aurora_spine.ops.database import reset_database

    ctx = make_context(dry_run=dry_run)
    if not (yes or dry_run):
        typer.confirm(
            f"Drop and recreate database {ctx.settings.database_name!r}?",
            abort=True,
        )
    result = reset_database(ctx)
    output_result(result, as_json=json_out, title="Database Reset")


@app.command()
def users(
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List every row of the User table."""
    from aurora_spine.ops.users import get_all_users

    ctx = make_context()
    result = get_all_users(ctx)
    output_result(result, as_json=json_out, title="Users")
