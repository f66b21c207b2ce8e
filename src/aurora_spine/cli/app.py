"""
Root Typer application for the aurora-spine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from aurora_spine.core.logging import STDERR, configure_logging

app = Typer(
    name="aurora-spine",
    help="aurora-spine: transactional migrations over the Aurora Data API.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from aurora_spine import __version__

        typer.echo(f"aurora-spine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", envvar="LOG_LEVEL", help="Log level for stderr logs."
    ),
) -> None:
    """aurora-spine CLI: plan, apply and reset database migrations."""
    configure_logging(level=log_level, stream=STDERR)


# ── Sub-command registration ─────────────────────────────────────────────

from aurora_spine.cli.db import app as db_app  # noqa: E402
from aurora_spine.cli.migrations import app as migrations_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database operations against the configured cluster.")
app.add_typer(migrations_app, name="migrations", help="Inspect migrations locally.")


if __name__ == "__main__":
    app()
