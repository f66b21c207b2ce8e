"""
CLI utility helpers: output formatting and context construction.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from aurora_spine.core.errors import AuroraSpineError
from aurora_spine.core.logging import STDERR, configure_logging
from aurora_spine.core.settings import load_settings
from aurora_spine.ops.context import OperationContext
from aurora_spine.ops.result import OperationResult

console = Console()
err_console = Console(stderr=True)


# ── Context helper ───────────────────────────────────────────────────────


def make_context(*, dry_run: bool = False) -> OperationContext:
    """Build an ``OperationContext`` from the environment for CLI commands.

    Configuration errors are reported on stderr and exit 1 before any
    remote call is made. Logs go to stderr so ``--json`` output stays clean.
    """
    try:
        settings = load_settings()
    except AuroraSpineError as exc:
        fail(exc)
    configure_logging(level=settings.log_level, json_format=settings.json_logs, stream=STDERR)
    return OperationContext.from_settings(settings, caller="cli", dry_run=dry_run)


def fail(exc: AuroraSpineError) -> NoReturn:
    """Print an error line for ``exc`` and exit 1."""
    err_console.print(f"[bold red]Error[/bold red] ({type(exc).__name__}): {escape(exc.message)}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / result object / dict to plain dict."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult`` to the terminal."""
    if not result.success:
        if as_json:
            console.print_json(json.dumps(result.to_dict(), default=str))
        err = result.error
        msg = err.message if err else "Unknown error"
        code = err.code if err else "ERROR"
        err_console.print(f"[bold red]Error[/bold red] ({code}): {escape(msg)}")
        raise typer.Exit(code=1)

    data = result.data

    if as_json:
        payload = _to_dict(data) if not isinstance(data, list | tuple) else [_to_dict(d) for d in data]
        console.print_json(json.dumps(payload, default=str))
        return

    for warning in result.warnings:
        err_console.print(f"[yellow]Warning[/yellow]: {warning}")

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
