"""
Database operations.

Thin wrappers around ``aurora_spine.core.migrations`` that return
:class:`OperationResult` envelopes for the serverless handlers and the CLI.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from aurora_spine.core.data_api.session import TransactionSession
from aurora_spine.core.errors import MigrationLoadError
from aurora_spine.core.logging import get_logger
from aurora_spine.core.migrations import (
    DatabaseResetCoordinator,
    MigrationLoader,
    MigrationRunner,
)
from aurora_spine.ops.context import OperationContext
from aurora_spine.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def _loader(ctx: OperationContext) -> MigrationLoader:
    return MigrationLoader(lock_file_name=ctx.settings.lock_file_name)


def reset_database(ctx: OperationContext) -> OperationResult[dict[str, Any]]:
    """Terminate connections, drop and recreate the target, then migrate it."""
    timer = start_timer()
    if ctx.dry_run:
        return plan_migrations(ctx.settings.migrations_dir, ctx.settings.lock_file_name)

    coordinator = DatabaseResetCoordinator(
        ctx.client,
        _loader(ctx),
        schema_check_table=ctx.settings.schema_check_table,
        **ctx.session_options(),
    )
    result = coordinator.reset(ctx.admin_endpoint, ctx.endpoint, ctx.settings.migrations_dir)
    if result.success:
        return OperationResult.ok(
            result.to_dict(), warnings=result.warnings, elapsed_ms=timer.elapsed_ms
        )

    error = result.error or (result.run.failure.error if result.run and result.run.failure else None)
    if error is None:
        return OperationResult.fail(
            "RESET_FAILED", "Reset did not complete", data=result.to_dict(), elapsed_ms=timer.elapsed_ms
        )
    return OperationResult.from_exception(error, data=result.to_dict(), elapsed_ms=timer.elapsed_ms)


def run_migrations(ctx: OperationContext) -> OperationResult[dict[str, Any]]:
    """Apply every migration unit to the target in one transaction."""
    timer = start_timer()
    if ctx.dry_run:
        return plan_migrations(ctx.settings.migrations_dir, ctx.settings.lock_file_name)

    runner = MigrationRunner(_loader(ctx), ctx.settings.migrations_dir)
    result = runner.run(TransactionSession(ctx.client, ctx.endpoint, **ctx.session_options()))
    if result.success:
        return OperationResult.ok(result.to_dict(), elapsed_ms=timer.elapsed_ms)
    return OperationResult.from_exception(
        result.failure.error, data=result.to_dict(), elapsed_ms=timer.elapsed_ms
    )


def plan_migrations(
    root: Path | str,
    lock_file_name: str = "migration_lock.toml",
    *,
    include_sql: bool = False,
) -> OperationResult[dict[str, Any]]:
    """Describe the units and statements a run would replay. No remote calls."""
    timer = start_timer()
    loader = MigrationLoader(lock_file_name=lock_file_name)
    try:
        units: list[dict[str, Any]] = []
        total = 0
        for unit in loader.discover(root):
            statements = loader.statements(unit)
            total += len(statements)
            entry: dict[str, Any] = {"unit": unit.name, "statements": len(statements)}
            if include_sql:
                entry["sql"] = [statement.sql for statement in statements]
            units.append(entry)
    except MigrationLoadError as exc:
        logger.error("op_failed", op="plan_migrations", error=exc.message)
        return OperationResult.from_exception(exc, elapsed_ms=timer.elapsed_ms)

    return OperationResult.ok(
        {"root": str(root), "units": units, "total_statements": total, "dry_run": True},
        elapsed_ms=timer.elapsed_ms,
    )


__all__ = ["plan_migrations", "reset_database", "run_migrations"]
