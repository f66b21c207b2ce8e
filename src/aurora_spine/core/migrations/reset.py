"""
Database reset: drop, recreate and migrate a target database.

A database cannot be dropped over a connection bound to it, so the
destructive steps go through an *administrative* endpoint (same cluster and
secret, bound to a system database such as ``postgres``):

    1. terminate every other backend connected to the target
    2. DROP DATABASE IF EXISTS target
    3. CREATE DATABASE target

Each is its own auto-committing ExecuteStatement (no transaction handle):
DROP/CREATE DATABASE cannot run inside a transaction block. Any failure
here aborts the reset before migrations are attempted.

Then the :class:`MigrationRunner` replays all migrations against the fresh
target in one transaction, and optionally the column layout of one table
is read back from ``information_schema`` as a sanity check.

Failure semantics:
    A failed migration run leaves the target created but empty (the
    transaction is discarded). There is no resume point smaller than the
    whole reset: callers re-run :meth:`DatabaseResetCoordinator.reset`.

Tags:
    reset, migrations, data-api, administrative-session, aurora-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from aurora_spine.core.data_api.client import StatementClient
from aurora_spine.core.data_api.session import TransactionSession
from aurora_spine.core.endpoint import EndpointIdentity, quote_identifier
from aurora_spine.core.errors import AuroraSpineError, InvalidConfigError
from aurora_spine.core.logging import LogContext, get_logger
from aurora_spine.core.migrations.loader import MigrationLoader
from aurora_spine.core.migrations.runner import MigrationRunner, RunResult
from aurora_spine.core.result import Err, try_result

logger = get_logger(__name__)

TERMINATE_CONNECTIONS_SQL = (
    "SELECT pg_terminate_backend(pg_stat_activity.pid) FROM pg_stat_activity "
    "WHERE pg_stat_activity.datname = :database AND pid <> pg_backend_pid()"
)

SCHEMA_CHECK_SQL = (
    "SELECT column_name, data_type, character_maximum_length "
    "FROM information_schema.columns WHERE table_name = :table "
    "ORDER BY ordinal_position"
)


@dataclass
class ResetResult:
    """Outcome of a reset.

    ``error`` is set when an administrative step failed (migrations were
    not attempted); otherwise ``run`` holds the migration outcome.
    """

    database: str
    admin_steps: list[str] = field(default_factory=list)
    connections_terminated: int = 0
    error: Exception | None = None
    run: RunResult | None = None
    schema: list[dict[str, Any]] | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None and self.run is not None and self.run.success

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "success": self.success,
            "database": self.database,
            "admin_steps": list(self.admin_steps),
            "connections_terminated": self.connections_terminated,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }
        if self.error is not None:
            if isinstance(self.error, AuroraSpineError):
                d["error"] = self.error.to_dict()
            else:
                d["error"] = {"error_type": type(self.error).__name__, "message": str(self.error)}
        if self.run is not None:
            d["migrations"] = self.run.to_dict()
        if self.schema is not None:
            d["schema"] = self.schema
        if self.warnings:
            d["warnings"] = list(self.warnings)
        return d


class DatabaseResetCoordinator:
    """Drops and recreates a database, then migrates it.

    Parameters
    ----------
    client
        Statement client shared by the administrative and target calls.
    loader
        Migration loader.
    schema_check_table
        Table whose columns are read back after migrating; ``None`` skips it.
    session_options
        Keyword arguments for the :class:`TransactionSession` of the run
        (``timeout_seconds``, ``explicit_rollback``).
    """

    def __init__(
        self,
        client: StatementClient,
        loader: MigrationLoader | None = None,
        *,
        schema_check_table: str | None = "User",
        **session_options: Any,
    ) -> None:
        self._client = client
        self._loader = loader or MigrationLoader()
        self._schema_check_table = schema_check_table or None
        self._session_options = session_options

    def reset(
        self,
        admin_endpoint: EndpointIdentity,
        target_endpoint: EndpointIdentity,
        migrations_root: Path | str,
    ) -> ResetResult:
        started = time.perf_counter()
        result = ResetResult(database=target_endpoint.database)

        with LogContext(database=target_endpoint.database):
            recreated = try_result(lambda: self._recreate(admin_endpoint, target_endpoint, result))
            if isinstance(recreated, Err):
                result.error = recreated.error
                logger.error(
                    "reset.admin_step_failed",
                    completed=result.admin_steps,
                    error=str(recreated.error),
                )
            else:
                session = TransactionSession(self._client, target_endpoint, **self._session_options)
                runner = MigrationRunner(self._loader, migrations_root)
                result.run = runner.run(session)
                if result.run.success and self._schema_check_table:
                    self._check_schema(target_endpoint, result)

        result.elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("reset.finished", success=result.success, elapsed_ms=round(result.elapsed_ms, 2))
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _recreate(
        self,
        admin_endpoint: EndpointIdentity,
        target_endpoint: EndpointIdentity,
        result: ResetResult,
    ) -> None:
        target = target_endpoint.database
        if admin_endpoint.database == target:
            raise InvalidConfigError(
                "admin_database",
                admin_endpoint.database,
                "The administrative endpoint must not be bound to the database being reset",
            )
        quoted = quote_identifier(target)

        terminated = self._client.execute(
            admin_endpoint, None, TERMINATE_CONNECTIONS_SQL, {"database": target}
        )
        result.connections_terminated = len(terminated.rows)
        result.admin_steps.append("terminate_connections")
        logger.info("reset.connections_terminated", count=result.connections_terminated)

        self._client.execute(admin_endpoint, None, f"DROP DATABASE IF EXISTS {quoted}")
        result.admin_steps.append("drop_database")
        logger.info("reset.database_dropped")

        self._client.execute(admin_endpoint, None, f"CREATE DATABASE {quoted}")
        result.admin_steps.append("create_database")
        logger.info("reset.database_created")

    def _check_schema(self, target_endpoint: EndpointIdentity, result: ResetResult) -> None:
        described = try_result(
            lambda: self._client.execute(
                target_endpoint, None, SCHEMA_CHECK_SQL, {"table": self._schema_check_table}
            )
        )
        if isinstance(described, Err):
            message = f"Schema check of {self._schema_check_table!r} failed: {described.error}"
            result.warnings.append(message)
            logger.warning("reset.schema_check_failed", table=self._schema_check_table, error=str(described.error))
            return
        result.schema = described.value.rows
        if not result.schema:
            result.warnings.append(f"Table {self._schema_check_table!r} has no columns after migrating")


__all__ = [
    "DatabaseResetCoordinator",
    "ResetResult",
    "SCHEMA_CHECK_SQL",
    "TERMINATE_CONNECTIONS_SQL",
]
