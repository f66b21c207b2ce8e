"""Transactional migration runner.

Replays every statement of every migration unit inside ONE Data API
transaction and commits once at the end. Migrations depend on each other
(a later unit alters a table an earlier one created), so partial
application is never kept: the first failure stops the run and the
transaction is abandoned.
Every unit is read and split before BeginTransaction, so a unit that
cannot be loaded fails the run without any remote call.

Every step's outcome is a :class:`~aurora_spine.core.result.Result`; the run
stops at the first ``Err`` and records where it happened in
:class:`MigrationFailure`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from aurora_spine.core.data_api.session import TransactionSession
from aurora_spine.core.errors import AuroraSpineError
from aurora_spine.core.logging import LogContext, get_logger
from aurora_spine.core.migrations.loader import MigrationLoader, MigrationUnit
from aurora_spine.core.result import Err, try_result
from aurora_spine.core.statement import Statement

logger = get_logger(__name__)


@dataclass
class MigrationFailure:
    """Where and why a run stopped.

    ``phase`` is one of ``begin``, ``load``, ``execute`` or ``commit``.
    """

    phase: str
    error: Exception
    unit: str | None = None
    unit_index: int | None = None
    statement_index: int | None = None
    sql: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, AuroraSpineError):
            error = self.error.to_dict()
        else:
            error = {"error_type": type(self.error).__name__, "message": str(self.error)}
        return {
            "phase": self.phase,
            "unit": self.unit,
            "unit_index": self.unit_index,
            "statement_index": self.statement_index,
            "sql": self.sql,
            "error": error,
        }


@dataclass
class RunResult:
    """Result of a migration run."""

    statements_applied: int = 0
    units_applied: list[str] = field(default_factory=list)
    committed: bool = False
    transaction_id: str | None = None
    failure: MigrationFailure | None = None
    elapsed_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.committed and self.failure is None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "success": self.success,
            "committed": self.committed,
            "statements_applied": self.statements_applied,
            "units_applied": list(self.units_applied),
            "transaction_id": self.transaction_id,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }
        if self.failure is not None:
            d["failure"] = self.failure.to_dict()
        return d


class MigrationRunner:
    """Applies all migration units under ``root`` as one transaction.

    Parameters
    ----------
    loader
        Discovers units and splits them into statements.
    root
        Migrations root directory.

    Example::

        runner = MigrationRunner(MigrationLoader(), Path("migrations"))
        result = runner.run(TransactionSession(client, endpoint))
        if not result.success:
            print(result.failure.to_dict())
    """

    def __init__(self, loader: MigrationLoader, root: Path | str) -> None:
        self._loader = loader
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def run(self, session: TransactionSession) -> RunResult:
        """Open ``session``, replay every statement, commit on success."""
        started = time.perf_counter()
        result = RunResult()

        with LogContext(database=session.endpoint.database):
            self._replay(session, result)

        result.transaction_id = session.transaction_id
        result.elapsed_ms = (time.perf_counter() - started) * 1000
        if result.success:
            logger.info(
                "migration.run_committed",
                units=len(result.units_applied),
                statements=result.statements_applied,
                elapsed_ms=round(result.elapsed_ms, 2),
            )
        else:
            logger.error("migration.run_failed", **result.failure.to_dict())
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _replay(self, session: TransactionSession, result: RunResult) -> None:
        plan = self._load_all(result)
        if plan is None:
            return

        opened = try_result(session.open)
        if isinstance(opened, Err):
            result.failure = MigrationFailure(phase="begin", error=opened.error)
            return

        for unit_index, (unit, statements) in enumerate(plan):
            failure = self._replay_unit(session, unit, unit_index, statements, result)
            if failure is not None:
                result.failure = failure
                session.rollback(failure.error)
                return
            result.units_applied.append(unit.name)

        committed = try_result(session.commit)
        if isinstance(committed, Err):
            result.failure = MigrationFailure(phase="commit", error=committed.error)
            return
        result.committed = True

    def _load_all(self, result: RunResult) -> list[tuple[MigrationUnit, list[Statement]]] | None:
        """Read and split every unit before the transaction is opened."""
        units = try_result(lambda: list(self._loader.discover(self._root)))
        if isinstance(units, Err):
            result.failure = MigrationFailure(phase="load", error=units.error)
            return None

        plan: list[tuple[MigrationUnit, list[Statement]]] = []
        for unit_index, unit in enumerate(units.value):
            loaded = try_result(lambda: self._loader.statements(unit))
            if isinstance(loaded, Err):
                result.failure = MigrationFailure(
                    phase="load", error=loaded.error, unit=unit.name, unit_index=unit_index
                )
                return None
            plan.append((unit, loaded.value))
        return plan

    def _replay_unit(
        self,
        session: TransactionSession,
        unit: MigrationUnit,
        unit_index: int,
        statements: list[Statement],
        result: RunResult,
    ) -> MigrationFailure | None:
        logger.info("migration.unit_started", migration=unit.name, statements=len(statements))
        for statement in statements:
            logger.debug(
                "migration.statement",
                migration=unit.name,
                statement_index=statement.index,
                sql=statement.preview(),
            )
            outcome = try_result(lambda: session.run(statement))
            if isinstance(outcome, Err):
                return MigrationFailure(
                    phase="execute",
                    error=outcome.error,
                    unit=unit.name,
                    unit_index=unit_index,
                    statement_index=statement.index,
                    sql=statement.sql,
                )
            result.statements_applied += 1
        return None


__all__ = ["MigrationFailure", "MigrationRunner", "RunResult"]
