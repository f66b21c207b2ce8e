"""
TransactionSession: one transaction handle, one state machine.

States::

    Idle ──open()──► Active ──commit()──► Committed
                       │
                       └── statement failure / rollback() / deadline ──► RolledBack

``run`` and ``commit`` are legal only while ``Active``. Once a statement
fails the session is ``RolledBack`` and every later ``run`` raises
:class:`SessionClosedError` without touching the endpoint.

Rollback model:
    The Data API discards uncommitted work when a transaction errors or
    times out, so by default a failure only moves the local state to
    ``RolledBack``. Set ``explicit_rollback=True`` (``EXPLICIT_ROLLBACK=1``)
    to also send RollbackTransaction; failures of that call are logged and
    never replace the original error.

Deadline:
    ``timeout_seconds`` bounds the whole session. Exceeding it abandons the
    transaction and raises :class:`DeadlineExceededError`; the remote
    outcome is unknown and the caller must restart from scratch.

Tags:
    transaction, state-machine, data-api, aurora-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from aurora_spine.core.data_api.client import CommitResult, StatementClient, TransactionHandle
from aurora_spine.core.data_api.params import RowSet
from aurora_spine.core.endpoint import EndpointIdentity
from aurora_spine.core.errors import (
    AuroraSpineError,
    DeadlineExceededError,
    SessionClosedError,
    TransactionError,
)
from aurora_spine.core.logging import get_logger
from aurora_spine.core.statement import Statement

logger = get_logger(__name__)


class SessionState(str, Enum):
    IDLE = "Idle"
    ACTIVE = "Active"
    COMMITTED = "Committed"
    ROLLED_BACK = "RolledBack"


@dataclass
class SessionResult:
    """Accumulated responses of a session plus its outcome."""

    state: SessionState
    transaction_id: str | None = None
    responses: list[RowSet] = field(default_factory=list)
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.state is SessionState.COMMITTED


class TransactionSession:
    """Wraps a :class:`StatementClient` with a single active transaction.

    Example::

        session = TransactionSession(client, endpoint)
        session.open()
        session.run(Statement('CREATE TABLE "User" ("name" TEXT NOT NULL)'))
        session.commit()
    """

    def __init__(
        self,
        client: StatementClient,
        endpoint: EndpointIdentity,
        *,
        timeout_seconds: float | None = None,
        explicit_rollback: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._endpoint = endpoint
        self._timeout_seconds = timeout_seconds
        self._explicit_rollback = explicit_rollback
        self._clock = clock
        self._deadline: float | None = None
        self._handle: TransactionHandle | None = None
        self._state = SessionState.IDLE
        self._responses: list[RowSet] = []
        self._error: Exception | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def endpoint(self) -> EndpointIdentity:
        return self._endpoint

    @property
    def transaction_id(self) -> str | None:
        return self._handle.transaction_id if self._handle else None

    @property
    def result(self) -> SessionResult:
        return SessionResult(
            state=self._state,
            transaction_id=self.transaction_id,
            responses=list(self._responses),
            error=self._error,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def open(self) -> TransactionHandle:
        """Idle -> Active."""
        if self._state is not SessionState.IDLE:
            raise TransactionError(f"Session cannot be opened from state {self._state.value}")
        if self._timeout_seconds is not None:
            self._deadline = self._clock() + self._timeout_seconds
        self._handle = self._client.begin(self._endpoint)
        self._state = SessionState.ACTIVE
        logger.info(
            "session.opened",
            database=self._endpoint.database,
            transaction_id=self._handle.transaction_id,
        )
        return self._handle

    def run(self, statement: Statement | str, params: Mapping[str, Any] | None = None) -> RowSet:
        """Execute one statement inside the active transaction."""
        if isinstance(statement, str):
            statement = Statement(sql=statement, params=dict(params or {}))
        handle = self._require_active()
        self._check_deadline()

        try:
            rows = self._client.execute(self._endpoint, handle, statement.sql, statement.params)
        except Exception as exc:
            if isinstance(exc, AuroraSpineError) and statement.source is not None:
                exc.with_context(migration=statement.source, statement_index=statement.index)
            logger.error(
                "session.statement_failed",
                transaction_id=handle.transaction_id,
                migration=statement.source,
                statement_index=statement.index,
                sql=statement.sql,
                error=str(exc),
            )
            self._abandon(exc)
            raise
        self._responses.append(rows)
        return rows

    def commit(self) -> CommitResult:
        """Active -> Committed."""
        handle = self._require_active()
        self._check_deadline()
        try:
            result = self._client.commit(self._endpoint, handle)
        except AuroraSpineError as exc:
            # handle is dead on the client side already
            self._state = SessionState.ROLLED_BACK
            self._error = exc
            raise
        self._state = SessionState.COMMITTED
        logger.info(
            "session.committed",
            transaction_id=handle.transaction_id,
            statements=len(self._responses),
        )
        return result

    def rollback(self, reason: Exception | None = None) -> None:
        """Abandon the transaction. No-op unless Active."""
        if self._state is SessionState.ACTIVE:
            self._abandon(reason)

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> TransactionSession:
        if self._state is SessionState.IDLE:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._state is not SessionState.ACTIVE:
            return
        if exc_val is None:
            logger.warning(
                "session.closed_without_commit", transaction_id=self.transaction_id
            )
        self._abandon(exc_val)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_active(self) -> TransactionHandle:
        if self._state is SessionState.IDLE:
            raise TransactionError("Session has not been opened")
        if self._state is not SessionState.ACTIVE or self._handle is None:
            raise SessionClosedError(self._state.value)
        return self._handle

    def _check_deadline(self) -> None:
        if self._deadline is None or self._clock() < self._deadline:
            return
        error = DeadlineExceededError(
            f"Invocation exceeded its {self._timeout_seconds}s budget; transaction outcome unknown"
        ).with_context(database=self._endpoint.database, transaction_id=self.transaction_id)
        self._abandon(error)
        raise error

    def _abandon(self, reason: BaseException | None) -> None:
        handle = self._handle
        self._state = SessionState.ROLLED_BACK
        if isinstance(reason, Exception):
            self._error = reason
        logger.warning(
            "session.rolled_back",
            transaction_id=handle.transaction_id if handle else None,
            explicit=self._explicit_rollback,
        )
        if not self._explicit_rollback or handle is None:
            return
        try:
            self._client.rollback(self._endpoint, handle)
        except AuroraSpineError as exc:
            logger.warning(
                "session.rollback_failed",
                transaction_id=handle.transaction_id,
                error=exc.message,
            )


@contextmanager
def transaction(
    client: StatementClient,
    endpoint: EndpointIdentity,
    **session_kwargs: Any,
) -> Iterator[TransactionSession]:
    """Open a session, commit on clean exit, abandon on exception.

    Example::

        with transaction(client, endpoint) as tx:
            tx.run('INSERT INTO "User" (name, email) VALUES (:n, :e)', {"n": "a", "e": "a@x"})
    """
    session = TransactionSession(client, endpoint, **session_kwargs)
    with session:
        yield session
        if session.state is SessionState.ACTIVE:
            session.commit()


__all__ = [
    "SessionState",
    "SessionResult",
    "TransactionSession",
    "transaction",
]
