"""
User operations over raw SQL.

Operations against the ``"User"`` table created by the sample migrations
(``name``, ``email`` with a unique index on ``email``). They exercise the
statement client both outside a transaction (single auto-committed
statements) and inside one (:func:`create_update_get`, :func:`smoke_test_data_api`).
"""

from __future__ import annotations

import uuid
from typing import Any

from aurora_spine.core.data_api.session import transaction
from aurora_spine.core.errors import AuroraSpineError, RecordNotFoundError
from aurora_spine.core.logging import get_logger
from aurora_spine.ops.context import OperationContext
from aurora_spine.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

INSERT_USER_SQL = 'INSERT INTO "User" ("name", "email") VALUES (:name, :email) RETURNING "name", "email"'
SELECT_USERS_SQL = 'SELECT "name", "email" FROM "User" ORDER BY "email"'
SELECT_USER_BY_EMAIL_SQL = 'SELECT "name", "email" FROM "User" WHERE "email" = :email'
RENAME_USER_SQL = 'UPDATE "User" SET "name" = :name WHERE "email" = :email'

SMOKE_TEST_STATEMENTS = (
    'DROP TABLE IF EXISTS "User"',
    'CREATE TABLE "User" ("name" TEXT NOT NULL, "email" TEXT NOT NULL)',
    'CREATE UNIQUE INDEX "User_email_key" ON "User"("email")',
)


def _random_identity() -> tuple[str, str]:
    token = str(uuid.uuid4())
    return f"{token}-name", f"{token}@test.com"


def create_user(
    ctx: OperationContext,
    name: str | None = None,
    email: str | None = None,
) -> OperationResult[dict[str, Any]]:
    """Insert one user. Missing name/email are generated from a UUID."""
    timer = start_timer()
    default_name, default_email = _random_identity()
    params = {"name": name or default_name, "email": email or default_email}
    try:
        rows = ctx.client.execute(ctx.endpoint, None, INSERT_USER_SQL, params)
    except AuroraSpineError as exc:
        logger.error("op_failed", op="create_user", error=exc.message)
        return OperationResult.from_exception(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(rows.first() or params, elapsed_ms=timer.elapsed_ms)


def get_all_users(ctx: OperationContext) -> OperationResult[list[dict[str, Any]]]:
    """Every row of the ``"User"`` table, ordered by email."""
    timer = start_timer()
    try:
        rows = ctx.client.execute(ctx.endpoint, None, SELECT_USERS_SQL)
    except AuroraSpineError as exc:
        logger.error("op_failed", op="get_all_users", error=exc.message)
        return OperationResult.from_exception(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(rows.rows, elapsed_ms=timer.elapsed_ms)


def find_user_by_email(ctx: OperationContext, email: str) -> OperationResult[dict[str, Any]]:
    timer = start_timer()
    try:
        row = ctx.client.execute(ctx.endpoint, None, SELECT_USER_BY_EMAIL_SQL, {"email": email}).first()
        if row is None:
            raise RecordNotFoundError(f"No user with email {email}")
    except AuroraSpineError as exc:
        logger.error("op_failed", op="find_user_by_email", error=exc.message)
        return OperationResult.from_exception(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(row, elapsed_ms=timer.elapsed_ms)


def rename_user(ctx: OperationContext, email: str, name: str) -> OperationResult[dict[str, Any]]:
    """Set the name of the user with ``email``. Auto-commits."""
    timer = start_timer()
    try:
        rows = ctx.client.execute(ctx.endpoint, None, RENAME_USER_SQL, {"name": name, "email": email})
        if rows.records_updated == 0:
            raise RecordNotFoundError(f"No user with email {email}")
    except AuroraSpineError as exc:
        logger.error("op_failed", op="rename_user", error=exc.message)
        return OperationResult.from_exception(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok({"name": name, "email": email}, elapsed_ms=timer.elapsed_ms)


def create_update_get(ctx: OperationContext) -> OperationResult[dict[str, Any]]:
    """Create a user, rename it and read it back, all in one transaction."""
    timer = start_timer()
    name, email = _random_identity()
    try:
        with transaction(ctx.client, ctx.endpoint, **ctx.session_options()) as tx:
            tx.run(INSERT_USER_SQL, {"name": name, "email": email})
            tx.run(RENAME_USER_SQL, {"name": f"{name}- Updated", "email": email})
            final = tx.run(SELECT_USER_BY_EMAIL_SQL, {"email": email}).first()
            if final is None:
                raise RecordNotFoundError(f"User {email} vanished inside its own transaction")
    except AuroraSpineError as exc:
        logger.error("op_failed", op="create_update_get", error=exc.message)
        return OperationResult.from_exception(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(final, elapsed_ms=timer.elapsed_ms)


def smoke_test_data_api(ctx: OperationContext) -> OperationResult[dict[str, Any]]:
    """Recreate ``"User"``, insert a row and select it back in one transaction."""
    timer = start_timer()
    _, email = _random_identity()
    try:
        with transaction(ctx.client, ctx.endpoint, **ctx.session_options()) as tx:
            for sql in SMOKE_TEST_STATEMENTS:
                tx.run(sql)
            tx.run(INSERT_USER_SQL, {"name": "test", "email": email})
            rows = tx.run(SELECT_USERS_SQL)
            transaction_id = tx.transaction_id
    except AuroraSpineError as exc:
        logger.error("op_failed", op="smoke_test_data_api", error=exc.message)
        return OperationResult.from_exception(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(
        {"transaction_id": transaction_id, "committed": True, "rows": rows.rows},
        elapsed_ms=timer.elapsed_ms,
    )


__all__ = [
    "create_update_get",
    "create_user",
    "find_user_by_email",
    "get_all_users",
    "rename_user",
    "smoke_test_data_api",
]
