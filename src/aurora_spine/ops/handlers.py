"""
Serverless invocation surface.

Each handler is an independently invocable ``(event, context)`` function
(AWS Lambda signature). Handlers take nothing from the event: the endpoint
identity comes from the environment, validated before any remote call.
They always return ``{"statusCode", "body"}``: 200 with the JSON result on
success, 400 with a JSON error payload on any caught failure. No exception
escapes a handler.

Logging is configured on the first invocation of a process; a warm
container keeps that configuration, as its environment cannot change.

Body encoding: integers outside the IEEE-754 safe range (|n| > 2**53 - 1),
``Decimal`` and UUID values are rendered as strings, dates and datetimes as
ISO-8601 strings, bytes as base64.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

import structlog

from aurora_spine.core.logging import LogContext, configure_logging, get_logger
from aurora_spine.core.settings import load_settings
from aurora_spine.ops import database, users
from aurora_spine.ops.context import OperationContext
from aurora_spine.ops.result import OperationResult

logger = get_logger(__name__)

MAX_SAFE_INTEGER = 2**53 - 1

Operation = Callable[[OperationContext], OperationResult[Any]]


def _stringify_wide_ints(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value) if abs(value) > MAX_SAFE_INTEGER else value
    if isinstance(value, dict):
        return {key: _stringify_wide_ints(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_stringify_wide_ints(item) for item in value]
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return str(value)


def to_json_body(payload: Any) -> str:
    """Serialise a handler payload."""
    return json.dumps(_stringify_wide_ints(payload), default=_json_default)


def to_response(result: OperationResult[Any]) -> dict[str, Any]:
    """Convert an :class:`OperationResult` into ``{"statusCode", "body"}``."""
    if result.success:
        return {"statusCode": 200, "body": to_json_body(result.data)}
    body: dict[str, Any] = {"error": result.to_dict().get("error", {})}
    if result.data is not None:
        body["data"] = result.data
    return {"statusCode": 400, "body": to_json_body(body)}


def invoke(name: str, operation: Operation) -> dict[str, Any]:
    """Run ``operation`` with a fresh per-invocation context."""
    try:
        settings = load_settings()
        if not structlog.is_configured():
            configure_logging(level=settings.log_level, json_format=settings.json_logs)
        ctx = OperationContext.from_settings(settings, caller="lambda")
        with LogContext(handler=name, request_id=ctx.request_id):
            result = operation(ctx)
    except Exception as exc:
        logger.exception("handler.failed", handler=name, error=str(exc))
        result = OperationResult.from_exception(exc)
    return to_response(result)


def reset_database(event: Any = None, context: Any = None) -> dict[str, Any]:
    """Drop, recreate and migrate the configured database."""
    return invoke("reset_database", database.reset_database)


def run_migrations(event: Any = None, context: Any = None) -> dict[str, Any]:
    """Apply all migrations to the configured database."""
    return invoke("run_migrations", database.run_migrations)


def create_user(event: Any = None, context: Any = None) -> dict[str, Any]:
    return invoke("create_user", users.create_user)


def get_all_users(event: Any = None, context: Any = None) -> dict[str, Any]:
    return invoke("get_all_users", users.get_all_users)


def create_update_get(event: Any = None, context: Any = None) -> dict[str, Any]:
    """Create, update and read back a user in one transaction."""
    return invoke("create_update_get", users.create_update_get)


def test_data_api(event: Any = None, context: Any = None) -> dict[str, Any]:
    """Exercise begin / execute / commit directly against the Data API."""
    return invoke("test_data_api", users.smoke_test_data_api)


test_data_api.__test__ = False  # type: ignore[attr-defined]

__all__ = [
    "create_update_get",
    "create_user",
    "get_all_users",
    "invoke",
    "reset_database",
    "run_migrations",
    "test_data_api",
    "to_json_body",
    "to_response",
]
