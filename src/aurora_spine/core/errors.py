"""
Structured error types for aurora-spine.

Every failure that can happen while driving the Data API is mapped onto a
small typed hierarchy. Each error carries a category, a retry flag, a
structured context (database, transaction, migration, failing SQL) and the
chained cause, so the invocation boundary can always render a serialisable
error payload instead of an unhandled fault.

Manifesto:
    - **Typed taxonomy:** Connection, auth, statement, transaction and
      session failures are different problems with different owners
    - **Explicit retry semantics:** Only connection failures are retryable,
      and never automatically by this package
    - **Diagnosable statements:** A rejected statement always carries its
      SQL and parameters
    - **Error chaining:** The botocore exception is preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     AuroraSpineError                         │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │  ConnectionError    AuthError        StatementError          │
        │  (NETWORK, retry)   (AUTH)           (DATABASE, sql/params)  │
        │                                                              │
        │  TransactionError   ConfigError      MigrationLoadError      │
        │  (TRANSACTION)      (CONFIG)         (MIGRATION)             │
        │       │                  │                                   │
        │  SessionClosedError  MissingConfigError                      │
        │  DeadlineExceededError InvalidConfigError                    │
        └─────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Let a raw botocore ``ClientError`` escape the client layer
    ✅ DO: Wrap it with :func:`classify_client_error`

    ❌ DON'T: Retry a StatementError inside a migration run
    ✅ DO: Abort the run and let the caller re-run the reset flow

Note:
    ``ConnectionError`` shadows the builtin of the same name;
    import it from this module explicitly.

Tags:
    error-handling, exception-hierarchy, data-api, aurora-spine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import builtins
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    NETWORK = "NETWORK"
    AUTH = "AUTH"
    DATABASE = "DATABASE"
    TRANSACTION = "TRANSACTION"
    TIMEOUT = "TIMEOUT"
    CONFIG = "CONFIG"
    MIGRATION = "MIGRATION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        database: Database the failing call was bound to
        transaction_id: Transaction handle in use, if any
        migration: Migration unit name being replayed
        statement_index: Position of the statement within its unit
        metadata: Additional key-value pairs
    """

    database: str | None = None
    transaction_id: str | None = None
    migration: str | None = None
    statement_index: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result: dict[str, Any] = {}
        for key in ("database", "transaction_id", "migration", "statement_index"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result


class AuroraSpineError(Exception):
    """
    Base exception for all aurora-spine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so callers
    rarely pass them explicitly.

    Examples:
        >>> error = AuroraSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(database="app").context.database
        'app'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> AuroraSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StatementError("rejected", sql=sql).with_context(
                migration="00001_init", statement_index=3
            )
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# REMOTE ENDPOINT ERRORS
# =============================================================================


class ConnectionError(AuroraSpineError):
    """
    Endpoint or cluster unreachable.

    Retryable by the caller. ``outcome_unknown`` is set when the request may
    have reached the endpoint (read timeout), in which case a transaction
    must be treated as failed and the whole run repeated.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True

    def __init__(self, message: str, *, outcome_unknown: bool = False, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.outcome_unknown = outcome_unknown

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.outcome_unknown:
            result["outcome_unknown"] = True
        return result


class AuthError(AuroraSpineError):
    """Credentials rejected or unreadable. Fatal without intervention."""

    default_category = ErrorCategory.AUTH
    default_retryable = False


class StatementError(AuroraSpineError):
    """
    SQL rejected by the engine (syntax, constraint violation, ...).

    Always carries the offending SQL and parameters.
    """

    default_category = ErrorCategory.DATABASE
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        sql: str,
        params: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.sql = sql
        self.params = list(params or [])

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["sql"] = self.sql
        result["params"] = self.params
        return result


class TransactionError(AuroraSpineError):
    """Transaction protocol misuse: unknown, committed or aborted handle."""

    default_category = ErrorCategory.TRANSACTION
    default_retryable = False


class SessionClosedError(TransactionError):
    """A session was used after it committed or rolled back."""

    def __init__(self, state: str, message: str | None = None, **kwargs: Any):
        self.state = state
        super().__init__(message or f"Session is {state}; no further statements may run", **kwargs)


class DeadlineExceededError(TransactionError):
    """The invocation's wall-clock budget ran out. The outcome is unknown."""

    default_category = ErrorCategory.TIMEOUT


class RecordNotFoundError(AuroraSpineError):
    """A query that must return a row returned none."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


# =============================================================================
# CONFIGURATION / MIGRATION ERRORS
# =============================================================================


class ConfigError(AuroraSpineError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


class MigrationLoadError(AuroraSpineError):
    """Migration artifacts could not be discovered, read or split."""

    default_category = ErrorCategory.MIGRATION
    default_retryable = False


# =============================================================================
# BOTOCORE CLASSIFICATION
# =============================================================================

_AUTH_CODES = frozenset(
    {
        "ForbiddenException",
        "AccessDeniedException",
        "UnrecognizedClientException",
        "InvalidSecretException",
        "SecretsErrorException",
        "ExpiredTokenException",
        "InvalidSignatureException",
    }
)

_CONNECTION_CODES = frozenset(
    {
        "ServiceUnavailableError",
        "InternalServerErrorException",
        "ThrottlingException",
        "DatabaseUnavailableException",
        "DatabaseResumingException",
        "DatabaseNotFoundException",
        "HttpEndpointNotEnabledException",
        "StatementTimeoutException",
    }
)

_STATEMENT_CODES = frozenset({"BadRequestException", "DatabaseErrorException"})


# Data API messages about the transaction handle itself, not the SQL
_TRANSACTION_HANDLE_RE = re.compile(
    r"\btransaction\s+[\w+/=-]+\s+(?:is not found|is aborted|has expired|has been committed|has been rolled back)\b"
    r"|\binvalid transaction id\b"
    r"|\btransactionid\b",
    re.IGNORECASE,
)


def _mentions_transaction(message: str) -> bool:
    return _TRANSACTION_HANDLE_RE.search(message) is not None


def classify_client_error(
    exc: Exception,
    *,
    sql: str | None = None,
    params: list[dict[str, Any]] | None = None,
) -> AuroraSpineError:
    """
    Map a botocore exception onto the aurora-spine taxonomy.

    Args:
        exc: Exception raised by the boto3 ``rds-data`` client.
        sql: SQL being executed when the error happened, if any.
        params: Parameters sent with ``sql``.

    Returns:
        The typed error, with ``exc`` chained as its cause.
    """
    if isinstance(exc, AuroraSpineError):
        return exc

    if isinstance(exc, NoCredentialsError):
        return AuthError("No AWS credentials available", cause=exc)
    if isinstance(exc, ReadTimeoutError):
        return ConnectionError(
            f"Timed out waiting for the Data API: {exc}", outcome_unknown=True, cause=exc
        )
    if isinstance(exc, (EndpointConnectionError, ConnectTimeoutError)):
        return ConnectionError(f"Data API endpoint unreachable: {exc}", cause=exc)

    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "")
        message = error.get("Message", "") or str(exc)

        if code in _AUTH_CODES:
            return AuthError(f"{code}: {message}", cause=exc)
        if code in _CONNECTION_CODES:
            return ConnectionError(
                f"{code}: {message}",
                outcome_unknown=code == "StatementTimeoutException",
                cause=exc,
            )
        if code == "NotFoundException":
            return TransactionError(f"{code}: {message}", cause=exc)
        if code in _STATEMENT_CODES:
            if sql is None or _mentions_transaction(message):
                return TransactionError(f"{code}: {message}", cause=exc)
            return StatementError(message, sql=sql, params=params, cause=exc)
        if sql is not None:
            return StatementError(f"{code}: {message}", sql=sql, params=params, cause=exc)
        return TransactionError(f"{code}: {message}", cause=exc)

    if isinstance(exc, (BotoCoreError, builtins.ConnectionError, OSError)):
        return ConnectionError(str(exc), cause=exc)

    return AuroraSpineError(str(exc), category=ErrorCategory.UNKNOWN, cause=exc)


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable by the caller."""
    if isinstance(error, AuroraSpineError):
        return error.retryable
    return isinstance(error, (builtins.ConnectionError, OSError))


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "AuroraSpineError",
    "ConnectionError",
    "AuthError",
    "StatementError",
    "TransactionError",
    "SessionClosedError",
    "DeadlineExceededError",
    "RecordNotFoundError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "MigrationLoadError",
    "classify_client_error",
    "is_retryable",
]
