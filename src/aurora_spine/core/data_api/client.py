"""
StatementClient: the three-call Data API protocol.

The Aurora Data API is stateless request/response. A logical transaction is
driven with three calls:

    BeginTransaction(endpoint)                      -> transactionId
    ExecuteStatement(endpoint, sql, params, txid?)  -> records / update count
    CommitTransaction(endpoint, txid)               -> ack

:class:`StatementClient` issues exactly those calls, one statement per
``execute``, and converts every botocore failure into the aurora-spine error
taxonomy. It does not retry: a transient fault surfaces immediately as
``ConnectionError`` and the caller decides.

Architecture:
    ::

        TransactionSession ──► StatementClient ──► DataApiTransport (boto3 rds-data)
                                   │
                                   ├── begin()    -> TransactionHandle
                                   ├── execute()  -> RowSet
                                   ├── commit()   -> CommitResult
                                   └── rollback() -> CommitResult

Guardrails:
    ❌ DON'T: Put several ``;``-separated statements in one ``execute``
    ✅ DO: Split with :func:`aurora_spine.core.migrations.split_statements`

    ❌ DON'T: Run DROP/CREATE DATABASE with a handle
    ✅ DO: Pass ``handle=None`` so the statement auto-commits

Tags:
    data-api, transaction, boto3, aurora-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config

from aurora_spine.core.endpoint import EndpointIdentity
from aurora_spine.core.errors import TransactionError, classify_client_error
from aurora_spine.core.logging import get_logger
from aurora_spine.core.protocols import DataApiTransport
from aurora_spine.core.settings import AuroraSettings
from aurora_spine.core.data_api.params import RowSet, records_to_rows, to_sql_parameters

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TransactionHandle:
    """Opaque token returned by BeginTransaction.

    Valid until it is committed or rolled back; bound to one database.
    """

    transaction_id: str
    database: str


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Acknowledgement of CommitTransaction / RollbackTransaction."""

    transaction_id: str
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {"transaction_id": self.transaction_id, "status": self.status}


def create_data_api_client(settings: AuroraSettings) -> DataApiTransport:
    """Build a boto3 ``rds-data`` client for one invocation.

    Retries are disabled so that every call is attempted exactly once.
    """
    client_kwargs: dict[str, Any] = {
        "service_name": "rds-data",
        "region_name": settings.aws_region,
        "config": Config(
            connect_timeout=settings.connect_timeout_seconds,
            read_timeout=settings.read_timeout_seconds,
            retries={"total_max_attempts": 1, "mode": "standard"},
        ),
    }
    if settings.endpoint_url:
        client_kwargs["endpoint_url"] = settings.endpoint_url
    return boto3.client(**client_kwargs)


class StatementClient:
    """Issues begin / execute / commit against a Data API endpoint.

    Parameters
    ----------
    transport
        A boto3 ``rds-data`` client, or anything matching
        :class:`~aurora_spine.core.protocols.DataApiTransport`.

    Example::

        client = StatementClient(create_data_api_client(settings))
        handle = client.begin(endpoint)
        client.execute(endpoint, handle, 'INSERT INTO "User" (name, email) VALUES (:n, :e)',
                       {"n": "u1", "e": "u1@test.com"})
        client.commit(endpoint, handle)
    """

    def __init__(self, transport: DataApiTransport) -> None:
        self._transport = transport
        self._terminated: set[str] = set()
        self._aborted: set[str] = set()

    @classmethod
    def from_settings(cls, settings: AuroraSettings) -> StatementClient:
        return cls(create_data_api_client(settings))

    # ------------------------------------------------------------------
    # Protocol calls
    # ------------------------------------------------------------------

    def begin(self, endpoint: EndpointIdentity) -> TransactionHandle:
        """Open a transaction on ``endpoint``'s database."""
        try:
            response = self._transport.begin_transaction(**endpoint.request_args())
        except Exception as exc:
            error = classify_client_error(exc).with_context(database=endpoint.database)
            logger.error("data_api.begin_failed", database=endpoint.database, error=str(error))
            raise error from exc

        transaction_id = response.get("transactionId")
        if not transaction_id:
            raise TransactionError("BeginTransaction returned no transactionId").with_context(
                database=endpoint.database
            )
        logger.info("data_api.begin", database=endpoint.database, transaction_id=transaction_id)
        return TransactionHandle(transaction_id=transaction_id, database=endpoint.database)

    def execute(
        self,
        endpoint: EndpointIdentity,
        handle: TransactionHandle | None,
        sql: str,
        params: Mapping[str, Any] | None = None,
    ) -> RowSet:
        """Execute exactly one statement.

        With a ``handle`` the statement runs inside that transaction; with
        ``None`` it auto-commits on its own.

        Raises:
            StatementError: The engine rejected the SQL (carries sql + params).
            TransactionError: ``handle`` is unknown, terminated or aborted.
            ConnectionError: The endpoint could not be reached.
            AuthError: The secret was rejected.
        """
        parameters = to_sql_parameters(params)
        request: dict[str, Any] = {
            **endpoint.request_args(),
            "sql": sql,
            "parameters": parameters,
            "includeResultMetadata": True,
        }
        if handle is not None:
            self._check_live(handle)
            self._check_not_aborted(handle)
            request["transactionId"] = handle.transaction_id

        transaction_id = handle.transaction_id if handle else None
        logger.debug(
            "data_api.execute",
            database=endpoint.database,
            transaction_id=transaction_id,
            sql=sql,
            parameters=parameters,
        )
        try:
            response = self._transport.execute_statement(**request)
        except Exception as exc:
            error = classify_client_error(exc, sql=sql, params=parameters).with_context(
                database=endpoint.database, transaction_id=transaction_id
            )
            if handle is not None:
                self._aborted.add(handle.transaction_id)
            logger.error(
                "data_api.execute_failed",
                database=endpoint.database,
                transaction_id=transaction_id,
                sql=sql,
                parameters=parameters,
                error=str(error),
            )
            raise error from exc
        return records_to_rows(response)

    def commit(self, endpoint: EndpointIdentity, handle: TransactionHandle) -> CommitResult:
        """Commit ``handle``. The handle is dead afterwards whatever the outcome.

        A handle whose statement failed is never sent to CommitTransaction:
        the engine would acknowledge a COMMIT of an aborted transaction
        although nothing is committed.
        """
        self._check_live(handle)
        if handle.transaction_id in self._aborted:
            self._terminated.add(handle.transaction_id)
            logger.error(
                "data_api.commit_refused",
                database=endpoint.database,
                transaction_id=handle.transaction_id,
            )
            self._check_not_aborted(handle)
        try:
            response = self._transport.commit_transaction(
                **endpoint.request_args(include_database=False),
                transactionId=handle.transaction_id,
            )
        except Exception as exc:
            error = classify_client_error(exc).with_context(
                database=endpoint.database, transaction_id=handle.transaction_id
            )
            logger.error(
                "data_api.commit_failed",
                database=endpoint.database,
                transaction_id=handle.transaction_id,
                error=str(error),
            )
            raise error from exc
        finally:
            self._terminated.add(handle.transaction_id)

        status = response.get("transactionStatus", "Transaction Committed")
        logger.info(
            "data_api.commit",
            database=endpoint.database,
            transaction_id=handle.transaction_id,
            status=status,
        )
        return CommitResult(transaction_id=handle.transaction_id, status=status)

    def rollback(self, endpoint: EndpointIdentity, handle: TransactionHandle) -> CommitResult:
        """Roll ``handle`` back explicitly (RollbackTransaction)."""
        self._check_live(handle)
        try:
            response = self._transport.rollback_transaction(
                **endpoint.request_args(include_database=False),
                transactionId=handle.transaction_id,
            )
        except Exception as exc:
            raise classify_client_error(exc).with_context(
                database=endpoint.database, transaction_id=handle.transaction_id
            ) from exc
        finally:
            self._terminated.add(handle.transaction_id)

        status = response.get("transactionStatus", "Rollback Complete")
        logger.info(
            "data_api.rollback",
            database=endpoint.database,
            transaction_id=handle.transaction_id,
            status=status,
        )
        return CommitResult(transaction_id=handle.transaction_id, status=status)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_live(self, handle: TransactionHandle) -> None:
        if handle.transaction_id in self._terminated:
            raise TransactionError(
                f"Transaction {handle.transaction_id} was already committed or rolled back"
            ).with_context(database=handle.database, transaction_id=handle.transaction_id)

    def _check_not_aborted(self, handle: TransactionHandle) -> None:
        if handle.transaction_id in self._aborted:
            raise TransactionError(
                f"Transaction {handle.transaction_id} was aborted by a failed statement"
            ).with_context(database=handle.database, transaction_id=handle.transaction_id)


__all__ = [
    "StatementClient",
    "TransactionHandle",
    "CommitResult",
    "create_data_api_client",
]
