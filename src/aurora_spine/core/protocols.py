"""
Structural protocol for the Data API transport.

:class:`DataApiTransport` is the shape of a boto3 ``rds-data`` client as far
as aurora-spine is concerned. Anything with these four methods works: the
real client from :func:`create_data_api_client`, a botocore ``Stubber``-wrapped
client, or the sqlite-backed fake used by the test suite.

Guardrails:
    ❌ DON'T: Call ``batch_execute_statement`` or ``execute_sql``
    ✅ DO: Send exactly one statement per ``execute_statement`` call

Tags:
    protocol, data-api, boto3, aurora-spine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DataApiTransport(Protocol):
    """Request/response contract of the Aurora Data API."""

    def begin_transaction(self, **kwargs: Any) -> dict[str, Any]:
        """BeginTransaction(resourceArn, secretArn, database) -> {transactionId}."""
        ...

    def execute_statement(self, **kwargs: Any) -> dict[str, Any]:
        """ExecuteStatement(resourceArn, secretArn, database, sql, parameters, transactionId?)."""
        ...

    def commit_transaction(self, **kwargs: Any) -> dict[str, Any]:
        """CommitTransaction(resourceArn, secretArn, transactionId) -> {transactionStatus}."""
        ...

    def rollback_transaction(self, **kwargs: Any) -> dict[str, Any]:
        """RollbackTransaction(resourceArn, secretArn, transactionId) -> {transactionStatus}."""
        ...


__all__ = ["DataApiTransport"]
