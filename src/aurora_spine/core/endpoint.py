"""Endpoint identity for the Data API.

An :class:`EndpointIdentity` names one database on one cluster, reached with
one secret. It is immutable for the lifetime of the client that uses it; the
administrative endpoint is derived with :meth:`EndpointIdentity.with_database`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any

from aurora_spine.core.errors import InvalidConfigError

# PostgreSQL NAMEDATALEN - 1
_MAX_IDENTIFIER_LENGTH = 63
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_database_name(name: str) -> str:
    """Return ``name`` if it is a plain identifier, else raise ``InvalidConfigError``."""
    if not name or len(name) > _MAX_IDENTIFIER_LENGTH or not _IDENTIFIER_RE.match(name):
        raise InvalidConfigError(
            "database_name",
            name,
            f"Database name must be a plain identifier of at most "
            f"{_MAX_IDENTIFIER_LENGTH} characters: {name!r}",
        )
    return name


def quote_identifier(name: str) -> str:
    """Double-quote a validated identifier for use in DDL."""
    return f'"{validate_database_name(name)}"'


@dataclass(frozen=True, slots=True)
class EndpointIdentity:
    """Opaque handles naming a remote database connection.

    Attributes:
        resource_arn: ARN of the Aurora cluster.
        secret_arn: ARN of the Secrets Manager secret used to authenticate.
        database: Database the statements are bound to.
    """

    resource_arn: str
    secret_arn: str
    database: str

    def with_database(self, database: str) -> EndpointIdentity:
        """Same cluster and credentials, bound to another database."""
        return replace(self, database=database)

    def request_args(self, *, include_database: bool = True) -> dict[str, Any]:
        """Keyword arguments shared by every ``rds-data`` call."""
        args: dict[str, Any] = {
            "resourceArn": self.resource_arn,
            "secretArn": self.secret_arn,
        }
        if include_database:
            args["database"] = self.database
        return args


__all__ = ["EndpointIdentity", "validate_database_name", "quote_identifier"]
