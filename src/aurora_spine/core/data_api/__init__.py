"""Aurora Data API access: value codec, statement client, transaction session.

Modules
-------
params     Python value <-> Data API Field codec, RowSet
client     StatementClient (begin / execute / commit / rollback)
session    TransactionSession state machine + transaction() helper

Tags:
    aurora-spine, data-api, transaction

Doc-Types:
    package-overview
"""

from aurora_spine.core.data_api.client import (
    CommitResult,
    StatementClient,
    TransactionHandle,
    create_data_api_client,
)
from aurora_spine.core.data_api.params import RowSet, records_to_rows, to_sql_parameters
from aurora_spine.core.data_api.session import (
    SessionResult,
    SessionState,
    TransactionSession,
    transaction,
)

__all__ = [
    "CommitResult",
    "RowSet",
    "SessionResult",
    "SessionState",
    "StatementClient",
    "TransactionHandle",
    "TransactionSession",
    "create_data_api_client",
    "records_to_rows",
    "to_sql_parameters",
    "transaction",
]
