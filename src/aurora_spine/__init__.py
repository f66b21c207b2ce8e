"""
aurora-spine - transactional migrations and statements over the Aurora Data API.

- aurora_spine.core: Data API client, transaction sessions, migrations
- aurora_spine.ops: invocation-scoped operations and serverless handlers
- aurora_spine.cli: ``aurora-spine`` command line
"""

__version__ = "0.1.0"

from aurora_spine.core.data_api import StatementClient, TransactionSession, transaction
from aurora_spine.core.endpoint import EndpointIdentity
from aurora_spine.core.migrations import (
    DatabaseResetCoordinator,
    MigrationLoader,
    MigrationRunner,
)
from aurora_spine.core.settings import AuroraSettings, load_settings

__all__ = [
    "AuroraSettings",
    "DatabaseResetCoordinator",
    "EndpointIdentity",
    "MigrationLoader",
    "MigrationRunner",
    "StatementClient",
    "TransactionSession",
    "__version__",
    "load_settings",
    "transaction",
]
