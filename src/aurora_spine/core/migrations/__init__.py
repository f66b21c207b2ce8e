"""Schema migrations over the Aurora Data API.

Manifesto:
    The Data API has no multi-statement bodies and no implicit transaction
    across calls. Migrations are therefore split into single statements and
    replayed inside one explicit transaction, committed only when every
    statement of every unit has succeeded.

Modules
-------
loader    MigrationLoader: discover units, split migration.sql on ';'
runner    MigrationRunner: replay all statements in one transaction
reset     DatabaseResetCoordinator: terminate / drop / create, then migrate

Tags:
    aurora-spine, migrations, schema, database, DDL

Doc-Types:
    package-overview
"""

from aurora_spine.core.migrations.loader import (
    LOCK_FILE_NAME,
    MigrationLoader,
    MigrationSet,
    MigrationUnit,
    split_statements,
)
from aurora_spine.core.migrations.reset import DatabaseResetCoordinator, ResetResult
from aurora_spine.core.migrations.runner import MigrationFailure, MigrationRunner, RunResult

__all__ = [
    "LOCK_FILE_NAME",
    "DatabaseResetCoordinator",
    "MigrationFailure",
    "MigrationLoader",
    "MigrationRunner",
    "MigrationSet",
    "MigrationUnit",
    "ResetResult",
    "RunResult",
    "split_statements",
]
