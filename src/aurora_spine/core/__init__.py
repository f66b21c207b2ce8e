"""
aurora-spine core: transactional statement execution over the Aurora Data API.

Modules
-------
errors      typed error hierarchy + botocore classification
result      Ok / Err result variants
logging     structlog configuration
settings    pydantic-settings configuration (AuroraSettings, load_settings)
endpoint    EndpointIdentity
protocols   DataApiTransport structural protocol
statement   Statement value object
data_api    params codec, StatementClient, TransactionSession
migrations  MigrationLoader, MigrationRunner, DatabaseResetCoordinator

Tags:
    aurora-spine, core, data-api

Doc-Types:
    package-overview
"""
