"""Environment-driven settings for aurora-spine.

Every invocation (a Lambda call, a CLI run) builds one :class:`AuroraSettings`
from the process environment and passes it, or the endpoints derived from
it, into each component. There are no module-level clients.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Missing endpoint identity must be reported before any remote call.

    - **Pydantic validation:** Type-checked when the invocation starts
    - **Environment-driven:** Reads from env vars and an optional .env file
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> settings = load_settings()            # doctest: +SKIP
    >>> settings.endpoint().database          # doctest: +SKIP
    'app'

Tags:
    settings, configuration, pydantic, environment, aurora-spine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aurora_spine.core.endpoint import EndpointIdentity, validate_database_name
from aurora_spine.core.errors import InvalidConfigError, MissingConfigError


class AuroraSettings(BaseSettings):
    """Settings for one Data API invocation.

    Fields
    ──────
    aws_region                 : Region the cluster is deployed to
    resource_arn               : Cluster ARN (``RESOURCE_ARN`` or ``CLUSTER_ARN``)
    secret_arn                 : Secret used for authentication to the cluster
    database_name              : Target database
    admin_database             : System database used to drop/create the target
    migrations_dir             : Root of the migration units
    lock_file_name             : Sentinel file excluded from discovery
    schema_check_table         : Table described after a reset (empty disables)
    invocation_timeout_seconds : Wall-clock budget for one invocation
    explicit_rollback          : Send RollbackTransaction after a failure
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Endpoint identity ────────────────────────────────────────
    aws_region: str = Field(validation_alias=AliasChoices("AWS_REGION", "aws_region"))
    resource_arn: str = Field(
        validation_alias=AliasChoices("RESOURCE_ARN", "CLUSTER_ARN", "resource_arn")
    )
    secret_arn: str = Field(validation_alias=AliasChoices("SECRET_ARN", "secret_arn"))
    database_name: str = Field(
        validation_alias=AliasChoices("DATABASE_NAME", "database_name")
    )
    admin_database: str = Field(
        default="postgres", validation_alias=AliasChoices("ADMIN_DATABASE", "admin_database")
    )
    endpoint_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATA_API_ENDPOINT_URL", "endpoint_url"),
    )

    # ── Migrations ───────────────────────────────────────────────
    migrations_dir: Path = Field(
        default=Path("migrations"),
        validation_alias=AliasChoices("MIGRATIONS_DIR", "migrations_dir"),
    )
    lock_file_name: str = Field(
        default="migration_lock.toml",
        validation_alias=AliasChoices("MIGRATION_LOCK_FILE", "lock_file_name"),
    )
    schema_check_table: str = Field(
        default="User",
        validation_alias=AliasChoices("SCHEMA_CHECK_TABLE", "schema_check_table"),
    )

    # ── Timeouts / transaction behaviour ─────────────────────────
    invocation_timeout_seconds: float | None = Field(
        default=None,
        validation_alias=AliasChoices("INVOCATION_TIMEOUT_SECONDS", "invocation_timeout_seconds"),
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices("CONNECT_TIMEOUT_SECONDS", "connect_timeout_seconds"),
    )
    read_timeout_seconds: float = Field(
        default=60.0,
        validation_alias=AliasChoices("READ_TIMEOUT_SECONDS", "read_timeout_seconds"),
    )
    explicit_rollback: bool = Field(
        default=False,
        validation_alias=AliasChoices("EXPLICIT_ROLLBACK", "explicit_rollback"),
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    json_logs: bool | None = Field(
        default=None, validation_alias=AliasChoices("JSON_LOGS", "json_logs")
    )

    @field_validator("database_name", "admin_database")
    @classmethod
    def _plain_identifier(cls, value: str) -> str:
        try:
            return validate_database_name(value)
        except InvalidConfigError as exc:
            raise ValueError(exc.message) from exc

    def endpoint(self) -> EndpointIdentity:
        """Endpoint bound to the target database."""
        return EndpointIdentity(
            resource_arn=self.resource_arn,
            secret_arn=self.secret_arn,
            database=self.database_name,
        )

    def admin_endpoint(self) -> EndpointIdentity:
        """Endpoint bound to the administrative (system) database."""
        return self.endpoint().with_database(self.admin_database)


_ENV_NAMES = {
    "aws_region": "AWS_REGION",
    "resource_arn": "RESOURCE_ARN",
    "secret_arn": "SECRET_ARN",
    "database_name": "DATABASE_NAME",
}


def load_settings(**overrides: object) -> AuroraSettings:
    """Build settings from the environment, raising typed config errors.

    Raises:
        MissingConfigError: A required variable is absent.
        InvalidConfigError: A variable is present but fails validation.
    """
    try:
        return AuroraSettings(**overrides)
    except ValidationError as exc:
        for error in exc.errors():
            loc = str(error["loc"][0]) if error["loc"] else "settings"
            if error["type"] == "missing":
                raise MissingConfigError(_ENV_NAMES.get(loc, loc.upper())) from exc
        first = exc.errors()[0]
        loc = str(first["loc"][0]) if first["loc"] else "settings"
        raise InvalidConfigError(loc, first.get("input"), first["msg"]) from exc


__all__ = ["AuroraSettings", "load_settings"]
