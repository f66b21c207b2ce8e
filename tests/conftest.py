"""
Shared pytest fixtures for aurora-spine tests.

This module provides:
- An in-memory Data API (``fake_api``) and a ``StatementClient`` over it
- Target and administrative endpoints
- A sample migrations root mirroring ``migrations/``
- A fully configured environment for handlers and the CLI
- Per-test reset of structlog and root logging configuration
"""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path

import pytest
import structlog

from aurora_spine.core.data_api.client import StatementClient
from aurora_spine.core.endpoint import EndpointIdentity
from tests._support import RESOURCE_ARN, SECRET_ARN, write_migration
from tests._support.fake_data_api import FakeDataApi

INIT_SQL = textwrap.dedent("""\
    -- CreateTable
    CREATE TABLE "User" (
        "name" TEXT NOT NULL,
        "email" TEXT NOT NULL
    );
""")

INDEX_SQL = textwrap.dedent("""\
    -- CreateIndex
    CREATE UNIQUE INDEX "User_email_key" ON "User"("email");
""")

OPTIONAL_ENV = (
    "CLUSTER_ARN",
    "ADMIN_DATABASE",
    "DATA_API_ENDPOINT_URL",
    "MIGRATION_LOCK_FILE",
    "SCHEMA_CHECK_TABLE",
    "INVOCATION_TIMEOUT_SECONDS",
    "CONNECT_TIMEOUT_SECONDS",
    "READ_TIMEOUT_SECONDS",
    "EXPLICIT_ROLLBACK",
    "LOG_LEVEL",
    "JSON_LOGS",
)


# =============================================================================
# Logging isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any logging configuration a test (or the CLI it invokes) installed."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


# =============================================================================
# Data API fixtures
# =============================================================================


@pytest.fixture
def fake_api() -> FakeDataApi:
    """Fake cluster holding the ``postgres`` system database and ``app``."""
    return FakeDataApi(databases=["postgres", "app"])


@pytest.fixture
def client(fake_api: FakeDataApi) -> StatementClient:
    return StatementClient(fake_api)


@pytest.fixture
def endpoint() -> EndpointIdentity:
    return EndpointIdentity(resource_arn=RESOURCE_ARN, secret_arn=SECRET_ARN, database="app")


@pytest.fixture
def admin_endpoint(endpoint: EndpointIdentity) -> EndpointIdentity:
    return endpoint.with_database("postgres")


# =============================================================================
# Migration fixtures
# =============================================================================


@pytest.fixture
def migrations_root(tmp_path: Path) -> Path:
    """Two units plus the lock-file sentinel, like the shipped ``migrations/``."""
    root = tmp_path / "migrations"
    root.mkdir()
    (root / "migration_lock.toml").write_text('provider = "postgresql"\n')
    write_migration(root, "20240101000000_init", INIT_SQL)
    write_migration(root, "20240215093000_user_email_unique", INDEX_SQL)
    return root


# =============================================================================
# Environment fixtures
# =============================================================================


@pytest.fixture
def aurora_env(monkeypatch: pytest.MonkeyPatch, migrations_root: Path) -> Path:
    """Complete environment for ``load_settings()``; returns the migrations root."""
    for name in OPTIONAL_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("RESOURCE_ARN", RESOURCE_ARN)
    monkeypatch.setenv("SECRET_ARN", SECRET_ARN)
    monkeypatch.setenv("DATABASE_NAME", "app")
    monkeypatch.setenv("MIGRATIONS_DIR", str(migrations_root))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    return migrations_root


@pytest.fixture
def patched_client(monkeypatch: pytest.MonkeyPatch, fake_api: FakeDataApi) -> FakeDataApi:
    """Make every ``StatementClient.from_settings`` use ``fake_api``."""
    monkeypatch.setattr(
        StatementClient,
        "from_settings",
        classmethod(lambda cls, settings: cls(fake_api)),
    )
    return fake_api
