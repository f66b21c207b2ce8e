"""Tests for DatabaseResetCoordinator."""

import pytest

from aurora_spine.core.errors import InvalidConfigError, StatementError
from aurora_spine.core.migrations import DatabaseResetCoordinator, MigrationLoader
from aurora_spine.core.migrations.reset import TERMINATE_CONNECTIONS_SQL
from tests._support import write_migration


@pytest.fixture
def coordinator(client):
    return DatabaseResetCoordinator(client, MigrationLoader())


def _admin_calls(fake_api):
    return [c for c in fake_api.calls if c.kwargs.get("database") == "postgres"]


class TestReset:
    def test_recreates_and_migrates(self, coordinator, admin_endpoint, endpoint, fake_api, migrations_root):
        result = coordinator.reset(admin_endpoint, endpoint, migrations_root)

        assert result.success
        assert result.admin_steps == ["terminate_connections", "drop_database", "create_database"]
        assert result.run.statements_applied == 2
        assert fake_api.tables("app") == ["User"]
        assert [row["column_name"] for row in result.schema] == ["name", "email"]
        assert result.warnings == []

    def test_admin_statements_use_admin_endpoint_without_transaction(
        self, coordinator, admin_endpoint, endpoint, fake_api, migrations_root
    ):
        coordinator.reset(admin_endpoint, endpoint, migrations_root)
        admin = _admin_calls(fake_api)
        assert [c.sql for c in admin] == [
            TERMINATE_CONNECTIONS_SQL,
            'DROP DATABASE IF EXISTS "app"',
            'CREATE DATABASE "app"',
        ]
        assert all("transactionId" not in c.kwargs for c in admin)
        assert admin[0].kwargs["parameters"] == [{"name": "database", "value": {"stringValue": "app"}}]

    def test_existing_data_is_discarded(self, client, coordinator, admin_endpoint, endpoint, fake_api, migrations_root):
        client.execute(endpoint, None, "CREATE TABLE leftovers (id INT)")
        coordinator.reset(admin_endpoint, endpoint, migrations_root)
        assert fake_api.tables("app") == ["User"]

    def test_missing_target_is_created(self, coordinator, admin_endpoint, endpoint, fake_api, migrations_root):
        fake_api.execute_statement(**admin_endpoint.request_args(), sql='DROP DATABASE "app"')
        result = coordinator.reset(admin_endpoint, endpoint, migrations_root)
        assert result.success
        assert fake_api.has_database("app")

    def test_open_transactions_on_target_are_terminated(
        self, client, coordinator, admin_endpoint, endpoint, migrations_root
    ):
        client.begin(endpoint)
        result = coordinator.reset(admin_endpoint, endpoint, migrations_root)
        assert result.connections_terminated == 1
        assert result.success

    def test_reset_twice_is_idempotent(self, coordinator, admin_endpoint, endpoint, fake_api, migrations_root):
        first = coordinator.reset(admin_endpoint, endpoint, migrations_root)
        second = coordinator.reset(admin_endpoint, endpoint, migrations_root)
        assert first.success and second.success
        assert first.run.units_applied == second.run.units_applied
        assert fake_api.tables("app") == ["User"]
        assert fake_api.query("app", 'SELECT COUNT(*) FROM "User"') == [(0,)]


class TestResetFailures:
    def test_drop_failure_aborts_before_migrations(
        self, coordinator, admin_endpoint, endpoint, fake_api, migrations_root
    ):
        fake_api.install_fault(
            "execute_statement", code="BadRequestException", message="permission denied", match="DROP DATABASE"
        )
        result = coordinator.reset(admin_endpoint, endpoint, migrations_root)
        assert not result.success
        assert result.admin_steps == ["terminate_connections"]
        assert isinstance(result.error, StatementError)
        assert result.run is None
        assert fake_api.count("begin_transaction") == 0

    def test_admin_endpoint_must_differ_from_target(self, coordinator, endpoint, fake_api, migrations_root):
        result = coordinator.reset(endpoint, endpoint, migrations_root)
        assert isinstance(result.error, InvalidConfigError)
        assert fake_api.calls == []

    def test_migration_failure_leaves_empty_database(
        self, coordinator, admin_endpoint, endpoint, fake_api, migrations_root
    ):
        write_migration(migrations_root, "20240301000000_broken", "SELECT * FROM nowhere;")
        result = coordinator.reset(admin_endpoint, endpoint, migrations_root)
        assert not result.success
        assert result.error is None
        assert result.run.failure.unit == "20240301000000_broken"
        assert fake_api.has_database("app")
        assert fake_api.tables("app") == []
        assert result.schema is None

    def test_schema_check_failure_is_a_warning(self, coordinator, admin_endpoint, endpoint, fake_api, migrations_root):
        fake_api.install_fault("execute_statement", code="BadRequestException", match="information_schema")
        result = coordinator.reset(admin_endpoint, endpoint, migrations_root)
        assert result.success
        assert len(result.warnings) == 1
        assert "Schema check" in result.warnings[0]

    def test_schema_check_can_be_disabled(self, client, admin_endpoint, endpoint, fake_api, migrations_root):
        coordinator = DatabaseResetCoordinator(client, schema_check_table="")
        result = coordinator.reset(admin_endpoint, endpoint, migrations_root)
        assert result.success
        assert result.schema is None
        assert not any("information_schema" in (sql or "") for sql in fake_api.executed_sql())

    def test_to_dict(self, coordinator, admin_endpoint, endpoint, migrations_root):
        d = coordinator.reset(admin_endpoint, endpoint, migrations_root).to_dict()
        assert d["success"] is True
        assert d["database"] == "app"
        assert d["migrations"]["committed"] is True
        assert d["schema"][0]["column_name"] == "name"
