"""
Tests for the aurora-spine CLI.
"""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from aurora_spine import __version__
from aurora_spine.cli.app import app
from aurora_spine.core.errors import StatementError

runner = CliRunner()


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "aurora-spine" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"aurora-spine {__version__}" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)

    def test_groups_registered(self):
        assert "migrate" in runner.invoke(app, ["db", "--help"]).output
        assert "plan" in runner.invoke(app, ["migrations", "--help"]).output


# ── migrations ───────────────────────────────────────────────────────────


class TestMigrationsCommands:
    def test_plan_json(self, migrations_root):
        result = runner.invoke(app, ["migrations", "plan", "--dir", str(migrations_root), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [u["unit"] for u in data["units"]] == [
            "20240101000000_init",
            "20240215093000_user_email_unique",
        ]
        assert data["total_statements"] == 2

    def test_plan_table(self, migrations_root):
        result = runner.invoke(app, ["migrations", "plan", "--dir", str(migrations_root), "--show-sql"])
        assert result.exit_code == 0, result.output
        assert "20240101000000_init" in result.output
        assert "User_email_key" in result.output

    def test_plan_missing_dir(self, tmp_path):
        result = runner.invoke(app, ["migrations", "plan", "--dir", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "MigrationLoadError" in result.output

    def test_split_json(self, tmp_path):
        sql_file = tmp_path / "combined.sql"
        sql_file.write_text("CREATE TABLE a (id INT);\nCREATE TABLE b (id INT);\n")
        result = runner.invoke(app, ["migrations", "split", str(sql_file), "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == ["CREATE TABLE a (id INT)", "CREATE TABLE b (id INT)"]

    def test_split_rejects_quoted_semicolon(self, tmp_path):
        sql_file = tmp_path / "seed.sql"
        sql_file.write_text("INSERT INTO a VALUES ('x;y');\n")
        result = runner.invoke(app, ["migrations", "split", str(sql_file)])
        assert result.exit_code == 1
        assert "MigrationLoadError" in result.output

        lenient = runner.invoke(app, ["migrations", "split", str(sql_file), "--no-strict", "--json"])
        assert lenient.exit_code == 0
        assert len(json.loads(lenient.stdout)) == 2


# ── db ───────────────────────────────────────────────────────────────────


class TestDbCommands:
    def test_migrate_json(self, aurora_env, patched_client):
        result = runner.invoke(app, ["db", "migrate", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["committed"] is True
        assert patched_client.tables("app") == ["User"]

    def test_migrate_dry_run(self, aurora_env, patched_client):
        result = runner.invoke(app, ["db", "migrate", "--dry-run", "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["dry_run"] is True
        assert patched_client.calls == []

    def test_migrate_failure_exits_1(self, aurora_env, patched_client):
        unit = aurora_env / "20240301000000_broken"
        unit.mkdir()
        (unit / "migration.sql").write_text("SELECT * FROM nowhere;")
        result = runner.invoke(app, ["db", "migrate"])
        assert result.exit_code == 1
        assert "StatementError" in result.output

    def test_missing_config_exits_1(self, aurora_env, patched_client, monkeypatch):
        monkeypatch.delenv("DATABASE_NAME")
        result = runner.invoke(app, ["db", "migrate"])
        assert result.exit_code == 1
        assert "DATABASE_NAME" in result.output
        assert patched_client.calls == []

    def test_reset_requires_confirmation(self, aurora_env, patched_client):
        result = runner.invoke(app, ["db", "reset"], input="n\n")
        assert result.exit_code == 1
        assert patched_client.calls == []

    def test_reset_yes(self, aurora_env, patched_client):
        result = runner.invoke(app, ["db", "reset", "--yes", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["success"] is True
        assert data["admin_steps"][-1] == "create_database"

    def test_users(self, aurora_env, patched_client):
        assert runner.invoke(app, ["db", "migrate"]).exit_code == 0
        result = runner.invoke(app, ["db", "users", "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == []

    def test_users_table_empty(self, aurora_env, patched_client):
        runner.invoke(app, ["db", "migrate"])
        result = runner.invoke(app, ["db", "users"])
        assert result.exit_code == 0
        assert "No items" in result.output


# ── logging after an invocation ──────────────────────────────────────────


class TestLoggingOutlivesInvocation:
    def test_failure_logged_after_runner_streams_closed(self, aurora_env, patched_client, client, endpoint):
        result = runner.invoke(app, ["db", "migrate"])
        assert result.exit_code == 0, result.output

        with pytest.raises(StatementError):
            client.execute(endpoint, None, "SELECT * FROM nowhere")

    def test_second_failing_invocation_reports_its_error(self, aurora_env, patched_client):
        assert runner.invoke(app, ["db", "migrate"]).exit_code == 0
        unit = aurora_env / "20240301000000_broken"
        unit.mkdir()
        (unit / "migration.sql").write_text("SELECT * FROM nowhere;")

        result = runner.invoke(app, ["db", "migrate"])
        assert result.exit_code == 1
        assert "StatementError" in result.output
