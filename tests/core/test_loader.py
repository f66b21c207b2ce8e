"""Tests for migration discovery and statement splitting."""

import textwrap

import pytest

from aurora_spine.core.errors import MigrationLoadError
from aurora_spine.core.migrations import MigrationLoader, split_statements
from tests._support import write_migration


# ── split_statements ─────────────────────────────────────────────────────


class TestSplitStatements:
    def test_splits_on_semicolons_in_order(self):
        sql = 'CREATE TABLE "A" ("id" INT);CREATE TABLE "B" ("id" INT);CREATE INDEX "i" ON "A"("id");'
        statements = split_statements(sql, source="u1")
        assert [s.sql for s in statements] == [
            'CREATE TABLE "A" ("id" INT)',
            'CREATE TABLE "B" ("id" INT)',
            'CREATE INDEX "i" ON "A"("id")',
        ]
        assert [s.index for s in statements] == [0, 1, 2]
        assert {s.source for s in statements} == {"u1"}

    def test_drops_empty_and_comment_only_fragments(self):
        sql = textwrap.dedent("""\
            -- CreateTable
            CREATE TABLE "User" ("name" TEXT);

            ;
            -- trailing comment only
        """)
        statements = split_statements(sql)
        assert len(statements) == 1
        assert statements[0].sql.endswith('CREATE TABLE "User" ("name" TEXT)')

    def test_no_fragment_contains_a_semicolon(self):
        sql = "SELECT 1;SELECT 2;;SELECT 3"
        assert all(";" not in s.sql for s in split_statements(sql))

    def test_empty_input(self):
        assert split_statements("") == []
        assert split_statements("   \n-- nothing\n") == []

    def test_quoted_semicolon_rejected(self):
        sql = "INSERT INTO t VALUES ('a;b');"
        with pytest.raises(MigrationLoadError) as exc_info:
            split_statements(sql, source="20240101_seed")
        assert exc_info.value.context.migration == "20240101_seed"
        assert exc_info.value.context.statement_index == 0

    def test_dollar_quoted_body_rejected(self):
        sql = "CREATE FUNCTION f() RETURNS int AS $$ SELECT 1; $$ LANGUAGE sql;"
        with pytest.raises(MigrationLoadError):
            split_statements(sql)

    def test_apostrophe_in_comment_is_ignored(self):
        sql = "-- don't panic\nCREATE TABLE t (id INT);"
        assert len(split_statements(sql)) == 1

    def test_double_dash_inside_literal_is_not_a_comment(self):
        statements = split_statements("INSERT INTO t VALUES ('a--b');")
        assert [s.sql for s in statements] == ["INSERT INTO t VALUES ('a--b')"]

    def test_apostrophe_in_block_comment_is_ignored(self):
        sql = "/* it's the seed */ INSERT INTO t VALUES ('x');"
        assert len(split_statements(sql)) == 1

    def test_escaped_quote_in_literal(self):
        assert len(split_statements("INSERT INTO t VALUES ('it''s');")) == 1

    def test_dollar_sign_inside_literal_is_allowed(self):
        assert len(split_statements("INSERT INTO t VALUES ('$tag$');")) == 1

    def test_semicolon_in_block_comment_rejected(self):
        sql = "/* first; second */ CREATE TABLE t (id INT);"
        with pytest.raises(MigrationLoadError, match="block comment"):
            split_statements(sql)

    def test_lenient_mode_splits_anyway(self):
        sql = "INSERT INTO t VALUES ('a;b');"
        assert len(split_statements(sql, strict=False)) == 2


# ── Discovery ────────────────────────────────────────────────────────────


class TestDiscovery:
    def test_lexicographic_order_excluding_lock_file(self, tmp_path):
        write_migration(tmp_path, "20240301000000_c", "SELECT 3;")
        write_migration(tmp_path, "20240101000000_a", "SELECT 1;")
        write_migration(tmp_path, "20240201000000_b", "SELECT 2;")
        (tmp_path / "migration_lock.toml").write_text('provider = "postgresql"\n')

        units = MigrationLoader().discover(tmp_path)
        assert units.names() == [
            "20240101000000_a",
            "20240201000000_b",
            "20240301000000_c",
        ]

    def test_plain_files_are_skipped(self, tmp_path):
        write_migration(tmp_path, "20240101000000_a", "SELECT 1;")
        (tmp_path / "README.md").write_text("notes")
        assert MigrationLoader().discover(tmp_path).names() == ["20240101000000_a"]

    def test_custom_lock_file_name(self, tmp_path):
        write_migration(tmp_path, "20240101000000_a", "SELECT 1;")
        write_migration(tmp_path, "locked", "SELECT 2;")
        assert MigrationLoader(lock_file_name="locked").discover(tmp_path).names() == [
            "20240101000000_a"
        ]

    def test_missing_root(self, tmp_path):
        with pytest.raises(MigrationLoadError):
            MigrationLoader().discover(tmp_path / "nope")

    def test_missing_migration_file(self, tmp_path):
        (tmp_path / "20240101000000_empty").mkdir()
        loader = MigrationLoader()
        unit = loader.discover(tmp_path)[0]
        with pytest.raises(MigrationLoadError) as exc_info:
            loader.statements(unit)
        assert exc_info.value.context.migration == "20240101000000_empty"

    def test_set_is_restartable(self, tmp_path):
        write_migration(tmp_path, "20240101000000_a", "SELECT 1;")
        units = MigrationLoader().discover(tmp_path)
        assert [u.name for u in units] == [u.name for u in units]
        write_migration(tmp_path, "20240201000000_b", "SELECT 2;")
        assert len(units) == 2

    def test_iter_statements_in_replay_order(self, migrations_root):
        pairs = list(MigrationLoader().iter_statements(migrations_root))
        assert [(unit.name, s.index) for unit, s in pairs] == [
            ("20240101000000_init", 0),
            ("20240215093000_user_email_unique", 0),
        ]
        assert pairs[0][1].sql.startswith("-- CreateTable")
