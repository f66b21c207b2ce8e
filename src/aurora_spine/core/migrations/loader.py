"""Migration discovery and statement splitting.

On-disk layout::

    migrations/
        migration_lock.toml           <- sentinel, never executed
        20240101000000_init/
            migration.sql
        20240215093000_add_index/
            migration.sql

Units are the subdirectories of the root, replayed in ascending
lexicographic order of their names (the timestamp/sequence prefix makes that
chronological). Statements within a unit are replayed in file order.

Authoring constraint:
    The Data API executes one statement per call, so each ``migration.sql``
    is split on ``;``. The split is a plain delimiter split with no SQL
    parsing: a ``;`` inside a string literal, a comment, a quoted identifier
    or a function body (``$$ ... $$``) breaks it. Migration authors must not
    write such statements. :func:`split_statements` rejects fragments that
    show the usual symptoms (an unbalanced single quote, a dollar-quote
    marker) with :class:`MigrationLoadError` instead of sending half a
    statement to the database.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from aurora_spine.core.errors import MigrationLoadError
from aurora_spine.core.logging import get_logger
from aurora_spine.core.statement import Statement

logger = get_logger(__name__)

LOCK_FILE_NAME = "migration_lock.toml"
MIGRATION_FILE_NAME = "migration.sql"

_DOLLAR_QUOTE_RE = re.compile(r"\$[A-Za-z_0-9]*\$")


@dataclass(frozen=True)
class _Scan:
    code: str
    """Fragment with ``--`` and ``/* */`` comments removed."""
    bare: str
    """``code`` without the contents of quoted literals and identifiers."""
    open_token: str | None
    """Quote or comment opener still unterminated at the end of the fragment."""


def _scan(fragment: str) -> _Scan:
    code: list[str] = []
    bare: list[str] = []
    quote: str | None = None
    i, n = 0, len(fragment)
    while i < n:
        ch = fragment[i]
        if quote is not None:
            code.append(ch)
            if ch == quote:
                quote = None
            i += 1
            continue
        if fragment.startswith("--", i):
            end = fragment.find("\n", i)
            i = n if end == -1 else end
            continue
        if fragment.startswith("/*", i):
            end = fragment.find("*/", i + 2)
            if end == -1:
                return _Scan("".join(code), "".join(bare), "/*")
            code.append(" ")
            bare.append(" ")
            i = end + 2
            continue
        if ch in "'\"":
            quote = ch
        code.append(ch)
        bare.append(ch)
        i += 1
    return _Scan("".join(code), "".join(bare), quote)


_OPEN_TOKEN_PROBLEMS = {
    "'": "unbalanced single quote",
    '"': "unbalanced double quote",
    "/*": "unterminated block comment",
}


def _check_fragment(scan: _Scan, source: str | None, index: int) -> None:
    problem = _OPEN_TOKEN_PROBLEMS.get(scan.open_token or "")
    if problem is None and _DOLLAR_QUOTE_RE.search(scan.bare):
        problem = "dollar-quoted body"
    if problem:
        raise MigrationLoadError(
            f"Statement {index} of {source or '<sql>'} cannot be split on ';' ({problem}); "
            "migrations must not contain ';' inside literals, comments or function bodies"
        ).with_context(migration=source, statement_index=index)


def split_statements(
    raw_sql: str,
    *,
    source: str | None = None,
    strict: bool = True,
) -> list[Statement]:
    """Split combined SQL text into individually executable statements.

    Fragments that are empty, whitespace-only or only comments are
    discarded (this includes the fragment after the final ``;``).

    Args:
        raw_sql: Contents of a migration file.
        source: Unit name recorded on each statement.
        strict: Reject fragments that cannot be split safely.

    Example:
        >>> [s.sql for s in split_statements('CREATE TABLE a (id INT);CREATE INDEX i ON a(id);')]
        ['CREATE TABLE a (id INT)', 'CREATE INDEX i ON a(id)']
    """
    statements: list[Statement] = []
    for fragment in raw_sql.split(";"):
        scan = _scan(fragment)
        if not scan.code.strip() and not (strict and scan.open_token):
            continue
        index = len(statements)
        if strict:
            _check_fragment(scan, source, index)
        statements.append(Statement(sql=fragment.strip(), source=source, index=index))
    return statements


@dataclass(frozen=True)
class MigrationUnit:
    """One migration directory: a stable ordering key and its statements.

    The SQL file is read again on every :meth:`load`; keep the returned list.
    """

    name: str
    path: Path

    @property
    def sql_path(self) -> Path:
        return self.path / MIGRATION_FILE_NAME

    def read_sql(self) -> str:
        try:
            return self.sql_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise MigrationLoadError(
                f"Migration {self.name} has no {MIGRATION_FILE_NAME}", cause=exc
            ).with_context(migration=self.name) from exc
        except OSError as exc:
            raise MigrationLoadError(
                f"Could not read {self.sql_path}: {exc}", cause=exc
            ).with_context(migration=self.name) from exc

    def load(self, *, strict: bool = True) -> list[Statement]:
        """Read ``migration.sql`` and split it."""
        statements = split_statements(self.read_sql(), source=self.name, strict=strict)
        logger.debug("migration.unit_loaded", migration=self.name, statements=len(statements))
        return statements


class MigrationSet(Sequence[MigrationUnit]):
    """Ordered, restartable view of the units under a migrations root.

    The directory is listed again on every iteration, so a set can be
    replayed (for example by two consecutive resets) and reflects the
    current state of the disk.
    """

    def __init__(self, root: Path, lock_file_name: str = LOCK_FILE_NAME) -> None:
        self.root = root
        self.lock_file_name = lock_file_name

    def _list(self) -> list[MigrationUnit]:
        if not self.root.is_dir():
            raise MigrationLoadError(f"Migrations root not found: {self.root}")
        units = [
            MigrationUnit(name=entry.name, path=entry)
            for entry in self.root.iterdir()
            if entry.name != self.lock_file_name and entry.is_dir()
        ]
        return sorted(units, key=lambda unit: unit.name)

    def __iter__(self) -> Iterator[MigrationUnit]:
        return iter(self._list())

    def __len__(self) -> int:
        return len(self._list())

    def __getitem__(self, index):  # type: ignore[override]
        return self._list()[index]

    def names(self) -> list[str]:
        return [unit.name for unit in self._list()]

    def __repr__(self) -> str:
        return f"MigrationSet({str(self.root)!r})"


class MigrationLoader:
    """Discovers migration units and splits them into statements.

    Parameters
    ----------
    lock_file_name
        Sentinel file in the root that is never treated as a unit.
    strict
        Reject migration files that cannot be split safely on ``;``.

    Example::

        loader = MigrationLoader()
        for unit in loader.discover(Path("migrations")):
            for statement in loader.statements(unit):
                ...
    """

    def __init__(self, *, lock_file_name: str = LOCK_FILE_NAME, strict: bool = True) -> None:
        self.lock_file_name = lock_file_name
        self.strict = strict

    def discover(self, root: Path | str) -> MigrationSet:
        """Ordered sequence of units under ``root``.

        Raises:
            MigrationLoadError: ``root`` is not a directory.
        """
        root = Path(root)
        if not root.is_dir():
            raise MigrationLoadError(f"Migrations root not found: {root}")
        return MigrationSet(root, self.lock_file_name)

    def split(self, raw_sql: str, *, source: str | None = None) -> list[Statement]:
        return split_statements(raw_sql, source=source, strict=self.strict)

    def statements(self, unit: MigrationUnit) -> list[Statement]:
        return unit.load(strict=self.strict)

    def iter_statements(self, root: Path | str) -> Iterator[tuple[MigrationUnit, Statement]]:
        """Every statement of every unit, in replay order."""
        for unit in self.discover(root):
            for statement in self.statements(unit):
                yield unit, statement


__all__ = [
    "LOCK_FILE_NAME",
    "MIGRATION_FILE_NAME",
    "MigrationLoader",
    "MigrationSet",
    "MigrationUnit",
    "split_statements",
]
