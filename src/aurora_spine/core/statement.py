"""Statement value object."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Statement:
    """A single executable SQL command with optional named parameters.

    ``sql`` never contains a top-level ``;`` terminator: the Data API runs
    exactly one statement per call.

    Attributes:
        sql: Statement text.
        params: Named parameters (``:name`` placeholders in ``sql``).
        source: Migration unit the statement came from, if any.
        index: Position within ``source`` (0-based, file order).
    """

    sql: str
    params: dict[str, Any] = field(default_factory=dict)
    source: str | None = None
    index: int | None = None

    def preview(self, width: int = 120) -> str:
        """Single-line preview for logs and CLI tables."""
        flat = " ".join(self.sql.split())
        return flat if len(flat) <= width else flat[: width - 3] + "..."


__all__ = ["Statement"]
