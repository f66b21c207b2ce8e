"""Data API value codec.

The Data API does not take plain values: every parameter is a tagged
``Field`` (``{"longValue": 1}``, ``{"stringValue": "x"}``, ...) optionally
accompanied by a ``typeHint`` so PostgreSQL receives the right type, and
every returned cell is a tagged ``Field`` as well. This module converts in
both directions.

Encoding table::

    None              -> {"isNull": True}
    bool              -> {"booleanValue": ...}
    int               -> {"longValue": ...}
    float             -> {"doubleValue": ...}
    Decimal           -> {"stringValue": ...}  typeHint DECIMAL
    str               -> {"stringValue": ...}
    bytes/bytearray   -> {"blobValue": ...}
    datetime          -> {"stringValue": "YYYY-MM-DD HH:MM:SS[.ffffff]"}  typeHint TIMESTAMP
    date              -> {"stringValue": "YYYY-MM-DD"}  typeHint DATE
    time              -> {"stringValue": "HH:MM:SS[.ffffff]"}  typeHint TIME
    UUID              -> {"stringValue": ...}  typeHint UUID
    dict / list       -> {"stringValue": <json>}  typeHint JSON
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

SqlParameter = dict[str, Any]

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _format_timestamp(value: datetime) -> str:
    text = value.strftime(_TIMESTAMP_FORMAT)
    if value.microsecond:
        text += f".{value.microsecond:06d}"
    return text


def encode_value(value: Any) -> tuple[dict[str, Any], str | None]:
    """Encode one Python value as a Data API ``Field`` and optional type hint."""
    if value is None:
        return {"isNull": True}, None
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}, None
    if isinstance(value, int):
        return {"longValue": value}, None
    if isinstance(value, float):
        return {"doubleValue": value}, None
    if isinstance(value, Decimal):
        return {"stringValue": str(value)}, "DECIMAL"
    if isinstance(value, str):
        return {"stringValue": value}, None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {"blobValue": bytes(value)}, None
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime):
        return {"stringValue": _format_timestamp(value)}, "TIMESTAMP"
    if isinstance(value, date):
        return {"stringValue": value.isoformat()}, "DATE"
    if isinstance(value, time):
        return {"stringValue": value.isoformat()}, "TIME"
    if isinstance(value, UUID):
        return {"stringValue": str(value)}, "UUID"
    if isinstance(value, (dict, list)):
        return {"stringValue": json.dumps(value, default=str)}, "JSON"
    raise TypeError(f"Cannot encode {type(value).__name__} as a Data API parameter")


def to_sql_parameters(params: Mapping[str, Any] | None) -> list[SqlParameter]:
    """Encode a name -> value mapping into the ``parameters`` list of ExecuteStatement.

    Example:
        >>> to_sql_parameters({"email": "a@b.c", "age": 3})
        [{'name': 'email', 'value': {'stringValue': 'a@b.c'}}, {'name': 'age', 'value': {'longValue': 3}}]
    """
    encoded: list[SqlParameter] = []
    for name, value in (params or {}).items():
        field_value, hint = encode_value(value)
        parameter: SqlParameter = {"name": name, "value": field_value}
        if hint is not None:
            parameter["typeHint"] = hint
        encoded.append(parameter)
    return encoded


def _decode_array(array: Mapping[str, Any]) -> list[Any]:
    if "arrayValues" in array:
        return [_decode_array(inner) for inner in array["arrayValues"]]
    for key in ("booleanValues", "longValues", "doubleValues", "stringValues"):
        if key in array:
            return list(array[key])
    return []


def _parse_timestamp(text: str) -> datetime:
    for fmt in (f"{_TIMESTAMP_FORMAT}.%f", _TIMESTAMP_FORMAT):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return datetime.fromisoformat(text)


def decode_field(cell: Mapping[str, Any], type_name: str | None = None) -> Any:
    """Decode one returned ``Field`` into a Python value.

    ``type_name`` is the column's ``typeName`` from the result metadata; it
    refines string-encoded values (numeric, json, timestamp, date).
    """
    if cell.get("isNull"):
        return None
    if "booleanValue" in cell:
        return cell["booleanValue"]
    if "longValue" in cell:
        return cell["longValue"]
    if "doubleValue" in cell:
        return cell["doubleValue"]
    if "blobValue" in cell:
        return bytes(cell["blobValue"])
    if "arrayValue" in cell:
        return _decode_array(cell["arrayValue"])
    if "stringValue" in cell:
        text = cell["stringValue"]
        kind = (type_name or "").lower()
        if kind in ("numeric", "decimal"):
            return Decimal(text)
        if kind in ("json", "jsonb"):
            return json.loads(text)
        if kind.startswith("timestamp"):
            return _parse_timestamp(text)
        if kind == "date":
            return date.fromisoformat(text)
        return text
    return None


@dataclass
class RowSet:
    """Decoded response of one ExecuteStatement call.

    Attributes:
        columns: Column labels, in select order.
        rows: One dict per returned record.
        records_updated: ``numberOfRecordsUpdated`` (0 for selects).
        generated_fields: ``generatedFields`` decoded, if the engine returned any.
    """

    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)
    records_updated: int = 0
    generated_fields: list[Any] = field(default_factory=list)

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None

    def __len__(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": self.columns,
            "rows": self.rows,
            "records_updated": self.records_updated,
        }


def records_to_rows(response: Mapping[str, Any]) -> RowSet:
    """Turn an ExecuteStatement response (with result metadata) into a :class:`RowSet`."""
    metadata = response.get("columnMetadata") or []
    columns = [col.get("label") or col.get("name") or f"column_{i}" for i, col in enumerate(metadata)]
    type_names = [col.get("typeName") for col in metadata]

    rows: list[dict[str, Any]] = []
    for record in response.get("records") or []:
        row: dict[str, Any] = {}
        for i, cell in enumerate(record):
            name = columns[i] if i < len(columns) else f"column_{i}"
            row[name] = decode_field(cell, type_names[i] if i < len(type_names) else None)
        rows.append(row)

    return RowSet(
        columns=columns,
        rows=rows,
        records_updated=response.get("numberOfRecordsUpdated", 0) or 0,
        generated_fields=[decode_field(cell) for cell in response.get("generatedFields") or []],
    )


__all__ = [
    "SqlParameter",
    "RowSet",
    "encode_value",
    "to_sql_parameters",
    "decode_field",
    "records_to_rows",
]
