"""Tests for the Data API value codec."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

import pytest

from aurora_spine.core.data_api.params import (
    decode_field,
    encode_value,
    records_to_rows,
    to_sql_parameters,
)


class TestEncodeValue:
    @pytest.mark.parametrize(
        ("value", "field", "hint"),
        [
            (None, {"isNull": True}, None),
            (True, {"booleanValue": True}, None),
            (7, {"longValue": 7}, None),
            (1.5, {"doubleValue": 1.5}, None),
            ("x", {"stringValue": "x"}, None),
            (b"\x00\x01", {"blobValue": b"\x00\x01"}, None),
            (Decimal("12.50"), {"stringValue": "12.50"}, "DECIMAL"),
            (datetime(2024, 1, 2, 3, 4, 5), {"stringValue": "2024-01-02 03:04:05"}, "TIMESTAMP"),
            (date(2024, 1, 2), {"stringValue": "2024-01-02"}, "DATE"),
            (
                UUID("12345678-1234-5678-1234-567812345678"),
                {"stringValue": "12345678-1234-5678-1234-567812345678"},
                "UUID",
            ),
            ({"a": 1}, {"stringValue": '{"a": 1}'}, "JSON"),
        ],
    )
    def test_encoding_table(self, value, field, hint):
        assert encode_value(value) == (field, hint)

    def test_bool_is_not_long(self):
        assert encode_value(False) == ({"booleanValue": False}, None)

    def test_microseconds_kept(self):
        field, _ = encode_value(datetime(2024, 1, 2, 3, 4, 5, 120))
        assert field == {"stringValue": "2024-01-02 03:04:05.000120"}

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            encode_value(object())


class TestToSqlParameters:
    def test_preserves_order_and_hints(self):
        params = to_sql_parameters({"email": "a@b.c", "amount": Decimal("1.0")})
        assert params == [
            {"name": "email", "value": {"stringValue": "a@b.c"}},
            {"name": "amount", "value": {"stringValue": "1.0"}, "typeHint": "DECIMAL"},
        ]

    def test_none_means_no_parameters(self):
        assert to_sql_parameters(None) == []


class TestDecode:
    def test_scalar_fields(self):
        assert decode_field({"isNull": True}) is None
        assert decode_field({"longValue": 3}) == 3
        assert decode_field({"stringValue": "x"}) == "x"

    def test_type_name_refines_strings(self):
        assert decode_field({"stringValue": "1.25"}, "numeric") == Decimal("1.25")
        assert decode_field({"stringValue": '{"a": [1]}'}, "jsonb") == {"a": [1]}
        assert decode_field({"stringValue": "2024-01-02"}, "date") == date(2024, 1, 2)
        assert decode_field({"stringValue": "2024-01-02 03:04:05.5"}, "timestamp") == datetime(
            2024, 1, 2, 3, 4, 5, 500000
        )

    def test_arrays(self):
        assert decode_field({"arrayValue": {"longValues": [1, 2]}}) == [1, 2]
        nested = {"arrayValue": {"arrayValues": [{"stringValues": ["a"]}, {"stringValues": ["b"]}]}}
        assert decode_field(nested) == [["a"], ["b"]]

    def test_records_to_rows(self):
        response = {
            "columnMetadata": [
                {"label": "name", "typeName": "text"},
                {"label": "email", "typeName": "text"},
            ],
            "records": [
                [{"stringValue": "u1"}, {"stringValue": "u1@test.com"}],
                [{"stringValue": "u2"}, {"isNull": True}],
            ],
            "numberOfRecordsUpdated": 0,
        }
        rows = records_to_rows(response)
        assert rows.columns == ["name", "email"]
        assert rows.rows == [
            {"name": "u1", "email": "u1@test.com"},
            {"name": "u2", "email": None},
        ]
        assert rows.first() == {"name": "u1", "email": "u1@test.com"}
        assert len(rows) == 2

    def test_update_count_only(self):
        rows = records_to_rows({"numberOfRecordsUpdated": 3})
        assert rows.rows == []
        assert rows.records_updated == 3
        assert rows.first() is None
