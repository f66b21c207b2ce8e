"""
Test support utilities for aurora-spine tests.

``fake_data_api`` provides an in-process stand-in for the boto3 ``rds-data``
client so the transactional flows run end to end without AWS.
"""

from __future__ import annotations

from pathlib import Path

RESOURCE_ARN = "arn:aws:rds:us-east-1:123456789012:cluster:aurora-spine-test"
SECRET_ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:aurora-spine-test"


def write_migration(root: Path, name: str, sql: str) -> Path:
    """Create ``root/name/migration.sql`` with ``sql`` and return the unit dir."""
    unit = root / name
    unit.mkdir(parents=True, exist_ok=True)
    (unit / "migration.sql").write_text(sql, encoding="utf-8")
    return unit
