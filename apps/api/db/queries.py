"""Typed query functions for the reports table."""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from enum import Enum

from db.engine import get_pool

_COLUMNS = (
    "id", "submitter_id", "hazard_type", "severity", "title", "description",
    "immediate_actions", "location_description", "latitude", "longitude",
    "reporter_name", "contact_number", "reporter_email", "media_refs",
    "status", "created_at", "updated_at",
)
_UPDATABLE = set(_COLUMNS) - {"id", "submitter_id", "created_at"}


def _uuid_or_none(report_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(report_id)
    except (ValueError, TypeError):
        return None


def _encode(column: str, value):
    if column == "media_refs":
        return json.dumps(value or [])
    if column == "id":
        return uuid.UUID(value)
    if isinstance(value, Enum):
        return value.value
    return value


async def insert_report(fields: dict) -> dict:
    pool = get_pool()
    placeholders = ", ".join(
        f"${i}::jsonb" if col == "media_refs" else f"${i}" for i, col in enumerate(_COLUMNS, start=1)
    )
    row = await pool.fetchrow(
        f"INSERT INTO reports ({', '.join(_COLUMNS)}) VALUES ({placeholders}) RETURNING *",
        *(_encode(col, fields.get(col)) for col in _COLUMNS),
    )
    return dict(row)


async def get_report(report_id: str) -> dict | None:
    rid = _uuid_or_none(report_id)
    if rid is None:
        return None
    pool = get_pool()
    row = await pool.fetchrow("SELECT * FROM reports WHERE id = $1", rid)
    return dict(row) if row else None


async def update_report(report_id: str, fields: dict) -> dict | None:
    rid = _uuid_or_none(report_id)
    if rid is None:
        return None
    columns = [col for col in fields if col in _UPDATABLE]
    if not columns:
        return await get_report(report_id)

    assignments = ", ".join(
        f"{col} = ${i}::jsonb" if col == "media_refs" else f"{col} = ${i}"
        for i, col in enumerate(columns, start=1)
    )
    pool = get_pool()
    row = await pool.fetchrow(
        f"UPDATE reports SET {assignments} WHERE id = ${len(columns) + 1} RETURNING *",
        *(_encode(col, fields[col]) for col in columns),
        rid,
    )
    return dict(row) if row else None


async def delete_report(report_id: str) -> bool:
    rid = _uuid_or_none(report_id)
    if rid is None:
        return False
    pool = get_pool()
    result = await pool.execute("DELETE FROM reports WHERE id = $1", rid)
    return result.endswith(" 1")


async def list_reports(
    *,
    since: datetime | None = None,
    submitter_id: str | None = None,
    severity: str | None = None,
    status: str | None = None,
    limit: int | None = None,
) -> list[dict]:
    conditions: list[str] = []
    params: list = []

    for column, op, value in (
        ("created_at", ">=", since),
        ("submitter_id", "=", submitter_id),
        ("severity", "=", severity),
        ("status", "=", status),
    ):
        if value is not None:
            params.append(value)
            conditions.append(f"{column} {op} ${len(params)}")

    sql = "SELECT * FROM reports"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    sql += " ORDER BY created_at DESC, id"
    if limit is not None:
        params.append(limit)
        sql += f" LIMIT ${len(params)}"

    pool = get_pool()
    rows = await pool.fetch(sql, *params)
    return [dict(r) for r in rows]
