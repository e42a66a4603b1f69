"""
Generic record queries used by `playlister.core.store.RecordStore`.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  plus an `EntityMeta` and return rows or ids.
- These functions assume `conn.row_factory = aiosqlite.Row`.
- Nothing here commits; transaction boundaries belong to the store.

Important:
- Table and column names come only from `EntityMeta` (a static whitelist).
  Values are always bound as parameters.
"""

from __future__ import annotations

from typing import Any, Mapping

import aiosqlite

from playlister.core.db.models import EntityMeta
from playlister.core.db.ordering import RecordsOrderBy, records_order_clause


def _where_clause(predicate: Mapping[str, Any]) -> tuple[str, list[Any]]:
    """Build an equality WHERE clause; None values compare with IS NULL."""
    parts: list[str] = []
    params: list[Any] = []
    for column, value in predicate.items():
        if value is None:
            parts.append(f"{column} IS NULL")
        else:
            parts.append(f"{column} = ?")
            params.append(value)
    return " AND ".join(parts), params


async def insert_record(
    conn: aiosqlite.Connection, meta: EntityMeta, values: Mapping[str, Any]
) -> int:
    """Insert one row and return its new id."""
    columns = list(values)
    placeholders = ", ".join("?" for _ in columns)
    cursor = await conn.execute(
        f"INSERT INTO {meta.table} ({', '.join(columns)}) VALUES ({placeholders});",
        [values[c] for c in columns],
    )
    return int(cursor.lastrowid)


async def insert_record_if_absent(
    conn: aiosqlite.Connection, meta: EntityMeta, values: Mapping[str, Any]
) -> bool:
    """
    Conditional insert: skip silently when a unique constraint already holds
    the values. Returns True if a row was inserted.
    """
    columns = list(values)
    placeholders = ", ".join("?" for _ in columns)
    cursor = await conn.execute(
        f"""
        INSERT INTO {meta.table} ({', '.join(columns)})
        VALUES ({placeholders})
        ON CONFLICT DO NOTHING;
        """,
        [values[c] for c in columns],
    )
    return cursor.rowcount > 0


async def select_records(
    conn: aiosqlite.Connection,
    meta: EntityMeta,
    predicate: Mapping[str, Any] | None = None,
    *,
    order_by: RecordsOrderBy = "id",
    limit: int | None = None,
) -> list[aiosqlite.Row]:
    sql = f"SELECT {meta.select_list} FROM {meta.table}"
    params: list[Any] = []
    if predicate:
        where, params = _where_clause(predicate)
        sql += f" WHERE {where}"
    sql += " " + records_order_clause(order_by)
    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))

    cursor = await conn.execute(sql + ";", params)
    return list(await cursor.fetchall())


async def select_record_by_id(
    conn: aiosqlite.Connection, meta: EntityMeta, record_id: int
) -> aiosqlite.Row | None:
    cursor = await conn.execute(
        f"SELECT {meta.select_list} FROM {meta.table} WHERE id = ?;",
        (int(record_id),),
    )
    return await cursor.fetchone()


async def update_record(
    conn: aiosqlite.Connection, meta: EntityMeta, record_id: int, values: Mapping[str, Any]
) -> int:
    """Update the given columns of one row. Returns the number of rows touched."""
    assignments = ", ".join(f"{c} = ?" for c in values)
    cursor = await conn.execute(
        f"UPDATE {meta.table} SET {assignments} WHERE id = ?;",
        [*values.values(), int(record_id)],
    )
    return cursor.rowcount


async def count_records(conn: aiosqlite.Connection, meta: EntityMeta) -> int:
    cursor = await conn.execute(f"SELECT COUNT(*) AS c FROM {meta.table};")
    row = await cursor.fetchone()
    return int(row["c"]) if row is not None else 0
