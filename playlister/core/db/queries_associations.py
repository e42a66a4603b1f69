"""
Association queries used by `playlister.core.associations.Associations`.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return rows.
- Has-many lookups filter the child table by its FK column.
- Through lookups join bridge rows to their targets, one row per distinct
  target, ordered by the first bridge row that reached it.

Important:
- Table and column names come only from `EntityMeta`; FK names are checked
  against `EntityMeta.foreign_keys` by the caller before they get here.
"""

from __future__ import annotations

import aiosqlite

from playlister.core.db.models import EntityMeta
from playlister.core.db.ordering import RecordsOrderBy, records_order_clause


async def select_children(
    conn: aiosqlite.Connection,
    child: EntityMeta,
    fk_field: str,
    owner_id: int,
    *,
    order_by: RecordsOrderBy = "id",
) -> list[aiosqlite.Row]:
    order_clause = records_order_clause(order_by)
    cursor = await conn.execute(
        f"""
        SELECT {child.select_list}
        FROM {child.table}
        WHERE {fk_field} = ?
        {order_clause};
        """,
        (int(owner_id),),
    )
    return list(await cursor.fetchall())


async def count_children(
    conn: aiosqlite.Connection, child: EntityMeta, fk_field: str, owner_id: int
) -> int:
    cursor = await conn.execute(
        f"SELECT COUNT(*) AS c FROM {child.table} WHERE {fk_field} = ?;",
        (int(owner_id),),
    )
    row = await cursor.fetchone()
    return int(row["c"]) if row is not None else 0


async def select_through(
    conn: aiosqlite.Connection,
    bridge: EntityMeta,
    bridge_fk_to_owner: str,
    target: EntityMeta,
    bridge_fk_to_target: str,
    owner_id: int,
) -> list[aiosqlite.Row]:
    """
    Return one row per distinct target id reached from `owner_id`.

    Each row carries `target_ref` (the FK value on the bridge) next to the
    target columns. A LEFT JOIN keeps dangling references visible: their
    target `id` is NULL.
    """
    target_columns = ", ".join(f"t.{c}" for c in ("id",) + target.columns)
    cursor = await conn.execute(
        f"""
        SELECT b.target_ref, {target_columns}
        FROM (
            SELECT {bridge_fk_to_target} AS target_ref, MIN(id) AS first_seen
            FROM {bridge.table}
            WHERE {bridge_fk_to_owner} = ?
              AND {bridge_fk_to_target} IS NOT NULL
            GROUP BY {bridge_fk_to_target}
        ) b
        LEFT JOIN {target.table} t ON t.id = b.target_ref
        ORDER BY b.first_seen ASC;
        """,
        (int(owner_id),),
    )
    return list(await cursor.fetchall())
