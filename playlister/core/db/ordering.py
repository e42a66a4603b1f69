"""
Shared ORDER BY clause helpers for RecordStore and Associations queries.

Important:
- The returned strings are intended to be *static SQL fragments* selected
  from a small whitelist. Do NOT concatenate user input into ORDER BY.
"""

from __future__ import annotations

from typing import Literal

RecordsOrderBy = Literal[
    "id",
    "name",
]


def records_order_clause(order_by: str, alias: str | None = None) -> str:
    """
    Return an ORDER BY clause for record list queries.

    "id" is creation order. Unknown values fall back to it.
    """
    prefix = f"{alias}." if alias else ""
    if order_by == "name":
        return f"ORDER BY {prefix}name COLLATE NOCASE ASC, {prefix}id ASC"
    return f"ORDER BY {prefix}id ASC"
