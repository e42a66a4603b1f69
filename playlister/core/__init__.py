"""
Core domain package.

This package contains the record store, the association resolver and the
catalog accessors built on top of them. It has no UI or CLI concerns.

We intentionally keep exports minimal; consumers should usually import from the
specific module they need (e.g. `playlister.core.catalog`).
"""

from __future__ import annotations

__all__: list[str] = [
    "CoreError",
    "DanglingReferenceError",
    "NotFoundError",
    "PersistenceError",
    "StoreNotOpenError",
    "ValidationError",
]


class CoreError(Exception):
    """Base class for core-layer exceptions."""


class ValidationError(CoreError):
    """Raised when input to create/save/link/find is malformed."""


class NotFoundError(CoreError):
    """Raised when an entity (artist/genre/song) cannot be found by id."""


class DanglingReferenceError(CoreError):
    """Raised when a non-null foreign key points at a row that does not exist."""

    def __init__(self, table: str, fk_field: str, value: int) -> None:
        super().__init__(f"{fk_field}={value} references a missing row in {table}")
        self.table = table
        self.fk_field = fk_field
        self.value = value


class PersistenceError(CoreError):
    """Raised when the store rejects a write (constraint violation, I/O failure)."""


class StoreNotOpenError(CoreError):
    """Raised when an operation runs on a store that has not been opened."""
