"""
Record store: connection management and CRUD for artists, genres and songs.

Goals:
- Small, explicit and testable (records are plain frozen dataclasses).
- SQLite + aiosqlite, async/await friendly.
- One generic mapper driven by `EntityMeta` instead of one class per table.

Note:
- Records and entity metadata live in `playlister.core.db.models`
- Schema/migrations live in `playlister.core.db.schema`
- SQL lives in `playlister.core.db.queries_records`
- `RecordStore` is the public facade used by the rest of the codebase
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Mapping

import aiosqlite

from playlister.config import StoreConfig, check_pragmas
from playlister.core import NotFoundError, PersistenceError, StoreNotOpenError, ValidationError
from playlister.core.db import queries_records
from playlister.core.db.models import (
    EntityMeta,
    RecordT,
    meta_for,
    meta_of,
    record_values,
    row_to_record,
    validate_fields,
    validate_predicate,
)
from playlister.core.db.ordering import RecordsOrderBy
from playlister.core.db.schema import ensure_schema as ensure_schema_sql

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Async entity mapper over a single SQLite database.

    Usage:
        store = RecordStore("playlister.db")
        await store.open()
        await store.ensure_schema()
        artist = await store.create(Artist, {"name": "Drake"})
        await store.close()

    Notes:
    - This class is designed to be injected into `Associations` and `Catalog`.
    - Connections are not pooled; we keep a single connection.
    - Every write commits before returning. Writes are serialized by an
      asyncio lock so check-then-insert sequences cannot interleave.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        foreign_keys: bool = True,
        journal_mode: str = "WAL",
        synchronous: str = "NORMAL",
    ) -> None:
        journal_mode = journal_mode.upper()
        synchronous = synchronous.upper()
        check_pragmas(journal_mode, synchronous)

        self._db_path = str(db_path)
        self._foreign_keys = foreign_keys
        self._journal_mode = journal_mode
        self._synchronous = synchronous
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: StoreConfig) -> RecordStore:
        return cls(
            config.database,
            foreign_keys=config.foreign_keys,
            journal_mode=config.journal_mode,
            synchronous=config.synchronous,
        )

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def foreign_keys(self) -> bool:
        return self._foreign_keys

    async def open(self) -> None:
        if self._conn is not None:
            return
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        # Pragma values were checked against the whitelist in __init__.
        await self._conn.execute(f"PRAGMA foreign_keys = {'ON' if self._foreign_keys else 'OFF'};")
        await self._conn.execute(f"PRAGMA journal_mode = {self._journal_mode};")
        await self._conn.execute(f"PRAGMA synchronous = {self._synchronous};")
        logger.info("Opened record store at %s", self._db_path)

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None
        logger.info("Closed record store at %s", self._db_path)

    async def __aenter__(self) -> RecordStore:
        await self.open()
        await self.ensure_schema()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreNotOpenError("RecordStore is not open. Call await store.open() first.")
        return self._conn

    @property
    def connection(self) -> aiosqlite.Connection:
        """The open connection, for read-only query helpers."""
        return self._require_conn()

    async def ensure_schema(self) -> None:
        """Create or migrate schema to current version."""
        conn = self._require_conn()
        await ensure_schema_sql(conn)

    @contextlib.asynccontextmanager
    async def _writing(self, action: str) -> AsyncIterator[aiosqlite.Connection]:
        """
        Run a write under the store lock and commit it.

        SQLite errors are rolled back and surfaced as PersistenceError.
        """
        conn = self._require_conn()
        async with self._write_lock:
            try:
                yield conn
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                raise PersistenceError(f"{action} failed: {e}") from e
            except BaseException:
                await conn.rollback()
                raise

    # ===========================================================================
    # Reads
    # ===========================================================================

    async def _find(self, meta: EntityMeta, where: Mapping[str, Any]) -> Any:
        conn = self._require_conn()
        rows = await queries_records.select_records(conn, meta, where, limit=1)
        return row_to_record(meta, rows[0]) if rows else None

    async def find_by(self, kind: type[RecordT], predicate: Mapping[str, Any]) -> RecordT | None:
        """
        Return the first record (lowest id) whose columns equal `predicate`.

        A None value in the predicate matches NULL. Returns None if nothing matches.
        """
        meta = meta_for(kind)
        return await self._find(meta, validate_predicate(meta, predicate))

    async def get(self, kind: type[RecordT], record_id: int) -> RecordT:
        """Return the record with `record_id` or raise NotFoundError."""
        meta = meta_for(kind)
        conn = self._require_conn()
        row = await queries_records.select_record_by_id(conn, meta, record_id)
        if row is None:
            raise NotFoundError(f"No row with id={record_id} in {meta.table}")
        return row_to_record(meta, row)

    async def reload(self, record: RecordT) -> RecordT:
        """Re-read a record from the store."""
        return await self.get(type(record), record.id)

    async def all(
        self, kind: type[RecordT], *, order_by: RecordsOrderBy = "id"
    ) -> tuple[RecordT, ...]:
        meta = meta_for(kind)
        conn = self._require_conn()
        rows = await queries_records.select_records(conn, meta, order_by=order_by)
        return tuple(row_to_record(meta, r) for r in rows)

    async def count(self, kind: type) -> int:
        conn = self._require_conn()
        return await queries_records.count_records(conn, meta_for(kind))

    # ===========================================================================
    # Writes
    # ===========================================================================

    async def create(self, kind: type[RecordT], fields: Mapping[str, Any]) -> RecordT:
        """
        Insert a new record and return it with its freshly assigned id.

        Raises:
            ValidationError: unknown/missing/blank fields, or a caller-supplied id.
            PersistenceError: the store rejected the insert (unique or FK constraint).
        """
        meta = meta_for(kind)
        values = validate_fields(meta, fields)
        async with self._writing(f"Insert into {meta.table}") as conn:
            record_id = await queries_records.insert_record(conn, meta, values)

        logger.debug("Created %s id=%d", meta.table, record_id)
        return meta.kind(id=record_id, **values)

    async def find_or_create_by(
        self,
        kind: type[RecordT],
        predicate: Mapping[str, Any],
        defaults: Mapping[str, Any] | None = None,
    ) -> RecordT:
        """
        Return the first record matching `predicate`, creating it if absent.

        The new record is built from `defaults` overlaid with `predicate`.
        When the predicate is exactly one unique column (artist or genre name)
        the insert is a conditional insert followed by a re-read, so a
        concurrent creator (even in another process) never causes a second
        row. Other predicates rely on the in-process write lock.
        """
        meta = meta_for(kind)
        where = validate_predicate(meta, predicate)

        existing = await self._find(meta, where)
        if existing is not None:
            return existing

        # Only the create branch needs a full, id-free set of columns.
        values = validate_fields(meta, {**(defaults or {}), **predicate})

        atomic = len(where) == 1 and next(iter(where)) in meta.unique
        async with self._writing(f"Find-or-create in {meta.table}") as conn:
            if atomic:
                inserted = await queries_records.insert_record_if_absent(conn, meta, values)
            else:
                # Re-check under the lock; another task may have created it meanwhile.
                rows = await queries_records.select_records(conn, meta, where, limit=1)
                inserted = not rows
                if inserted:
                    await queries_records.insert_record(conn, meta, values)

        record = await self._find(meta, where)
        if record is None:
            raise PersistenceError(
                f"Find-or-create in {meta.table} failed: row not found after insert."
            )
        if inserted:
            logger.debug("Created %s id=%d via find-or-create", meta.table, record.id)
        return record

    async def save(self, record: RecordT) -> RecordT:
        """
        Persist the non-id columns of `record` and return the stored version.

        Raises:
            ValidationError: malformed record.
            NotFoundError: no row has the record's id.
            PersistenceError: the store rejected the update.
        """
        meta = meta_of(record)
        if isinstance(record.id, bool) or not isinstance(record.id, int):
            raise ValidationError(f"{meta.table} record has no valid id: {record.id!r}")
        values = validate_fields(meta, record_values(record))

        async with self._writing(f"Update {meta.table} id={record.id}") as conn:
            touched = await queries_records.update_record(conn, meta, record.id, values)
            if touched == 0:
                raise NotFoundError(f"No row with id={record.id} in {meta.table}")

        logger.debug("Saved %s id=%d", meta.table, record.id)
        return meta.kind(id=record.id, **values)
