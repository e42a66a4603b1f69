"""
Association resolver: has-many, belongs-to and two-hop through lookups.

Relationships are not declared anywhere; callers name the child kind and the
foreign-key field explicitly. The FK must be one of the child's declared
`EntityMeta.foreign_keys` and must point at the owner's kind.

Collections are always derived by lookup and never cached.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from playlister.core import DanglingReferenceError, ValidationError
from playlister.core.db import queries_associations
from playlister.core.db.models import (
    EntityMeta,
    Record,
    RecordT,
    describe,
    meta_for,
    meta_of,
    row_to_record,
)
from playlister.core.db.ordering import RecordsOrderBy
from playlister.core.store import RecordStore

logger = logging.getLogger(__name__)


def _check_fk(child: EntityMeta, fk_field: str, owner_kind: type) -> None:
    target = child.foreign_keys.get(fk_field)
    if target is None:
        raise ValidationError(f"{child.table}.{fk_field} is not a foreign key")
    if target is not owner_kind:
        raise ValidationError(
            f"{child.table}.{fk_field} references {meta_for(target).table}, "
            f"not {meta_for(owner_kind).table}"
        )


def foreign_key_for(child_kind: type, owner_kind: type) -> str:
    """
    Return the single FK column of `child_kind` that points at `owner_kind`.

    Raises ValidationError if there is none, or more than one (ambiguous).
    """
    child = meta_for(child_kind)
    owner = meta_for(owner_kind)
    matches = [fk for fk, target in child.foreign_keys.items() if target is owner_kind]
    if not matches:
        raise ValidationError(f"{child.table} has no foreign key to {owner.table}")
    if len(matches) > 1:
        raise ValidationError(
            f"{child.table} has several foreign keys to {owner.table}: {', '.join(matches)}"
        )
    return matches[0]


class Associations:
    """
    Resolve related records through a `RecordStore`.

    Usage:
        assoc = Associations(store)
        songs = await assoc.related_many(artist, Song, "artist_id")
        artist = await assoc.related_one(song, Artist, "artist_id")
        genres = await assoc.related_many_through(artist, Song, "artist_id", Genre, "genre_id")
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    @property
    def store(self) -> RecordStore:
        return self._store

    async def related_many(
        self,
        owner: Record,
        child_kind: type[RecordT],
        fk_field: str,
        *,
        order_by: RecordsOrderBy = "id",
    ) -> tuple[RecordT, ...]:
        """
        All `child_kind` records whose `fk_field` equals `owner.id`.

        Creation order by default; `order_by="name"` sorts by name instead.
        Returns an empty tuple when nothing is linked.
        """
        child = meta_for(child_kind)
        _check_fk(child, fk_field, type(owner))

        conn = self._store.connection
        rows = await queries_associations.select_children(
            conn, child, fk_field, owner.id, order_by=order_by
        )
        return tuple(row_to_record(child, r) for r in rows)

    async def count_many(self, owner: Record, child_kind: type, fk_field: str) -> int:
        """Same as `len(await related_many(...))`, counted in SQL."""
        child = meta_for(child_kind)
        _check_fk(child, fk_field, type(owner))

        conn = self._store.connection
        return await queries_associations.count_children(conn, child, fk_field, owner.id)

    async def related_one(
        self, child: Record, owner_kind: type[RecordT], fk_field: str
    ) -> RecordT | None:
        """
        The owner referenced by `child.<fk_field>`.

        Returns None if the FK is null. Raises DanglingReferenceError if the FK
        is set but no such owner exists.
        """
        child_meta = meta_of(child)
        _check_fk(child_meta, fk_field, owner_kind)

        owner_id = getattr(child, fk_field)
        if owner_id is None:
            return None

        owner = await self._store.find_by(owner_kind, {"id": owner_id})
        if owner is None:
            raise DanglingReferenceError(meta_for(owner_kind).table, fk_field, owner_id)
        return owner

    async def related_many_through(
        self,
        owner: Record,
        bridge_kind: type,
        bridge_fk_to_owner: str,
        target_kind: type[RecordT],
        bridge_fk_to_target: str,
    ) -> tuple[RecordT, ...]:
        """
        Distinct targets reachable from `owner` via bridge records.

        Bridge records with a null target FK are skipped. Each target appears
        once, in the order its first bridge record was created.
        """
        bridge = meta_for(bridge_kind)
        target = meta_for(target_kind)
        _check_fk(bridge, bridge_fk_to_owner, type(owner))
        _check_fk(bridge, bridge_fk_to_target, target_kind)

        conn = self._store.connection
        rows = await queries_associations.select_through(
            conn, bridge, bridge_fk_to_owner, target, bridge_fk_to_target, owner.id
        )

        related: list[Any] = []
        for r in rows:
            if r["id"] is None:
                raise DanglingReferenceError(
                    target.table, bridge_fk_to_target, int(r["target_ref"])
                )
            related.append(row_to_record(target, r))
        return tuple(related)

    async def link(self, child: RecordT, owner: Record) -> RecordT:
        """
        Point `child` at `owner` and persist it. Returns the updated child.

        Produces the same stored state as assigning the FK by hand and calling
        `store.save`. Re-linking to the current owner rewrites the same value.
        """
        fk_field = foreign_key_for(type(child), type(owner))
        linked = await self._store.save(replace(child, **{fk_field: owner.id}))
        logger.debug("Linked %s -> %s", describe(linked), describe(owner))
        return linked
