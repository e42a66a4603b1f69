"""
DB records and entity metadata.

This module is intentionally lightweight:
- No DB connection knowledge
- No SQL
- Pure dataclasses + helper functions

`EntityMeta` is the whitelist every query module builds SQL from. Column and
table names never come from callers directly; they are looked up here first.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields as dataclass_fields
from typing import Any, Mapping, TypeVar, Union

from playlister.core import ValidationError


@dataclass(frozen=True, slots=True)
class Artist:
    """Artist record as stored in SQLite."""

    id: int
    name: str


@dataclass(frozen=True, slots=True)
class Genre:
    """Genre record as stored in SQLite."""

    id: int
    name: str


@dataclass(frozen=True, slots=True)
class Song:
    """
    Song record as stored in SQLite.

    Notes:
    - `artist_id` and `genre_id` are nullable FKs; None means "unassigned".
    - A song is the bridge record between artists and genres.
    """

    id: int
    name: str
    artist_id: int | None = None
    genre_id: int | None = None


Record = Union[Artist, Genre, Song]
RecordT = TypeVar("RecordT", Artist, Genre, Song)


@dataclass(frozen=True, slots=True)
class EntityMeta:
    """Static description of one record kind and its table."""

    kind: type
    table: str
    columns: tuple[str, ...]
    required: frozenset[str] = frozenset()
    unique: frozenset[str] = frozenset()
    # fk column -> owner kind
    foreign_keys: Mapping[str, type] = field(default_factory=dict)

    @property
    def select_list(self) -> str:
        return ", ".join(("id",) + self.columns)


ENTITIES: dict[type, EntityMeta] = {
    Artist: EntityMeta(
        kind=Artist,
        table="artists",
        columns=("name",),
        required=frozenset({"name"}),
        unique=frozenset({"name"}),
    ),
    Genre: EntityMeta(
        kind=Genre,
        table="genres",
        columns=("name",),
        required=frozenset({"name"}),
        unique=frozenset({"name"}),
    ),
    Song: EntityMeta(
        kind=Song,
        table="songs",
        columns=("name", "artist_id", "genre_id"),
        required=frozenset({"name"}),
        foreign_keys={"artist_id": Artist, "genre_id": Genre},
    ),
}


def meta_for(kind: type) -> EntityMeta:
    """Return the entity metadata for a record class."""
    try:
        return ENTITIES[kind]
    except (KeyError, TypeError):
        raise ValidationError(f"Unknown record kind: {kind!r}") from None


def meta_of(record: object) -> EntityMeta:
    """Return the entity metadata for a record instance."""
    return meta_for(type(record))


def describe(record: Record) -> str:
    """Short label such as `songs#3`, used in log messages."""
    return f"{meta_of(record).table}#{record.id}"


def normalize_text(value: str | None) -> str | None:
    """
    Normalize optional text fields:
    - strip whitespace
    - coerce empty strings to None
    """
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def _check_value(meta: EntityMeta, column: str, value: Any) -> Any:
    if column in meta.foreign_keys:
        if value is None:
            return None
        # bool is an int subclass; a True foreign key is always a bug.
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(
                f"{meta.table}.{column} must be an integer id or None, got {value!r}"
            )
        return value

    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{meta.table}.{column} must be a string, got {value!r}")
    return normalize_text(value)


def check_columns(meta: EntityMeta, names: Mapping[str, Any]) -> None:
    """Raise ValidationError for any name that is not a writable column of `meta`."""
    for name in names:
        if name == "id":
            raise ValidationError(f"{meta.table}.id is assigned by the store")
        if name not in meta.columns:
            raise ValidationError(f"Unknown column {name!r} for {meta.table}")


def validate_fields(meta: EntityMeta, values: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate and normalize a full set of column values for a write.

    Missing optional columns are filled with None. Required columns must be
    present and non-blank after normalization.
    """
    check_columns(meta, values)

    cleaned: dict[str, Any] = {}
    for column in meta.columns:
        cleaned[column] = _check_value(meta, column, values.get(column))

    for column in meta.required:
        if cleaned[column] is None:
            raise ValidationError(f"{meta.table}.{column} is required")
    return cleaned


def validate_predicate(meta: EntityMeta, predicate: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate an equality predicate. Unlike `validate_fields`, nothing is
    required and absent columns are not filled in.
    """
    if not predicate:
        raise ValidationError(f"Empty predicate for {meta.table}")

    cleaned: dict[str, Any] = {}
    for column, value in predicate.items():
        if column == "id":
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{meta.table}.id must be an integer, got {value!r}")
            cleaned["id"] = value
            continue
        if column not in meta.columns:
            raise ValidationError(f"Unknown column {column!r} for {meta.table}")
        cleaned[column] = _check_value(meta, column, value)
    return cleaned


def record_values(record: Record) -> dict[str, Any]:
    """Return the non-id column values of a record."""
    return {f.name: getattr(record, f.name) for f in dataclass_fields(record) if f.name != "id"}


def row_to_record(meta: EntityMeta, row: Mapping[str, Any]) -> Any:
    """Materialize a DB row (aiosqlite.Row) as the record class of `meta`."""
    values: dict[str, Any] = {"id": int(row["id"])}
    for column in meta.columns:
        values[column] = row[column]
    return meta.kind(**values)
