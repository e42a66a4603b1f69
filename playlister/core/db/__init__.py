"""
Internal DB subpackage for Playlister.

This package holds the pieces behind `RecordStore` and `Associations`
(records, schema/migrations, and query groups). Both facades stay the public
interface; re-exports here are primarily for convenience inside `core`.
"""

from __future__ import annotations

# Records / metadata
from .models import ENTITIES, Artist, EntityMeta, Genre, Record, Song, meta_for

# Schema / migrations
from .schema import SCHEMA_VERSION, ensure_schema, migrate

__all__ = [
    # models
    "Artist",
    "Genre",
    "Song",
    "Record",
    "EntityMeta",
    "ENTITIES",
    "meta_for",
    # schema
    "SCHEMA_VERSION",
    "ensure_schema",
    "migrate",
]
