"""
Playlister - a small async data-access layer for artists, genres and songs.

Records are plain dataclasses persisted in SQLite. Relationships (an artist's
songs, a song's genre, a genre's artists through its songs) are resolved by
explicit lookups rather than declared on the records.
"""

__version__ = "0.1.0"
__author__ = "Playlister Contributors"
__license__ = "GPL-2.0"

from playlister.core.associations import Associations
from playlister.core.catalog import Catalog
from playlister.core.db.models import Artist, Genre, Song
from playlister.core.store import RecordStore

__all__ = [
    "Artist",
    "Associations",
    "Catalog",
    "Genre",
    "RecordStore",
    "Song",
    "__version__",
]
