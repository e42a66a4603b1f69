"""
Catalog: convenience accessors over artists, genres and songs.

Every accessor is a composition of `Associations` and `RecordStore` calls;
the catalog keeps no state of its own.
"""

from __future__ import annotations

from playlister.core import ValidationError
from playlister.core.associations import Associations
from playlister.core.db.models import Artist, Genre, Song
from playlister.core.store import RecordStore


class Catalog:
    """
    High-level facade for browsing and linking the catalog.

    Dependencies:
    - `RecordStore` for find-or-create
    - `Associations` for every relationship lookup
    """

    def __init__(self, *, store: RecordStore, associations: Associations | None = None) -> None:
        self._store = store
        self._assoc = associations if associations is not None else Associations(store)

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def associations(self) -> Associations:
        return self._assoc

    # ---- Has-many ----

    async def songs(self, owner: Artist | Genre) -> tuple[Song, ...]:
        """Songs linked to an artist or a genre, in creation order."""
        return await self._assoc.related_many(owner, Song, self._song_fk(owner))

    async def first_song(self, artist: Artist) -> Song | None:
        songs = await self._assoc.related_many(artist, Song, "artist_id")
        return songs[0] if songs else None

    async def song_count(self, owner: Artist | Genre) -> int:
        return await self._assoc.count_many(owner, Song, self._song_fk(owner))

    @staticmethod
    def _song_fk(owner: object) -> str:
        if isinstance(owner, Artist):
            return "artist_id"
        if isinstance(owner, Genre):
            return "genre_id"
        raise ValidationError(f"Songs belong to artists and genres, not {type(owner).__name__}")

    # ---- Through songs ----

    async def genres(self, artist: Artist) -> tuple[Genre, ...]:
        """Distinct genres of the artist's songs, first-seen first."""
        return await self._assoc.related_many_through(artist, Song, "artist_id", Genre, "genre_id")

    async def artists(self, genre: Genre) -> tuple[Artist, ...]:
        """Distinct artists of the genre's songs, first-seen first."""
        return await self._assoc.related_many_through(genre, Song, "genre_id", Artist, "artist_id")

    async def genre_count(self, artist: Artist) -> int:
        return len(await self.genres(artist))

    async def artist_count(self, genre: Genre) -> int:
        return len(await self.artists(genre))

    async def all_artist_names(self, genre: Genre) -> list[str]:
        return [a.name for a in await self.artists(genre)]

    async def all_genre_names(self, artist: Artist) -> list[str]:
        return [g.name for g in await self.genres(artist)]

    # ---- Belongs-to ----

    async def genre_of_first_song(self, artist: Artist) -> Genre | None:
        song = await self.first_song(artist)
        if song is None:
            return None
        return await self._assoc.related_one(song, Genre, "genre_id")

    async def genre_name(self, song: Song) -> str | None:
        genre = await self._assoc.related_one(song, Genre, "genre_id")
        return genre.name if genre else None

    async def artist_name(self, song: Song) -> str | None:
        artist = await self._assoc.related_one(song, Artist, "artist_id")
        return artist.name if artist else None

    # ---- Linking ----

    async def assign_artist_by_name(self, song: Song, name: str) -> Song:
        """
        Link `song` to the artist called `name`, creating the artist if needed.

        Idempotent: repeated calls reuse the same artist row.
        """
        artist = await self._store.find_or_create_by(Artist, {"name": name})
        return await self._assoc.link(song, artist)

    async def assign_genre_by_name(self, song: Song, name: str) -> Song:
        """Genre counterpart of `assign_artist_by_name`."""
        genre = await self._store.find_or_create_by(Genre, {"name": name})
        return await self._assoc.link(song, genre)
