"""
Tests for playlister.core.store and the schema module.

These tests verify:
- RecordStore lifecycle and schema creation
- create / find_by / find_or_create_by / save / get
- Validation and persistence error mapping
- find_or_create_by under concurrent callers
"""

from __future__ import annotations

import asyncio
from dataclasses import FrozenInstanceError, replace
from pathlib import Path

import pytest

from playlister.config import ConfigError, StoreConfig
from playlister.core import (
    NotFoundError,
    PersistenceError,
    StoreNotOpenError,
    ValidationError,
)
from playlister.core.db.models import Artist, Genre, Song
from playlister.core.db.schema import SCHEMA_VERSION, get_schema_version
from playlister.core.store import RecordStore


@pytest.fixture
async def store() -> RecordStore:
    """Create an in-memory store for testing."""
    store = RecordStore(":memory:")
    await store.open()
    await store.ensure_schema()
    yield store
    await store.close()


# =============================================================================
# Lifecycle / schema
# =============================================================================


class TestLifecycle:
    """Tests for open/close and schema setup."""

    async def test_open_close(self) -> None:
        """Test basic open/close lifecycle."""
        store = RecordStore(":memory:")
        assert not store.is_open

        await store.open()
        assert store.is_open

        await store.close()
        assert not store.is_open

    async def test_closed_store_raises(self) -> None:
        store = RecordStore(":memory:")
        with pytest.raises(StoreNotOpenError):
            await store.count(Artist)

    async def test_context_manager_opens_and_migrates(self) -> None:
        async with RecordStore(":memory:") as store:
            assert store.is_open
            assert await store.count(Song) == 0
        assert not store.is_open

    async def test_ensure_schema_sets_version(self, store: RecordStore) -> None:
        assert await get_schema_version(store.connection) == SCHEMA_VERSION

    async def test_ensure_schema_is_idempotent(self, store: RecordStore) -> None:
        await store.create(Artist, {"name": "Adele"})
        await store.ensure_schema()
        assert await store.count(Artist) == 1

    async def test_newer_schema_is_rejected(self, store: RecordStore) -> None:
        await store.connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1};")
        with pytest.raises(RuntimeError, match="newer than supported"):
            await store.ensure_schema()

    async def test_from_config(self) -> None:
        store = RecordStore.from_config(StoreConfig(database=":memory:", foreign_keys=False))
        assert store.foreign_keys is False
        await store.open()
        try:
            await store.ensure_schema()
            assert await store.count(Genre) == 0
        finally:
            await store.close()

    async def test_data_survives_reopen(self, tmp_path: Path) -> None:
        db_path = tmp_path / "playlister.db"
        async with RecordStore(db_path) as store:
            artist = await store.create(Artist, {"name": "Taylor Swift"})

        async with RecordStore(db_path) as store:
            again = await store.get(Artist, artist.id)
            assert again == artist

    async def test_unknown_pragma_values_rejected(self) -> None:
        with pytest.raises(ConfigError):
            RecordStore(":memory:", journal_mode="WAL; DROP TABLE songs")
        with pytest.raises(ConfigError):
            RecordStore(":memory:", synchronous="SOMETIMES")

    async def test_pragma_values_are_case_insensitive(self) -> None:
        async with RecordStore(":memory:", journal_mode="delete", synchronous="full") as store:
            assert await store.count(Artist) == 0


# =============================================================================
# create / get / find_by
# =============================================================================


class TestCreate:
    """Tests for creating records."""

    async def test_create_assigns_ids(self, store: RecordStore) -> None:
        first = await store.create(Artist, {"name": "Drake"})
        second = await store.create(Artist, {"name": "Rihanna"})

        assert first.id > 0
        assert second.id > first.id
        assert first.name == "Drake"

    async def test_create_song_with_links(self, store: RecordStore) -> None:
        artist = await store.create(Artist, {"name": "Drake"})
        genre = await store.create(Genre, {"name": "Rap"})

        song = await store.create(
            Song, {"name": "Hotline Bling", "artist_id": artist.id, "genre_id": genre.id}
        )
        assert song.artist_id == artist.id
        assert song.genre_id == genre.id
        assert await store.get(Song, song.id) == song

    async def test_create_song_unassigned(self, store: RecordStore) -> None:
        song = await store.create(Song, {"name": "Untitled"})
        assert song.artist_id is None
        assert song.genre_id is None

    async def test_create_normalizes_text(self, store: RecordStore) -> None:
        artist = await store.create(Artist, {"name": "  The Weeknd  "})
        assert artist.name == "The Weeknd"

    @pytest.mark.parametrize(
        "kind,fields",
        [
            (Artist, {}),
            (Artist, {"name": "   "}),
            (Artist, {"name": None}),
            (Artist, {"name": 42}),
            (Artist, {"id": 7, "name": "Preassigned"}),
            (Artist, {"name": "Drake", "nickname": "Drizzy"}),
            (Song, {"name": "Song", "artist_id": "1"}),
            (Song, {"name": "Song", "genre_id": True}),
            (str, {"name": "Not a record"}),
        ],
    )
    async def test_create_rejects_malformed_input(
        self, store: RecordStore, kind: type, fields: dict
    ) -> None:
        with pytest.raises(ValidationError):
            await store.create(kind, fields)

    async def test_duplicate_artist_name_is_persistence_error(self, store: RecordStore) -> None:
        await store.create(Artist, {"name": "Drake"})
        with pytest.raises(PersistenceError) as exc_info:
            await store.create(Artist, {"name": "Drake"})
        assert exc_info.value.__cause__ is not None
        assert await store.count(Artist) == 1

    async def test_missing_foreign_key_target_is_persistence_error(
        self, store: RecordStore
    ) -> None:
        with pytest.raises(PersistenceError):
            await store.create(Song, {"name": "Orphan", "artist_id": 999})
        assert await store.count(Song) == 0

    async def test_store_usable_after_failed_write(self, store: RecordStore) -> None:
        await store.create(Artist, {"name": "Drake"})
        with pytest.raises(PersistenceError):
            await store.create(Artist, {"name": "Drake"})

        created = await store.create(Artist, {"name": "Future"})
        assert await store.get(Artist, created.id) == created

    async def test_records_are_immutable(self, store: RecordStore) -> None:
        artist = await store.create(Artist, {"name": "Drake"})
        with pytest.raises(FrozenInstanceError):
            artist.id = 99  # type: ignore[misc]


class TestRead:
    """Tests for get/find_by/all/count."""

    async def test_get_missing_raises(self, store: RecordStore) -> None:
        with pytest.raises(NotFoundError):
            await store.get(Artist, 12345)

    async def test_find_by_returns_first_match(self, store: RecordStore) -> None:
        first = await store.create(Song, {"name": "Intro"})
        await store.create(Song, {"name": "Intro"})

        found = await store.find_by(Song, {"name": "Intro"})
        assert found == first

    async def test_find_by_none_when_absent(self, store: RecordStore) -> None:
        assert await store.find_by(Artist, {"name": "Nobody"}) is None

    async def test_find_by_null_column(self, store: RecordStore) -> None:
        artist = await store.create(Artist, {"name": "Drake"})
        await store.create(Song, {"name": "Linked", "artist_id": artist.id})
        loose = await store.create(Song, {"name": "Loose"})

        found = await store.find_by(Song, {"artist_id": None})
        assert found == loose

    async def test_find_by_id(self, store: RecordStore) -> None:
        genre = await store.create(Genre, {"name": "Pop"})
        assert await store.find_by(Genre, {"id": genre.id}) == genre

    async def test_find_by_unknown_column(self, store: RecordStore) -> None:
        with pytest.raises(ValidationError):
            await store.find_by(Artist, {"label": "OVO"})

    async def test_find_by_empty_predicate(self, store: RecordStore) -> None:
        with pytest.raises(ValidationError):
            await store.find_by(Artist, {})

    async def test_all_and_count(self, store: RecordStore) -> None:
        await store.create(Genre, {"name": "rock"})
        await store.create(Genre, {"name": "Jazz"})
        await store.create(Genre, {"name": "blues"})

        assert await store.count(Genre) == 3
        by_id = await store.all(Genre)
        assert [g.name for g in by_id] == ["rock", "Jazz", "blues"]
        by_name = await store.all(Genre, order_by="name")
        assert [g.name for g in by_name] == ["blues", "Jazz", "rock"]


# =============================================================================
# find_or_create_by
# =============================================================================


class TestFindOrCreate:
    """Tests for find_or_create_by."""

    async def test_creates_when_absent(self, store: RecordStore) -> None:
        artist = await store.find_or_create_by(Artist, {"name": "Drake"})
        assert artist.name == "Drake"
        assert await store.count(Artist) == 1

    async def test_returns_existing(self, store: RecordStore) -> None:
        existing = await store.create(Artist, {"name": "Drake"})
        found = await store.find_or_create_by(Artist, {"name": "Drake"})
        assert found == existing
        assert await store.count(Artist) == 1

    async def test_repeated_calls_do_not_duplicate(self, store: RecordStore) -> None:
        first = await store.find_or_create_by(Genre, {"name": "Rap"})
        second = await store.find_or_create_by(Genre, {"name": "Rap"})
        assert first == second
        assert await store.count(Genre) == 1

    async def test_defaults_are_merged(self, store: RecordStore) -> None:
        artist = await store.create(Artist, {"name": "Drake"})
        song = await store.find_or_create_by(
            Song, {"name": "God's Plan"}, defaults={"artist_id": artist.id}
        )
        assert song.artist_id == artist.id

    async def test_predicate_wins_over_defaults(self, store: RecordStore) -> None:
        song = await store.find_or_create_by(
            Song, {"name": "Real Name"}, defaults={"name": "Default Name"}
        )
        assert song.name == "Real Name"

    async def test_lookup_by_id_returns_existing(self, store: RecordStore) -> None:
        existing = await store.create(Artist, {"name": "Drake"})
        found = await store.find_or_create_by(Artist, {"id": existing.id})
        assert found == existing
        assert await store.count(Artist) == 1

    async def test_id_cannot_be_used_to_create(self, store: RecordStore) -> None:
        with pytest.raises(ValidationError):
            await store.find_or_create_by(Artist, {"id": 999, "name": "Drake"})
        assert await store.count(Artist) == 0

    async def test_missing_required_field_on_create(self, store: RecordStore) -> None:
        with pytest.raises(ValidationError):
            await store.find_or_create_by(Song, {"artist_id": None})

    async def test_concurrent_unique_callers_create_one_row(self, store: RecordStore) -> None:
        results = await asyncio.gather(
            *(store.find_or_create_by(Artist, {"name": "Drake"}) for _ in range(5))
        )
        assert len({a.id for a in results}) == 1
        assert await store.count(Artist) == 1

    async def test_concurrent_non_unique_callers_create_one_row(
        self, store: RecordStore
    ) -> None:
        results = await asyncio.gather(
            *(store.find_or_create_by(Song, {"name": "One Dance"}) for _ in range(5))
        )
        assert len({s.id for s in results}) == 1
        assert await store.count(Song) == 1


# =============================================================================
# save
# =============================================================================


class TestSave:
    """Tests for persisting in-memory changes."""

    async def test_save_persists_changes(self, store: RecordStore) -> None:
        song = await store.create(Song, {"name": "Draft"})
        saved = await store.save(replace(song, name="Final"))

        assert saved.name == "Final"
        assert await store.reload(song) == saved

    async def test_save_sets_and_clears_foreign_key(self, store: RecordStore) -> None:
        artist = await store.create(Artist, {"name": "Drake"})
        song = await store.create(Song, {"name": "Passionfruit"})

        linked = await store.save(replace(song, artist_id=artist.id))
        assert (await store.reload(song)).artist_id == artist.id

        await store.save(replace(linked, artist_id=None))
        assert (await store.reload(song)).artist_id is None

    async def test_save_unknown_id_raises(self, store: RecordStore) -> None:
        with pytest.raises(NotFoundError):
            await store.save(Song(id=404, name="Ghost"))

    async def test_save_rejects_blank_name(self, store: RecordStore) -> None:
        artist = await store.create(Artist, {"name": "Drake"})
        with pytest.raises(ValidationError):
            await store.save(replace(artist, name=""))
        assert (await store.reload(artist)).name == "Drake"

    async def test_save_dangling_foreign_key_is_persistence_error(
        self, store: RecordStore
    ) -> None:
        song = await store.create(Song, {"name": "Solo"})
        with pytest.raises(PersistenceError):
            await store.save(replace(song, genre_id=777))
        assert (await store.reload(song)).genre_id is None

    async def test_save_rejects_non_record(self, store: RecordStore) -> None:
        with pytest.raises(ValidationError):
            await store.save("not a record")  # type: ignore[arg-type]
