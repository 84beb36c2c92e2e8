"""CharacterStore behavior tests.

Covers:
* Listing (empty table, insertion order, projection).
* Lookup by id, including absence and out-of-range ids.
* Inserts: increasing ids and column defaults.
* Driver failures surfacing as PersistenceError.
"""

import asyncio

import pytest
from sqlalchemy import text

from app.crud import CharacterStore
from app.errors import PersistenceError

RICK = {"name": "Rick Sanchez", "status": "Alive", "species": "Human", "gender": "Male"}
MORTY = {"name": "Morty Smith", "status": "Alive", "species": "Human", "gender": "Male"}
PROJECTED = {"id", "name", "status", "species"}


@pytest.mark.asyncio
async def test_list_all_empty_table_returns_empty_list(store):
    assert await store.list_all() == []
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_insert_assigns_increasing_ids(store):
    first = await store.insert(RICK)
    second = await store.insert(MORTY)
    third = await store.insert({**RICK, "name": "Rick Prime"})
    assert 0 < first < second < third


@pytest.mark.asyncio
async def test_list_all_projects_four_columns_in_insertion_order(seeded_store):
    rows = await seeded_store.list_all()
    assert [r["name"] for r in rows] == ["Rick Sanchez", "Morty Smith"]
    for r in rows:
        assert set(r) == PROJECTED
    assert await seeded_store.count() == 2


@pytest.mark.asyncio
async def test_get_by_id_found_and_missing(seeded_store):
    assert await seeded_store.get_by_id(1) == {
        "id": 1,
        "name": "Rick Sanchez",
        "status": "Alive",
        "species": "Human",
    }
    assert await seeded_store.get_by_id(999999) is None
    assert await seeded_store.get_by_id(0) is None


@pytest.mark.asyncio
async def test_get_by_id_beyond_rowid_range_is_not_found(seeded_store):
    assert await seeded_store.get_by_id(2**63) is None
    assert await seeded_store.get_by_id(10**30) is None


@pytest.mark.asyncio
async def test_insert_fills_schema_defaults(store):
    new_id = await store.insert(
        {"name": "Birdperson", "status": "Dead", "species": "Bird-Person", "gender": "Male"}
    )
    async with store.engine.connect() as conn:
        row = (
            await conn.execute(
                text(
                    "SELECT type, gender, origin_name, origin_url, location_name, "
                    "location_url, image, created FROM characters WHERE id = :id"
                ),
                {"id": new_id},
            )
        ).one()
    assert row.type == ""
    assert row.gender == "Male"
    assert (
        row.origin_name,
        row.origin_url,
        row.location_name,
        row.location_url,
        row.image,
    ) == ("", "", "", "", "")
    assert row.created  # CURRENT_TIMESTAMP


@pytest.mark.asyncio
async def test_values_are_bound_not_interpolated(store):
    """Quotes and SQL fragments round-trip as plain data."""
    nasty = "Robert'); DROP TABLE characters;--"
    new_id = await store.insert({**RICK, "name": nasty})
    assert (await store.get_by_id(new_id))["name"] == nasty
    assert await store.count() == 1


@pytest.mark.asyncio
async def test_create_schema_is_idempotent(seeded_store):
    await seeded_store.create_schema()
    await seeded_store.create_schema()
    assert await seeded_store.count() == 2


@pytest.mark.asyncio
async def test_driver_failures_raise_persistence_error(store):
    async with store.engine.begin() as conn:
        await conn.execute(text("DROP TABLE characters"))

    with pytest.raises(PersistenceError) as excinfo:
        await store.list_all()
    assert excinfo.value.message == "no such table: characters"
    assert excinfo.value.body() == {"error": "no such table: characters"}

    with pytest.raises(PersistenceError):
        await store.get_by_id(1)
    with pytest.raises(PersistenceError):
        await store.insert(RICK)


@pytest.mark.asyncio
async def test_ping(store):
    assert await store.ping() is True


@pytest.mark.asyncio
async def test_concurrent_inserts_share_one_memory_connection(store):
    ids = await asyncio.gather(
        *(store.insert({**RICK, "name": f"Rick C-{i}"}) for i in range(25)),
        *(store.list_all() for _ in range(5)),
    )
    new_ids = ids[:25]
    assert sorted(new_ids) == list(range(1, 26))
    assert await store.count() == 25


@pytest.mark.asyncio
async def test_only_memory_store_serializes_sessions(store, tmp_path):
    assert store._lock is not None
    file_store = CharacterStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'c.db'}")
    try:
        assert file_store._lock is None
    finally:
        await file_store.close()
