import os

import httpx
import pytest_asyncio

# Never touch the on-disk database from unit tests.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from app.crud import CharacterStore  # noqa: E402
from app.main import create_app  # noqa: E402

MEMORY_URL = "sqlite+aiosqlite:///:memory:"

SEED = [
    {"name": "Rick Sanchez", "status": "Alive", "species": "Human", "gender": "Male"},
    {"name": "Morty Smith", "status": "Alive", "species": "Human", "gender": "Male"},
]


@pytest_asyncio.fixture
async def store():
    """A fresh in-memory store with the schema created."""
    s = CharacterStore.from_url(MEMORY_URL)
    await s.create_schema()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def seeded_store(store):
    """Store holding Rick (id 1) and Morty (id 2)."""
    for record in SEED:
        await store.insert(record)
    yield store


@pytest_asyncio.fixture
async def test_app(store):
    # Store is injected, so the lifespan never needs to run
    yield create_app(store=store)


@pytest_asyncio.fixture
async def test_client(test_app):
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as c:
        yield c
