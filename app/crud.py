"""Data access for Character.

``CharacterStore`` owns the engine and session factory and is the only place
that talks SQL. Statements are built with SQLAlchemy expressions, so every
value reaches the driver as a bound parameter. Storage failures are raised as
``PersistenceError`` carrying the driver's message.
"""

import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Dict, Iterator, List

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from .db import init_db, is_memory_url, make_engine, ping_db
from .errors import PersistenceError
from .models import Character

log = logging.getLogger(__name__)

# Columns returned by every read endpoint
_PROJECTION = (Character.id, Character.name, Character.status, Character.species)

# SQLite INTEGER PRIMARY KEY is a signed 64-bit rowid
_MAX_ROWID = 2**63 - 1


def _driver_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


@contextmanager
def _translate_errors(op: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        msg = _driver_message(exc)
        log.error("store.persistence_error op=%s error=%s", op, msg)
        raise PersistenceError(msg) from exc


class CharacterStore:
    """Persistence adapter for the ``characters`` table."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._sessions = async_sessionmaker(
            engine, expire_on_commit=False, class_=AsyncSession
        )
        # An in-memory DB lives on one shared connection; transactions on it
        # must not interleave.
        self._lock = asyncio.Lock() if is_memory_url(str(engine.url)) else None

    @classmethod
    def from_url(cls, url: str) -> "CharacterStore":
        return cls(make_engine(url))

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        if self._lock is None:
            yield
            return
        async with self._lock:
            yield

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self._exclusive():
            async with self._sessions() as session:
                yield session

    async def create_schema(self) -> None:
        """Create the table if absent (idempotent)."""
        with _translate_errors("create_schema"):
            async with self._exclusive():
                await init_db(self.engine)

    async def list_all(self) -> List[Dict[str, Any]]:
        """Return every character projected to id/name/status/species.

        Rows come back in insertion order (ascending id); an empty table yields
        an empty list.
        """
        q = select(*_PROJECTION).order_by(Character.id)
        with _translate_errors("list_all"):
            async with self._session() as session:
                res = await session.execute(q)
                return [row._asdict() for row in res.all()]

    async def get_by_id(self, character_id: int) -> Dict[str, Any] | None:
        """Return the projected row for ``character_id`` or ``None`` if absent."""
        if character_id < 0 or character_id > _MAX_ROWID:
            return None
        q = select(*_PROJECTION).where(Character.id == character_id)
        with _translate_errors("get_by_id"):
            async with self._session() as session:
                row = (await session.execute(q)).one_or_none()
        return row._asdict() if row is not None else None

    async def insert(self, record: Dict[str, Any]) -> int:
        """Insert one character and return its newly assigned id.

        Args:
            record: Validated fields ``name``, ``status``, ``species``,
                ``gender`` and ``type``. Other columns take their defaults.
        """
        character = Character(
            name=record["name"],
            status=record["status"],
            species=record["species"],
            gender=record["gender"],
            type=record.get("type", ""),
        )
        with _translate_errors("insert"):
            async with self._session() as session:
                session.add(character)
                await session.commit()
        return character.id

    async def count(self) -> int:
        q = select(func.count()).select_from(Character)
        with _translate_errors("count"):
            async with self._session() as session:
                return int((await session.execute(q)).scalar_one())

    async def ping(self) -> bool:
        async with self._exclusive():
            return await ping_db(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()
