"""Database bootstrap: engine construction and schema initialization.

Nothing here is a process-wide global; callers build an engine with
``make_engine()`` and own its lifecycle (see ``crud.CharacterStore``).

URLs:
    sqlite+aiosqlite:///./sqlite/characters.db   file-backed store (default)
    sqlite+aiosqlite:///:memory:                  isolated in-memory store
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import text, event
from sqlalchemy.engine.url import make_url, URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool, NullPool

log = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for ORM models."""

    pass


def _safe_url_parts(url_str: str) -> dict:
    """Parse an SQLAlchemy URL and return non-sensitive parts for logging."""
    try:
        u: URL = make_url(url_str)
        return {"driver": u.drivername or "", "database": u.database or ""}
    except Exception:
        return {"driver": "unknown", "database": ""}


def is_memory_url(url: str) -> bool:
    """True for SQLite URLs that open a private in-memory database."""
    if not url.startswith("sqlite"):
        return False
    database = make_url(url).database
    return database in (None, "", ":memory:")


def _ensure_sqlite_dir(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    database = make_url(url).database
    if database:
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def _register_engine_listeners(eng: AsyncEngine) -> None:
    parts = _safe_url_parts(str(eng.url))

    @event.listens_for(eng.sync_engine, "connect")
    def _on_connect(dbapi_conn, conn_record):
        log.debug("db.connect driver=%s db=%s", parts["driver"], parts["database"])

    @event.listens_for(eng.sync_engine, "engine_disposed")
    def _on_dispose(engine):
        log.info("db.dispose driver=%s db=%s", parts["driver"], parts["database"])


def make_engine(url: str) -> AsyncEngine:
    """Build an async engine with pooling suited to the backend."""
    kwargs: dict = {}

    if url.startswith("sqlite"):
        if is_memory_url(url):
            # One shared connection, otherwise every session gets its own empty DB
            kwargs["poolclass"] = StaticPool
        else:
            _ensure_sqlite_dir(url)
            kwargs["poolclass"] = NullPool
    else:
        kwargs["pool_pre_ping"] = True

    eng = create_async_engine(url, **kwargs)
    _register_engine_listeners(eng)

    parts = _safe_url_parts(url)
    log.debug(
        "db.engine_created driver=%s db=%s kwargs=%s",
        parts["driver"],
        parts["database"],
        sorted(kwargs),
    )
    return eng


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables for registered ORM models if they do not exist yet."""
    from . import models  # noqa: F401 (import registers metadata)

    parts = _safe_url_parts(str(engine.url))
    log.info("db.init driver=%s db=%s", parts["driver"], parts["database"])

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping_db(engine: AsyncEngine) -> bool:
    """Return True if a simple SELECT succeeds against ``engine``."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        log.debug("db.ping failed: %r", e)
        return False
