"""
database.py – Motor connection cache
────────────────────────────────────
`ConnectionCache.acquire()` hands every request the same database
handle. The first call starts exactly one connection attempt; callers
that arrive while it is in flight await that same attempt instead of
opening a second client. A failed attempt is forgotten, so the next
call simply tries again – there is no retry loop in here.

The cache is a plain object (built by `get_connection_cache()` for the
app, or directly in tests with a fake connector).
"""
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..core.config import Settings, get_settings
from ..core.errors import UpstreamFailure

log = logging.getLogger("database")

Connector = Callable[[], Awaitable[Any]]


class ConnectionCache:
    def __init__(self, connect: Connector) -> None:
        self._connect = connect
        self._handle: Any | None = None
        self._pending: asyncio.Task | None = None

    @property
    def connected(self) -> bool:
        return self._handle is not None

    async def acquire(self) -> Any:
        if self._handle is not None:
            return self._handle

        # no await between the check and the assignment → one attempt per loop
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._establish())

        # shield: a cancelled request must not cancel everybody's attempt
        return await asyncio.shield(self._pending)

    async def _establish(self) -> Any:
        try:
            handle = await self._connect()
        except BaseException:
            self._pending = None
            raise
        self._handle = handle
        self._pending = None
        return handle

    async def close(self) -> None:
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            # the connector closes its own client when cancelled
            pending.cancel()
            await asyncio.gather(pending, return_exceptions=True)
        handle, self._handle = self._handle, None
        if handle is None:
            return
        client = getattr(handle, "client", None)
        if client is not None:
            client.close()
        log.info("MongoDB connection closed")


# ───────────────────────────── Motor wiring ─────────────────────────────
async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Unique keys the read paths rely on."""
    await db.events.create_index([("slug", ASCENDING)], unique=True)
    await db.events.create_index([("created_at", ASCENDING)])
    await db.bookings.create_index(
        [("event_id", ASCENDING), ("email", ASCENDING)], unique=True
    )


def mongo_connector(settings: Settings) -> Connector:
    """
    Build the connector used in production.

    • settings.mongodb_uri is a pydantic MongoDsn → cast to str.
    • `ping` forces server selection now, so a dead server fails this
      attempt instead of the first query.
    """

    async def connect() -> AsyncIOMotorDatabase:
        client = AsyncIOMotorClient(
            str(settings.mongodb_uri),
            uuidRepresentation="standard",
            serverSelectionTimeoutMS=int(settings.db_timeout_seconds * 1000),
        )
        try:
            await client.admin.command("ping")
            db = client[settings.mongodb_db]
            await ensure_indexes(db)
        except BaseException:
            client.close()
            raise
        log.info("Connected to MongoDB database %s", settings.mongodb_db)
        return db

    return connect


@lru_cache            # 1 global cache – avoids reconnect churn
def get_connection_cache() -> ConnectionCache:
    return ConnectionCache(mongo_connector(get_settings()))


class MongoService:
    """
    Base for services that talk to MongoDB through the cache.

    Every round-trip – including waiting for the connection – is bounded
    by `timeout`; driver errors and timeouts surface as UpstreamFailure.
    """

    def __init__(self, connections: ConnectionCache, *, timeout: float) -> None:
        self.connections = connections
        self.timeout = timeout

    async def _run(self, op: Callable[[Any], Awaitable[Any]], action: str) -> Any:
        async def _go():
            db = await self.connections.acquire()
            return await op(db)

        try:
            return await asyncio.wait_for(_go(), self.timeout)
        except DuplicateKeyError:
            raise
        except asyncio.TimeoutError as exc:
            raise UpstreamFailure(f"Timed out while {action}") from exc
        except (PyMongoError, ConnectionError, OSError) as exc:
            raise UpstreamFailure(f"Database error while {action}") from exc
