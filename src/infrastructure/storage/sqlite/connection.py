"""
Connection pool for the catalog database.

Every pooled connection runs in WAL mode so a long import can write while
the CLI reads, and enforces foreign keys: the ``ON DELETE SET NULL``
references from ``materials`` to the category, supplier and unit tables
only take effect with ``PRAGMA foreign_keys=ON``.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from src.config import get_logger, get_settings

logger = get_logger(__name__)

# Applied to every connection, in order
CATALOG_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)


class ConnectionPool:
    """
    Fixed-size pool of catalog database connections.

    Connections are opened on first use and handed out through an
    ``asyncio.Queue``; a caller waits when all of them are busy.

    Args:
        db_path: Catalog database file, created with its parent directory.
        pool_size: Number of connections kept open.
        busy_timeout: Milliseconds SQLite waits on a locked database.
    """

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 5,
        busy_timeout: int = 30000,
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout

        self._idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=pool_size)
        self._opened: list[aiosqlite.Connection] = []
        self._ready = False
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        """Open the catalog connections. Safe to call twice."""
        async with self._lock:
            if self._ready:
                return

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(self.pool_size):
                conn = await self._open()
                self._opened.append(conn)
                self._idle.put_nowait(conn)

            self._ready = True
            logger.info(
                "catalog_pool_opened",
                db_path=str(self.db_path),
                pool_size=self.pool_size,
            )

    async def _open(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        for pragma in CATALOG_PRAGMAS:
            await conn.execute(pragma)
        await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout}")
        conn.row_factory = aiosqlite.Row
        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection for reads; it goes back to the pool on exit."""
        if not self._ready:
            await self.initialize()

        conn = await self._idle.get()
        try:
            yield conn
        finally:
            self._idle.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection for writes: commit on exit, roll back on error."""
        async with self.acquire() as conn:
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    async def close(self) -> None:
        """Close every connection. The pool reopens on the next acquire."""
        async with self._lock:
            for conn in self._opened:
                await conn.close()
            self._opened.clear()
            self._idle = asyncio.Queue(maxsize=self.pool_size)
            self._ready = False
            logger.info("catalog_pool_closed", db_path=str(self.db_path))


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Pool for the catalog database named by ``settings.storage``."""
    global _pool
    if _pool is None:
        storage = get_settings().storage
        _pool = ConnectionPool(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
        )
        await _pool.initialize()
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncIterator[aiosqlite.Connection]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


@asynccontextmanager
async def get_transaction() -> AsyncIterator[aiosqlite.Connection]:
    pool = await get_pool()
    async with pool.transaction() as conn:
        yield conn
