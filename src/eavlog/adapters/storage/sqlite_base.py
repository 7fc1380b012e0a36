"""Transactional access to the SQLite database behind an event store.

Both classes hand out one connection per transaction. A file database gets a
fresh connection each time and relies on SQLite's own locking between them.
An in-memory database only exists for as long as its connection, so a single
connection is kept open and shared; each transaction then holds a lock on it
from its first statement until commit or rollback, otherwise a rollback in
one caller would discard rows another caller has not committed yet.
"""

import asyncio
import logging
import sqlite3
import threading
from collections.abc import AsyncIterator, Iterator
from contextlib import (
    AbstractAsyncContextManager,
    AbstractContextManager,
    asynccontextmanager,
    contextmanager,
    nullcontext,
)

import aiosqlite

from eavlog.core.errors import TransactionError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class SQLiteDatabase:
    """Blocking (sqlite3) database with the event schema applied.

    Safe to share between threads: the in-memory connection is opened with
    ``check_same_thread=False`` and only ever used under ``_shared_lock``.
    """

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._setup_lock = threading.Lock()
        self._shared_lock = threading.RLock()
        self._ready = False
        self._shared: sqlite3.Connection | None = None

    @property
    def is_memory(self) -> bool:
        return self._db_path == MEMORY_DB

    def _prepare(self) -> None:
        with self._setup_lock:
            if self._ready:
                return
            if self.is_memory:
                self._shared = sqlite3.connect(MEMORY_DB, check_same_thread=False)
                self._shared.executescript(self._schema)
            else:
                conn = sqlite3.connect(self._db_path)
                try:
                    conn.execute("PRAGMA journal_mode=WAL")
                    conn.executescript(self._schema)
                finally:
                    conn.close()
            logger.debug("Prepared event schema in %s", self._db_path)
            self._ready = True

    def _guard(self) -> AbstractContextManager[object]:
        return self._shared_lock if self.is_memory else nullcontext()

    @contextmanager
    def transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Run the block as one transaction named ``operation``.

        Commits when the block completes and rolls back when it raises.

        Raises:
            TransactionError: SQLite failed while opening, running, committing
                or rolling back. The ``sqlite3.Error`` is chained.
        """
        with self._guard():
            try:
                if not self._ready:
                    self._prepare()
                if self.is_memory:
                    conn = self._shared
                    if conn is None:
                        raise RuntimeError("In-memory database is closed")
                else:
                    conn = sqlite3.connect(self._db_path)
                try:
                    try:
                        yield conn
                    except BaseException:
                        conn.rollback()
                        logger.debug("Rolled back %s", operation)
                        raise
                    conn.commit()
                finally:
                    if not self.is_memory:
                        conn.close()
            except sqlite3.Error as exc:
                raise TransactionError(operation, str(exc)) from exc

    def close(self) -> None:
        """Close the shared in-memory connection, discarding its data."""
        with self._guard():
            if self._shared is not None:
                self._shared.close()
                self._shared = None
            self._ready = False


class AsyncSQLiteDatabase:
    """Asyncio (aiosqlite) counterpart of SQLiteDatabase.

    An in-memory database here is separate from any SQLiteDatabase one.
    """

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._ready = False
        self._shared: aiosqlite.Connection | None = None
        # Created on first use so they bind to the running loop.
        self._setup_lock: asyncio.Lock | None = None
        self._shared_lock: asyncio.Lock | None = None

    @property
    def is_memory(self) -> bool:
        return self._db_path == MEMORY_DB

    async def _prepare(self) -> None:
        if self._setup_lock is None:
            self._setup_lock = asyncio.Lock()
        async with self._setup_lock:
            if self._ready:
                return
            if self.is_memory:
                self._shared = await aiosqlite.connect(MEMORY_DB)
                await self._shared.executescript(self._schema)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(self._schema)
            logger.debug("Prepared event schema in %s", self._db_path)
            self._ready = True

    def _guard(self) -> AbstractAsyncContextManager[object]:
        if not self.is_memory:
            return nullcontext()
        if self._shared_lock is None:
            self._shared_lock = asyncio.Lock()
        return self._shared_lock

    @asynccontextmanager
    async def transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Run the block as one transaction named ``operation``.

        Raises:
            TransactionError: SQLite failed. The ``sqlite3.Error`` is chained.
        """
        try:
            if not self._ready:
                await self._prepare()
            async with self._guard():
                if self.is_memory:
                    db = self._shared
                    if db is None:
                        raise RuntimeError("In-memory database is closed")
                else:
                    db = await aiosqlite.connect(self._db_path)
                try:
                    try:
                        yield db
                    except BaseException:
                        await db.rollback()
                        logger.debug("Rolled back %s", operation)
                        raise
                    await db.commit()
                finally:
                    if not self.is_memory:
                        await db.close()
        except sqlite3.Error as exc:
            raise TransactionError(operation, str(exc)) from exc

    async def close(self) -> None:
        """Close the shared in-memory connection, discarding its data."""
        async with self._guard():
            if self._shared is not None:
                await self._shared.close()
                self._shared = None
            self._ready = False
