"""
Counter Store

Durable per-country lookup counts in a SQLite file, behind a non-blocking API.

Design Decisions:
- One aiosqlite connection for the store's lifetime; aiosqlite keeps the
  blocking sqlite3 driver on its own thread
- A single consumer task owns that connection: operations are queued as units
  of work and each caller awaits its own response future
- Units of work run strictly in submission order, each in its own
  transaction, so two increments for the same code apply in the order they
  were submitted
- Increment is a single INSERT ... ON CONFLICT DO UPDATE statement, never a
  read-then-write pair
- No retries and no pooling: failures surface as BackendError and the caller
  decides what to do with them
"""

import asyncio
import logging
from functools import partial
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlmodel import SQLModel

from geo_analytics.core.exceptions import BackendError
from geo_analytics.db.models import CountryCounter
from geo_analytics.db.sqlite_adapter import create_sqlite_engine

logger = logging.getLogger(__name__)

CountryCounts = List[Tuple[str, int]]
Job = Callable[[AsyncConnection], Awaitable[Any]]

analytics_table = CountryCounter.__table__

# Queued after the last unit of work to stop the consumer
_STOP = None


async def _bootstrap(connection: AsyncConnection) -> None:
    await connection.run_sync(
        SQLModel.metadata.create_all, tables=[analytics_table], checkfirst=True
    )


async def _increment(iso_code: str, connection: AsyncConnection) -> None:
    statement = sqlite_insert(analytics_table).values(iso_code=iso_code, count=1)
    statement = statement.on_conflict_do_update(
        index_elements=[analytics_table.c.iso_code],
        set_={"count": analytics_table.c["count"] + 1},
    )
    await connection.execute(statement)


async def _list_counts(connection: AsyncConnection) -> CountryCounts:
    statement = select(analytics_table.c.iso_code, analytics_table.c["count"])
    result = await connection.execute(statement)
    return [(iso_code, count) for iso_code, count in result.all()]


async def _get_count(iso_code: str, connection: AsyncConnection) -> int:
    statement = select(analytics_table.c["count"]).where(analytics_table.c.iso_code == iso_code)
    result = await connection.execute(statement)
    count = result.scalar_one_or_none()
    return count if count is not None else 0


class CounterStore:
    """
    Persistent lookup counters keyed by country code.

    Create with ``await CounterStore.open(path)``. The handle can be shared by
    any number of concurrent tasks on the loop that opened it; they never
    touch the connection directly.
    """

    def __init__(self, engine: AsyncEngine, path: str):
        """
        Start the consumer task for ``engine``. Prefer CounterStore.open().

        Must be called with a running event loop.

        Args:
            engine: Engine holding the single connection
            path: Database file path (informational)
        """
        self._engine = engine
        self.path = path
        self._closed = False
        self._connection: Optional[AsyncConnection] = None
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._consumer = asyncio.create_task(
            self._consume(), name=f"counter-store:{path}"
        )

    @classmethod
    async def open(cls, path: str) -> "CounterStore":
        """
        Open (or create) the store at ``path`` and make sure the table exists.

        Safe to call on every startup: the bootstrap never drops or resets
        existing counts. If the open fails or is cancelled, the connection is
        released before the error propagates.

        Raises:
            BackendError: If the file cannot be opened or the bootstrap fails
        """
        store = cls(create_sqlite_engine(path), path)
        try:
            await store._dispatch(_bootstrap)
        except BaseException:
            await store.close()
            raise
        logger.info(f"Counter store opened at {path}")
        return store

    @property
    def closed(self) -> bool:
        return self._closed

    async def _consume(self) -> None:
        try:
            while True:
                item = await self._queue.get()
                if item is _STOP:
                    break
                job, response = item
                await self._execute(job, response)
        finally:
            await self._disconnect()

    async def _execute(self, job: Job, response: asyncio.Future) -> None:
        result: Any = None
        error: Optional[BaseException] = None
        try:
            if self._connection is None:
                self._connection = await self._engine.connect()
            async with self._connection.begin():
                result = await job(self._connection)
        except SQLAlchemyError as e:
            error = BackendError(str(e), original_error=e)
        except Exception as e:
            # Not a database failure; hand it to the caller unchanged
            error = e

        if response.done():
            # Caller stopped waiting (cancelled); the work ran anyway
            return
        if error is not None:
            response.set_exception(error)
        else:
            response.set_result(result)

    async def _disconnect(self) -> None:
        if self._connection is not None:
            try:
                await self._connection.close()
            except SQLAlchemyError:
                logger.warning(f"Failed to close connection to {self.path}", exc_info=True)
            self._connection = None
        await self._engine.dispose()

    def _dispatch(self, job: Job) -> asyncio.Future:
        """Queue a unit of work and return its pending response."""
        response = asyncio.get_running_loop().create_future()
        if self._closed:
            response.set_exception(BackendError(f"counter store at {self.path} is closed"))
        else:
            self._queue.put_nowait((job, response))
        return response

    def increment_nowait(self, iso_code: str) -> asyncio.Future:
        """
        Submit an increment without waiting for it.

        The increment is queued before this returns, so any operation submitted
        afterwards observes it. The returned future resolves to None, or fails
        with BackendError; a failure nobody retrieves is reported by asyncio.
        """
        return self._dispatch(partial(_increment, iso_code))

    async def increment(self, iso_code: str) -> None:
        """
        Add one to the count for ``iso_code``, creating the row at 1 if absent.

        No validation is done on the code. Cancelling the await does not cancel
        the increment.

        Raises:
            BackendError: If the statement fails
        """
        await self.increment_nowait(iso_code)

    async def list(self) -> CountryCounts:
        """
        Snapshot of every (iso_code, count) row, in no particular order.

        Raises:
            BackendError: If the query fails
        """
        return await self._dispatch(_list_counts)

    async def get(self, iso_code: str) -> int:
        """Current count for ``iso_code``; 0 if it was never incremented."""
        return await self._dispatch(partial(_get_count, iso_code))

    async def close(self) -> None:
        """
        Let queued work finish, then close the connection.

        Operations submitted after close() fail with BackendError.
        """
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_STOP)
        await self._consumer
        logger.info(f"Counter store at {self.path} closed")

    async def __aenter__(self) -> "CounterStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        await self.close()
        return None
