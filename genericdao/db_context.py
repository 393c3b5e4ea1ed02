import logging
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

import asyncpg

from genericdao.exceptions import StorageConnectionError

logger = logging.getLogger(__name__)

_db_pools: dict[str, asyncpg.Pool] = {}


@runtime_checkable
class ConnectionProvider(Protocol):
    """Hands out connections for a single mapper call.

    acquire() raises StorageConnectionError when no connection can be had.
    release() accepts None, may be called twice for the same connection and
    never raises.
    """

    async def acquire(self) -> Any: ...

    async def release(self, connection: Any) -> None: ...


class PoolConnectionProvider:
    """ConnectionProvider backed by an asyncpg pool"""

    def __init__(self, pool: asyncpg.Pool, *, timeout: float | None = None):
        self.pool = pool
        self.timeout = timeout

    async def acquire(self) -> asyncpg.Connection:
        try:
            return await self.pool.acquire(timeout=self.timeout)
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise StorageConnectionError(f"Cannot acquire connection: {e}") from e

    async def release(self, connection: asyncpg.Connection | None) -> None:
        if connection is None:
            return
        try:
            await self.pool.release(connection)
        except Exception as e:  # release must never raise
            logger.debug("Ignoring failed connection release: %s", e)


@dataclass
class QueryLog:
    """Represents a logged query"""

    query: str
    params: list[Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    stack_trace: str | None = None

    def __repr__(self) -> str:
        return f"QueryLog(query={self.query!r}, params={self.params!r}, timestamp={self.timestamp})"


class QueryTracker:
    """Tracks queries executed during a context"""

    def __init__(self):
        self.queries: list[QueryLog] = []
        self._enabled: bool = False

    def enable(self):
        self._enabled = True

    def disable(self):
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def log_query(self, query: str, params: list[Any], stack_trace: str | None = None):
        """Log a query with its parameters and optional stack trace"""
        if self._enabled:
            self.queries.append(
                QueryLog(query=query, params=list(params), stack_trace=stack_trace)
            )

    def get_queries(self) -> list[QueryLog]:
        return self.queries.copy()

    def get_sql(self) -> list[str]:
        """Return just the SQL text of the logged queries, in order"""
        return [log.query for log in self.queries]

    def clear(self):
        self.queries.clear()

    def count(self) -> int:
        return len(self.queries)

    def to_dict(self) -> list[dict[str, Any]]:
        """Convert logged queries to a list of dictionaries"""
        return [
            {
                "query": log.query,
                "params": log.params,
                "timestamp": log.timestamp.isoformat(),
                "stack_trace": log.stack_trace,
            }
            for log in self.queries
        ]


_query_tracker: ContextVar[QueryTracker | None] = ContextVar(
    "query_tracker", default=None
)


class DatabaseManager:
    """Manages named pools, scoped connections and query tracking"""

    @classmethod
    async def add_pool(cls, name: str, pool: asyncpg.Pool):
        """Add a database pool with a name"""
        _db_pools[name] = pool

    @classmethod
    async def get_pool(cls, name: str = "default") -> asyncpg.Pool:
        """Get a database pool by name"""
        if name not in _db_pools:
            raise ValueError(f"Database pool '{name}' not found")
        return _db_pools[name]

    @classmethod
    def remove_pool(cls, name: str) -> asyncpg.Pool | None:
        """Forget a pool; closing it is up to the caller"""
        return _db_pools.pop(name, None)

    @classmethod
    def provider(cls, name: str = "default") -> "NamedPoolProvider":
        """Connection provider resolving the named pool at acquire time"""
        return NamedPoolProvider(name)

    @classmethod
    def get_query_tracker(cls) -> QueryTracker | None:
        return _query_tracker.get()

    @classmethod
    def log_query(cls, query: str, params: list[Any]):
        """Log a query to the current query tracker if available"""
        logger.debug("Executing %s params=%r", query, params)
        tracker = _query_tracker.get()
        if tracker:
            # Skip this frame and the DatabaseOperations frame
            stack = traceback.extract_stack()[:-2]
            tracker.log_query(query, params, "".join(traceback.format_list(stack)))

    @classmethod
    @asynccontextmanager
    async def connection(cls, provider: ConnectionProvider) -> AsyncIterator[Any]:
        """Borrow one connection for the duration of the block.

        The connection goes back to the provider when the block exits, whether
        it exits normally or through an exception.
        """
        conn = await provider.acquire()
        try:
            yield conn
        finally:
            await provider.release(conn)

    @classmethod
    @asynccontextmanager
    async def track_queries(cls) -> AsyncIterator[QueryTracker]:
        """Context manager for query tracking.

        async with DatabaseManager.track_queries() as tracker:
            await people.find_by_id(7)
            queries = tracker.get_queries()
        """
        current_tracker = _query_tracker.get()

        if current_tracker:
            was_enabled = current_tracker.is_enabled()
            current_tracker.enable()
            try:
                yield current_tracker
            finally:
                if not was_enabled:
                    current_tracker.disable()
        else:
            tracker = QueryTracker()
            tracker.enable()
            token = _query_tracker.set(tracker)
            try:
                yield tracker
            finally:
                _query_tracker.reset(token)


class NamedPoolProvider:
    """ConnectionProvider that looks up a DatabaseManager pool by name"""

    def __init__(self, name: str = "default"):
        self.name = name
        # Pool each outstanding connection came from, keyed by id(connection)
        self._lenders: dict[int, asyncpg.Pool] = {}

    async def acquire(self) -> asyncpg.Connection:
        try:
            pool = await DatabaseManager.get_pool(self.name)
        except ValueError as e:
            raise StorageConnectionError(str(e)) from e
        conn = await PoolConnectionProvider(pool).acquire()
        self._lenders[id(conn)] = pool
        return conn

    async def release(self, connection: asyncpg.Connection | None) -> None:
        if connection is None:
            return
        pool = self._lenders.pop(id(connection), None)
        if pool is None:
            return
        await PoolConnectionProvider(pool).release(connection)
