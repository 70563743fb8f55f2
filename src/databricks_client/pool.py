"""
Bounded pool of SQL connections for one (host, credentials, path) triple.

The pool lends out handles wrapped in PooledConnection, which returns
them on release. Usage:

    with pool.acquire() as conn:
        rows = conn.query("SELECT 1")
    # connection is back in the pool here, even if query() raised

Handles are only ever created inside the pool, by its connection factory.
The factory builds direct connections and never goes back through the
registry.
"""
import collections
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

from .config import AuthConfig, SQLConfig
from .connection import Connection
from .errors import DatabricksConfigError, PoolError, PoolShutdownError, PoolTimeoutError

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], Connection]


@dataclass(frozen=True)
class PoolStats:
    """Point-in-time snapshot of pool counters."""
    total_connections: int
    available_connections: int
    active_connections: int


class PooledConnection:
    """
    Owns one connection on loan from a pool.

    release() hands the connection back exactly once; later calls, and
    releases after transfer(), do nothing. Attribute access is forwarded
    to the wrapped connection, so `pooled.query(...)` works directly.
    """

    def __init__(self, connection: Connection, pool: "ConnectionPool"):
        self._connection: Optional[Connection] = connection
        self._pool: Optional["ConnectionPool"] = pool

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            raise PoolError("PooledConnection has already been released")
        return self._connection

    @property
    def released(self) -> bool:
        return self._connection is None

    def release(self) -> None:
        connection, pool = self._connection, self._pool
        self._connection = None
        self._pool = None
        if connection is not None and pool is not None:
            pool.release(connection)

    def transfer(self) -> "PooledConnection":
        """Move ownership to a new wrapper; this one becomes an empty shell."""
        moved = PooledConnection(self.connection, self._pool)
        self._connection = None
        self._pool = None
        return moved

    def __getattr__(self, name):
        # Only reached for names not defined on PooledConnection itself.
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.connection, name)

    def __copy__(self):
        raise TypeError("PooledConnection cannot be copied; use transfer()")

    def __deepcopy__(self, memo):
        raise TypeError("PooledConnection cannot be copied; use transfer()")

    def __enter__(self) -> "PooledConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __del__(self):
        connection = getattr(self, "_connection", None)
        pool = getattr(self, "_pool", None)
        if connection is None or pool is None:
            return
        self._connection = None
        self._pool = None
        logger.warning("PooledConnection garbage-collected without release()")
        # The collector may run while this thread holds the pool lock, so
        # the handle is queued and reclaimed by the pool's next locked call.
        pool._orphans.append(connection)


class ConnectionPool:
    """
    Bounded, thread-safe pool.

    Invariants while not shut down:
      0 <= active <= total <= max_connections
      available == total - active
    """

    def __init__(
        self,
        auth: AuthConfig,
        sql: SQLConfig,
        min_connections: int = 1,
        max_connections: int = 10,
        connection_timeout_ms: int = 5000,
        connection_factory: Optional[ConnectionFactory] = None,
    ):
        if min_connections > max_connections:
            raise DatabricksConfigError("min_connections cannot exceed max_connections")
        if max_connections <= 0:
            raise DatabricksConfigError("max_connections must be positive")

        self._auth = auth
        self._sql = sql
        self.min_connections = min_connections
        self.max_connections = max_connections
        self.connection_timeout_ms = connection_timeout_ms
        self._factory = connection_factory or self._create_direct_connection

        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._available: Deque[Connection] = collections.deque()
        self._in_use: Dict[int, Connection] = {}
        self._total = 0
        self._active = 0
        self._shutdown = False
        # Appended without the lock by PooledConnection.__del__.
        self._orphans: Deque[Connection] = collections.deque()

        self._executor: Optional[ThreadPoolExecutor] = None

    def _create_direct_connection(self) -> Connection:
        conn = Connection(self._auth, self._sql)
        conn.connect()
        return conn

    def _create_reserved(self) -> Connection:
        """Create a connection for a slot already counted in total and active."""
        try:
            conn = self._factory()
        except BaseException:
            with self._cond:
                self._total -= 1
                self._active -= 1
                # The freed slot may let a waiter create its own connection.
                self._cond.notify()
            raise
        logger.debug("Created pooled connection")
        return conn

    def acquire(self, timeout: Optional[float] = None) -> PooledConnection:
        """
        Borrow a connection, waiting up to `timeout` seconds (the pool's
        connection_timeout_ms when omitted).

        Raises PoolShutdownError if the pool is shut down, PoolTimeoutError
        if nothing became available in time.
        """
        if timeout is None:
            timeout = self.connection_timeout_ms / 1000.0
        deadline = time.monotonic() + timeout
        self._reclaim_orphans()

        with self._cond:
            while True:
                if self._shutdown:
                    raise PoolShutdownError("ConnectionPool has been shut down")

                if self._available:
                    conn = self._available.popleft()
                    self._active += 1
                    self._in_use[id(conn)] = conn
                    return PooledConnection(conn, self)

                if self._total < self.max_connections:
                    self._total += 1
                    self._active += 1
                    break

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise PoolTimeoutError(
                        f"Timeout waiting for connection from pool after {timeout:.3f}s "
                        f"(max_connections={self.max_connections})"
                    )
                self._cond.wait(remaining)

        conn = self._create_reserved()
        with self._cond:
            if self._shutdown:
                self._total -= 1
                self._active -= 1
                discard = True
            else:
                self._in_use[id(conn)] = conn
                discard = False
        if discard:
            conn.close()
            raise PoolShutdownError("ConnectionPool has been shut down")
        return PooledConnection(conn, self)

    def _return_locked(self, conn: Connection) -> bool:
        """
        Put a loaned connection back. Caller holds the lock. Returns True
        when the connection must be closed instead (pool shut down), False
        when it went back to the idle queue or was not on loan.
        """
        if self._in_use.pop(id(conn), None) is None:
            logger.warning("Ignoring release of a connection not on loan from this pool")
            return False
        self._active -= 1
        if self._shutdown:
            self._total -= 1
            return True
        self._available.append(conn)
        self._cond.notify()
        return False

    def _reclaim_orphans(self) -> None:
        """Return connections queued by garbage-collected wrappers."""
        if not self._orphans:
            return
        discard = []
        with self._cond:
            while self._orphans:
                conn = self._orphans.popleft()
                if self._return_locked(conn):
                    discard.append(conn)
        for conn in discard:
            conn.close()

    def release(self, conn: Connection) -> None:
        """
        Return a borrowed connection. Never blocks. Releasing a connection
        that is not on loan is a no-op.
        """
        self._reclaim_orphans()
        with self._cond:
            discard = self._return_locked(conn)
        if discard:
            conn.close()

    def warm_up(self) -> None:
        """
        Create connections until min_connections exist. Connections that
        already exist count towards the minimum.
        """
        while True:
            with self._cond:
                if self._shutdown:
                    raise PoolShutdownError("Cannot warm up: pool is shut down")
                if self._total >= self.min_connections:
                    return
                self._total += 1
                self._active += 1

            conn = self._create_reserved()
            with self._cond:
                self._active -= 1
                if self._shutdown:
                    self._total -= 1
                    discard = True
                else:
                    self._available.append(conn)
                    self._cond.notify()
                    discard = False
            if discard:
                conn.close()
                raise PoolShutdownError("Cannot warm up: pool is shut down")

    def warm_up_async(self) -> "Future[None]":
        """Run warm_up() on a background thread."""
        with self._lock:
            if self._shutdown:
                failed: "Future[None]" = Future()
                failed.set_exception(PoolShutdownError("Cannot warm up: pool is shut down"))
                return failed
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="databricks-pool-warmup"
                )
            executor = self._executor
        return executor.submit(self.warm_up)

    def stats(self) -> PoolStats:
        self._reclaim_orphans()
        with self._lock:
            return PoolStats(
                total_connections=self._total,
                available_connections=len(self._available),
                active_connections=self._active,
            )

    @property
    def is_shutdown(self) -> bool:
        with self._lock:
            return self._shutdown

    def shutdown(self) -> None:
        """
        Close idle connections and refuse further acquires. Connections
        still on loan are closed when released. Idempotent.
        """
        self._reclaim_orphans()
        with self._cond:
            if self._shutdown:
                return
            self._shutdown = True
            idle = list(self._available)
            self._available.clear()
            self._total -= len(idle)
            self._cond.notify_all()
            executor, self._executor = self._executor, None

        logger.info(f"Shutting down connection pool ({len(idle)} idle connections)")
        for conn in idle:
            conn.close()
        if executor is not None:
            executor.shutdown(wait=False)

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        s = self.stats()
        return (
            f"ConnectionPool(min={self.min_connections}, max={self.max_connections}, "
            f"total={s.total_connections}, available={s.available_connections}, "
            f"active={s.active_connections})"
        )
