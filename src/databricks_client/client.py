"""
User-facing SQL client.

A client either owns one dedicated connection (direct) or borrows from a
shared pool (pooled). Pooled clients hold no connection of their own.

    client = (
        Client.builder()
        .with_environment_config()
        .with_pooling(PoolingConfig(enabled=True, min_connections=2, max_connections=5))
        .build()
    )
    rows = client.query("SELECT * FROM t WHERE id = ?", [Parameter("42")])
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Sequence

from .config import (
    DEFAULT_PROFILE,
    AuthConfig,
    PoolingConfig,
    RetryConfig,
    SQLConfig,
)
from .connection import Connection, Parameter, Rows, bind_values
from .errors import DatabricksConfigError
from .pool import ConnectionPool, PoolStats
from .registry import PoolRegistry, get_default_registry
from .retry import RetryPolicy
from .sanitize import redact

logger = logging.getLogger(__name__)

QUERY_PREVIEW_LEN = 100


class Client:
    """
    Executes SQL against a Databricks warehouse or cluster, with retry.

    Build instances with Client.builder(); the builder validates the
    configuration before anything is constructed.
    """

    class Builder:
        def __init__(self):
            self._auth: Optional[AuthConfig] = None
            self._sql: Optional[SQLConfig] = None
            self._pooling: Optional[PoolingConfig] = None
            self._retry: Optional[RetryConfig] = None
            self._registry: Optional[PoolRegistry] = None
            self._auto_connect = False

        def with_auth(self, auth: AuthConfig) -> "Client.Builder":
            self._auth = auth
            return self

        def with_sql(self, sql: SQLConfig) -> "Client.Builder":
            self._sql = sql
            return self

        def with_pooling(self, pooling: PoolingConfig) -> "Client.Builder":
            self._pooling = pooling
            return self

        def with_retry(self, retry: RetryConfig) -> "Client.Builder":
            self._retry = retry
            return self

        def with_pool_registry(self, registry: PoolRegistry) -> "Client.Builder":
            self._registry = registry
            return self

        def with_auto_connect(self, enable: bool = True) -> "Client.Builder":
            self._auto_connect = enable
            return self

        def with_environment_config(self, profile: str = DEFAULT_PROFILE) -> "Client.Builder":
            """Load auth and SQL settings from ~/.databrickscfg or the environment."""
            self._auth = AuthConfig.from_environment(profile)
            self._sql = SQLConfig.from_environment(profile)
            return self

        def build(self) -> "Client":
            if self._auth is None:
                raise DatabricksConfigError(
                    "AuthConfig is required. Call with_auth() or with_environment_config()"
                )
            if self._sql is None:
                raise DatabricksConfigError(
                    "SQLConfig is required. Call with_sql() or with_environment_config()"
                )
            pooling = self._pooling or PoolingConfig()
            retry = self._retry or RetryConfig()

            self._auth.validate()
            self._sql.validate()
            if pooling.enabled:
                pooling.validate()
            if retry.enabled:
                retry.validate()

            return Client(
                self._auth,
                self._sql,
                pooling=pooling,
                retry=retry,
                auto_connect=self._auto_connect,
                registry=self._registry,
            )

    @classmethod
    def builder(cls) -> "Client.Builder":
        return cls.Builder()

    def __init__(
        self,
        auth: AuthConfig,
        sql: SQLConfig,
        pooling: Optional[PoolingConfig] = None,
        retry: Optional[RetryConfig] = None,
        auto_connect: bool = False,
        registry: Optional[PoolRegistry] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._auth = auth
        self._sql = sql
        self._pooling = pooling or PoolingConfig()
        self._retry = retry or RetryConfig()
        self._retry_policy = retry_policy or RetryPolicy(self._retry, secrets=(auth.token,))

        self._pool: Optional[ConnectionPool] = None
        self._connection: Optional[Connection] = None
        self._connect_lock = threading.Lock()
        self._pending_connect: Optional[Future] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

        logger.debug("Initializing Databricks client")

        if self._pooling.enabled:
            logger.info(
                f"Connection pooling enabled (min: {self._pooling.min_connections}, "
                f"max: {self._pooling.max_connections})"
            )
            if registry is None:
                registry = get_default_registry()
            self._pool = registry.get_pool(auth, sql, self._pooling)
            if auto_connect:
                logger.debug("Starting async pool warm-up")
                self._pool.warm_up_async().add_done_callback(self._log_warm_up_failure)
            return

        logger.debug("Using a dedicated connection (non-pooled)")
        self._connection = Connection(auth, sql)
        if auto_connect:
            self.connect()

    @property
    def auth_config(self) -> AuthConfig:
        return self._auth

    @property
    def sql_config(self) -> SQLConfig:
        return self._sql

    @property
    def pooling_config(self) -> PoolingConfig:
        return self._pooling

    @property
    def retry_config(self) -> RetryConfig:
        return self._retry

    @property
    def is_pooled(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> Optional[ConnectionPool]:
        return self._pool

    def is_configured(self) -> bool:
        """Pooled clients are ready once configured; direct clients must also be connected."""
        configured = self._auth.is_valid() and self._sql.is_valid()
        if self._pool is not None:
            return configured
        return configured and self._connection is not None and self._connection.connected

    def pool_stats(self) -> Optional[PoolStats]:
        return self._pool.stats() if self._pool is not None else None

    def _log_warm_up_failure(self, future: "Future[None]") -> None:
        error = future.exception()
        if error is not None:
            logger.warning(
                f"Background pool warm-up failed: {redact(str(error), self._auth.token)}"
            )

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._connect_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=2, thread_name_prefix="databricks-client"
                )
            return self._executor

    def connect(self) -> None:
        """
        Pooled clients warm up their pool. Direct clients open their
        connection, first waiting out any connect_async() still in flight.
        """
        if self._pool is not None:
            self._pool.warm_up()
            return
        self._wait_for_pending_connect()
        self._connection.connect()

    def connect_async(self) -> "Future[None]":
        if self._pool is not None:
            return self._pool.warm_up_async()

        future = self._get_executor().submit(self._connection.connect)
        with self._connect_lock:
            self._pending_connect = future
        return future

    def _wait_for_pending_connect(self) -> None:
        with self._connect_lock:
            pending = self._pending_connect
        if pending is None:
            return
        try:
            pending.result()
        except Exception as e:
            # The synchronous connect that follows reports its own error.
            logger.debug(f"Pending async connect failed: {e.__class__.__name__}")
        finally:
            with self._connect_lock:
                if self._pending_connect is pending:
                    self._pending_connect = None

    def _ensure_connected(self) -> Connection:
        self._wait_for_pending_connect()
        if not self._connection.connected:
            self._connection.connect()
        return self._connection

    def disconnect(self) -> None:
        """Close the dedicated connection; the client stays usable. No-op when pooled."""
        if self._pool is not None:
            return
        self._wait_for_pending_connect()
        self._connection.close()

    def query(self, sql: str, params: Optional[Sequence[Parameter]] = None) -> Rows:
        """
        Run a statement and return its rows as lists of strings.

        Parameters are bound positionally to `?` placeholders through the
        driver, never interpolated. SQL NULL comes back as "".
        """
        params = list(params or [])
        if logger.isEnabledFor(logging.DEBUG):
            preview = sql if len(sql) <= QUERY_PREVIEW_LEN else sql[:QUERY_PREVIEW_LEN] + "..."
            logger.debug(f"Executing query: {preview} (params: {len(params)})")

        # Binding errors are deterministic: report them before any retry or pool wait.
        bind_values(sql, params)

        if self._pool is not None:
            pool = self._pool

            def run() -> Rows:
                with pool.acquire() as conn:
                    return conn.query(sql, params)
        else:
            def run() -> Rows:
                return self._ensure_connected().query(sql, params)

        rows = self._retry_policy.execute_with_retry(run, "query")
        logger.info(f"Query completed successfully, {len(rows)} rows returned")
        return rows

    def query_async(
        self, sql: str, params: Optional[Sequence[Parameter]] = None
    ) -> "Future[Rows]":
        return self._get_executor().submit(self.query, sql, list(params or []))

    def close(self) -> None:
        """Release the dedicated connection and background threads. The shared pool is left alone."""
        if self._closed:
            return
        self._closed = True
        if self._pool is None:
            self.disconnect()
        with self._connect_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        mode = "pooled" if self._pool is not None else "direct"
        return f"Client(host={self._auth.host!r}, http_path={self._sql.http_path!r}, {mode})"
