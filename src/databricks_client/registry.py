"""
Sharing of connection pools between clients with the same connection
parameters.

A PoolRegistry is an ordinary object that can be passed to
Client.Builder.with_pool_registry(). Clients that are not given one use
the process-wide registry from get_default_registry().
"""
import atexit
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .config import AuthConfig, PoolingConfig, SQLConfig
from .connection import Connection
from .pool import ConnectionPool

logger = logging.getLogger(__name__)

ConnectionFactoryBuilder = Callable[[AuthConfig, SQLConfig], Callable[[], Connection]]


@dataclass(frozen=True)
class PoolKey:
    """
    Fingerprint of the fields that decide pool sharing. Pool sizes and the
    acquire timeout are not part of it.
    """
    host: str
    token: str = field(repr=False)
    http_path: str
    timeout_seconds: int
    driver: str

    @classmethod
    def from_config(cls, auth: AuthConfig, sql: SQLConfig) -> "PoolKey":
        return cls(
            host=auth.host,
            token=auth.token,
            http_path=sql.http_path,
            timeout_seconds=auth.timeout_seconds,
            driver=sql.driver,
        )


class PoolRegistry:
    """
    Maps PoolKey -> ConnectionPool.

    The first get_pool() for a key decides the pool's sizes and timeout;
    later callers with different tunables receive that same pool.
    """

    def __init__(self, connection_factory_builder: Optional[ConnectionFactoryBuilder] = None):
        self._pools: Dict[PoolKey, ConnectionPool] = {}
        self._lock = threading.Lock()
        self._factory_builder = connection_factory_builder

    def get_pool(
        self, auth: AuthConfig, sql: SQLConfig, pooling: PoolingConfig
    ) -> ConnectionPool:
        key = PoolKey.from_config(auth, sql)
        with self._lock:
            existing = self._pools.get(key)
            if existing is not None:
                if (
                    existing.min_connections != pooling.min_connections
                    or existing.max_connections != pooling.max_connections
                    or existing.connection_timeout_ms != pooling.connection_timeout_ms
                ):
                    logger.debug(
                        f"Reusing pool for {auth.host} with its original settings "
                        f"(min={existing.min_connections}, max={existing.max_connections}); "
                        "requested pool settings are ignored"
                    )
                return existing

            factory = self._factory_builder(auth, sql) if self._factory_builder else None
            pool = ConnectionPool(
                auth,
                sql,
                min_connections=pooling.min_connections,
                max_connections=pooling.max_connections,
                connection_timeout_ms=pooling.connection_timeout_ms,
                connection_factory=factory,
            )
            self._pools[key] = pool
            logger.info(
                f"Created connection pool for {auth.host}{sql.http_path} "
                f"(min={pooling.min_connections}, max={pooling.max_connections})"
            )
            return pool

    def shutdown_all(self) -> None:
        """
        Shut down and forget every pool. Callers must make sure no other
        thread is still using the registry.
        """
        with self._lock:
            pools = list(self._pools.values())
            self._pools.clear()
            for pool in pools:
                pool.shutdown()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pools)

    def __contains__(self, key: PoolKey) -> bool:
        with self._lock:
            return key in self._pools


_default_registry: Optional[PoolRegistry] = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> PoolRegistry:
    """
    Returns the process-wide registry, creating it on first use.
    Uses double-checked locking to keep the common path lock-free.
    """
    global _default_registry
    registry = _default_registry
    if registry is not None:
        return registry

    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = PoolRegistry()
            atexit.register(_default_registry.shutdown_all)
        return _default_registry


def shutdown_all() -> None:
    """Shut down every pool in the process-wide registry, if it exists."""
    registry = _default_registry
    if registry is not None:
        registry.shutdown_all()
