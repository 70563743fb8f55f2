"""Databricks Client - SQL with connection pooling and retry, plus REST resource clients."""

import logging

__version__ = "0.1.0"

from .client import Client
from .compute import Compute
from .config import AuthConfig, PoolingConfig, RetryConfig, SQLConfig
from .connection import Connection, Parameter
from .errors import (
    DatabricksApiError,
    DatabricksConfigError,
    DatabricksConnectionError,
    DatabricksError,
    ParameterBindingError,
    PoolError,
    PoolShutdownError,
    PoolTimeoutError,
    QueryExecutionError,
    RetryExhaustedError,
)
from .jobs import Jobs
from .log import configure_logging
from .pool import ConnectionPool, PooledConnection, PoolStats
from .registry import PoolKey, PoolRegistry, get_default_registry, shutdown_all
from .retry import ErrorClass, RetryPolicy
from .secrets import Secrets
from .unity_catalog import UnityCatalog, quote_table_name

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # sql
    "Client",
    "Connection",
    "Parameter",
    # config
    "AuthConfig",
    "PoolingConfig",
    "RetryConfig",
    "SQLConfig",
    # pooling
    "ConnectionPool",
    "PooledConnection",
    "PoolStats",
    "PoolKey",
    "PoolRegistry",
    "get_default_registry",
    "shutdown_all",
    # retry
    "ErrorClass",
    "RetryPolicy",
    # rest
    "Compute",
    "Jobs",
    "Secrets",
    "UnityCatalog",
    "quote_table_name",
    # errors
    "DatabricksApiError",
    "DatabricksConfigError",
    "DatabricksConnectionError",
    "DatabricksError",
    "ParameterBindingError",
    "PoolError",
    "PoolShutdownError",
    "PoolTimeoutError",
    "QueryExecutionError",
    "RetryExhaustedError",
    # logging
    "configure_logging",
]
