"""Shared test fixtures and configuration for pytest."""

import itertools
import threading
from unittest.mock import Mock, patch

import pytest

from databricks_client.config import AuthConfig, PoolingConfig, RetryConfig, SQLConfig
from databricks_client.registry import PoolRegistry


class FakeConnection:
    """Stands in for databricks_client.connection.Connection without a network."""

    _ids = itertools.count(1)

    def __init__(self, rows=None):
        self.id = next(self._ids)
        self.rows = rows if rows is not None else [["1"]]
        self.connected = True
        self.closed = False
        self.queries = []
        self._lock = threading.Lock()

    def connect(self):
        self.connected = True

    def close(self):
        self.connected = False
        self.closed = True

    def query(self, statement, params=None):
        with self._lock:
            self.queries.append((statement, list(params or [])))
        return [list(row) for row in self.rows]

    def __repr__(self):
        return f"FakeConnection({self.id})"


class FakeConnectionFactory:
    """Connection factory that records every connection it creates."""

    def __init__(self):
        self.created = []
        self.fail_next = None
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            if self.fail_next is not None:
                error, self.fail_next = self.fail_next, None
                raise error
            conn = FakeConnection()
            self.created.append(conn)
            return conn

    @property
    def count(self):
        with self._lock:
            return len(self.created)


@pytest.fixture
def auth_config():
    return AuthConfig(host="https://test.databricks.com", token="dapi-secret-token")


@pytest.fixture
def sql_config():
    return SQLConfig(http_path="/sql/1.0/warehouses/abc123")


@pytest.fixture
def pooling_config():
    return PoolingConfig(
        enabled=True, min_connections=2, max_connections=5, connection_timeout_ms=200
    )


@pytest.fixture
def fast_retry_config():
    return RetryConfig(
        enabled=True,
        max_attempts=3,
        initial_backoff_ms=1,
        backoff_multiplier=2.0,
        max_backoff_ms=4,
    )


@pytest.fixture
def connection_factory():
    return FakeConnectionFactory()


@pytest.fixture
def registry(connection_factory):
    """An isolated registry whose pools build FakeConnections."""
    reg = PoolRegistry(connection_factory_builder=lambda auth, sql: connection_factory)
    yield reg
    reg.shutdown_all()


@pytest.fixture
def databrickscfg(monkeypatch, tmp_path):
    """Write a temp .databrickscfg and point the config loader at it."""

    def write(content):
        cfg_file = tmp_path / ".databrickscfg"
        cfg_file.write_text(content)
        return cfg_file

    monkeypatch.setattr(
        "databricks_client.config._get_databrickscfg_path",
        lambda: tmp_path / ".databrickscfg",
    )
    return write


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Keep real profiles, env vars and workspace clients out of every test."""
    from databricks_client import registry as registry_module
    from databricks_client import workspace

    for name in (
        "DATABRICKS_HOST",
        "DATABRICKS_SERVER_HOSTNAME",
        "DATABRICKS_TOKEN",
        "DATABRICKS_ACCESS_TOKEN",
        "DATABRICKS_TIMEOUT",
        "DATABRICKS_HTTP_PATH",
        "DATABRICKS_SQL_HTTP_PATH",
        "DATABRICKS_LOG_LEVEL",
        "DATABRICKS_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)

    monkeypatch.setattr(
        "databricks_client.config._get_databrickscfg_path",
        lambda: tmp_path / "missing.databrickscfg",
    )

    mock_sdk_config = Mock()
    monkeypatch.setattr("databricks.sdk.config.Config", lambda **kwargs: mock_sdk_config)

    workspace.clear_workspace_clients()
    yield
    workspace.clear_workspace_clients()
    registry_module.shutdown_all()


@pytest.fixture
def workspace_client():
    """Mocked WorkspaceClient returned for any credentials."""
    mock_client = Mock()
    with patch("databricks_client.workspace.WorkspaceClient", return_value=mock_client):
        yield mock_client
