"""Tests for config module."""

import pytest

from databricks_client.config import (
    AuthConfig,
    PoolingConfig,
    RetryConfig,
    SQLConfig,
)
from databricks_client.errors import DatabricksConfigError


class TestAuthConfigFromProfile:
    """Test cases for loading AuthConfig from ~/.databrickscfg."""

    def test_named_profile(self, databrickscfg):
        databrickscfg(
            """[DEFAULT]
host = https://default.databricks.com
token = default_token

[prod]
host = https://prod.databricks.com
token = prod_token
"""
        )
        auth = AuthConfig.from_profile("prod")
        assert auth.host == "https://prod.databricks.com"
        assert auth.token == "prod_token"
        assert auth.timeout_seconds == 60

    def test_default_profile(self, databrickscfg):
        databrickscfg("[DEFAULT]\nhost = https://default.databricks.com\ntoken = t\n")
        assert AuthConfig.from_profile().host == "https://default.databricks.com"

    def test_token_with_percent_sign(self, databrickscfg):
        """Test that tokens containing % are read literally."""
        databrickscfg("[dev]\nhost = https://dev.databricks.com\ntoken = abc%def%\n")
        assert AuthConfig.from_profile("dev").token == "abc%def%"

    def test_missing_file(self):
        with pytest.raises(DatabricksConfigError) as exc_info:
            AuthConfig.from_profile("dev")
        assert "config file not found" in str(exc_info.value)

    def test_missing_profile(self, databrickscfg):
        databrickscfg("[dev]\nhost = https://dev.databricks.com\ntoken = t\n")
        with pytest.raises(DatabricksConfigError) as exc_info:
            AuthConfig.from_profile("prod")
        assert "Profile [prod] not found" in str(exc_info.value)

    def test_incomplete_profile(self, databrickscfg):
        databrickscfg("[dev]\nhost = https://dev.databricks.com\n")
        with pytest.raises(DatabricksConfigError) as exc_info:
            AuthConfig.from_profile("dev")
        assert "missing required fields" in str(exc_info.value)


class TestAuthConfigFromEnv:
    """Test cases for loading AuthConfig from environment variables."""

    def test_primary_names(self, monkeypatch):
        monkeypatch.setenv("DATABRICKS_HOST", "https://env.databricks.com")
        monkeypatch.setenv("DATABRICKS_TOKEN", "env_token")
        monkeypatch.setenv("DATABRICKS_TIMEOUT", "30")

        auth = AuthConfig.from_env()

        assert auth == AuthConfig("https://env.databricks.com", "env_token", 30)

    def test_alternate_names(self, monkeypatch):
        monkeypatch.setenv("DATABRICKS_SERVER_HOSTNAME", "alt.databricks.com")
        monkeypatch.setenv("DATABRICKS_ACCESS_TOKEN", "alt_token")

        auth = AuthConfig.from_env()

        assert auth.host == "alt.databricks.com"
        assert auth.token == "alt_token"

    def test_missing_token(self, monkeypatch):
        monkeypatch.setenv("DATABRICKS_HOST", "https://env.databricks.com")
        with pytest.raises(DatabricksConfigError) as exc_info:
            AuthConfig.from_env()
        assert "DATABRICKS_TOKEN" in str(exc_info.value)

    def test_bad_timeout(self, monkeypatch):
        monkeypatch.setenv("DATABRICKS_HOST", "https://env.databricks.com")
        monkeypatch.setenv("DATABRICKS_TOKEN", "t")
        monkeypatch.setenv("DATABRICKS_TIMEOUT", "soon")
        with pytest.raises(DatabricksConfigError):
            AuthConfig.from_env()


class TestAuthConfigFromEnvironment:
    """Test cases for profile-then-environment resolution."""

    def test_profile_wins(self, databrickscfg, monkeypatch):
        databrickscfg("[dev]\nhost = https://cfg.databricks.com\ntoken = cfg_token\n")
        monkeypatch.setenv("DATABRICKS_HOST", "https://env.databricks.com")
        monkeypatch.setenv("DATABRICKS_TOKEN", "env_token")

        assert AuthConfig.from_environment("dev").host == "https://cfg.databricks.com"

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DATABRICKS_HOST", "https://env.databricks.com")
        monkeypatch.setenv("DATABRICKS_TOKEN", "env_token")

        assert AuthConfig.from_environment("dev").host == "https://env.databricks.com"

    def test_nothing_configured(self):
        with pytest.raises(DatabricksConfigError) as exc_info:
            AuthConfig.from_environment()
        assert "Failed to load Databricks authentication configuration" in str(exc_info.value)


class TestAuthConfig:
    """Test cases for AuthConfig helpers."""

    @pytest.mark.parametrize(
        "host, expected",
        [
            ("https://adb-1.azuredatabricks.net", "adb-1.azuredatabricks.net"),
            ("https://adb-1.azuredatabricks.net/", "adb-1.azuredatabricks.net"),
            ("http://localhost:8080", "localhost:8080"),
            ("dbc-1.cloud.databricks.com", "dbc-1.cloud.databricks.com"),
        ],
    )
    def test_server_hostname(self, host, expected):
        assert AuthConfig(host=host, token="t").server_hostname == expected

    def test_token_hidden_from_repr(self, auth_config):
        assert auth_config.token not in repr(auth_config)

    @pytest.mark.parametrize(
        "auth",
        [
            AuthConfig(host="", token="t"),
            AuthConfig(host="https://h", token=""),
            AuthConfig(host="https://h", token="t", timeout_seconds=0),
        ],
    )
    def test_invalid(self, auth):
        assert not auth.is_valid()
        with pytest.raises(DatabricksConfigError):
            auth.validate()


class TestSQLConfig:
    """Test cases for SQLConfig."""

    def test_env_http_path(self, monkeypatch):
        monkeypatch.setenv("DATABRICKS_SQL_HTTP_PATH", "/sql/1.0/warehouses/env")
        assert SQLConfig.from_environment().http_path == "/sql/1.0/warehouses/env"

    def test_profile_http_path(self, databrickscfg):
        databrickscfg("[dev]\nhost = h\ntoken = t\nsql_http_path = /sql/1.0/warehouses/cfg\n")
        sql = SQLConfig.from_environment("dev", driver="Simba Spark ODBC Driver")
        assert sql.http_path == "/sql/1.0/warehouses/cfg"
        assert sql.uses_odbc

    def test_missing_http_path(self):
        with pytest.raises(DatabricksConfigError) as exc_info:
            SQLConfig.from_environment()
        assert "DATABRICKS_HTTP_PATH not found" in str(exc_info.value)

    def test_default_driver_is_connector(self):
        sql = SQLConfig(http_path="/sql/1.0/warehouses/w")
        assert not sql.uses_odbc
        sql.validate()

    def test_empty_driver_invalid(self):
        with pytest.raises(DatabricksConfigError):
            SQLConfig(http_path="/p", driver="").validate()


class TestPoolingAndRetryConfig:
    """Test cases for PoolingConfig and RetryConfig validation."""

    def test_defaults(self):
        assert PoolingConfig() == PoolingConfig(False, 1, 10, 5000)
        assert RetryConfig() == RetryConfig(True, 3, 100, 2.0, 10000, True, True)
        assert PoolingConfig().is_valid()
        assert RetryConfig().is_valid()

    @pytest.mark.parametrize(
        "pooling",
        [
            PoolingConfig(min_connections=0),
            PoolingConfig(min_connections=5, max_connections=2),
            PoolingConfig(connection_timeout_ms=0),
        ],
    )
    def test_invalid_pooling(self, pooling):
        with pytest.raises(DatabricksConfigError):
            pooling.validate()

    @pytest.mark.parametrize(
        "retry",
        [
            RetryConfig(max_attempts=0),
            RetryConfig(initial_backoff_ms=0),
            RetryConfig(backoff_multiplier=0.0),
            RetryConfig(initial_backoff_ms=500, max_backoff_ms=100),
        ],
    )
    def test_invalid_retry(self, retry):
        with pytest.raises(DatabricksConfigError):
            retry.validate()
