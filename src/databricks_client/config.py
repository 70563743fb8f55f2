"""
Authentication, SQL, pooling and retry configuration.

NOTE: This is a base module. Other modules depend on it, so it only
imports from errors.
"""
import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .errors import DatabricksConfigError

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "DEFAULT"
DEFAULT_SQL_DRIVER = "databricks-sql"


def _get_databrickscfg_path() -> Path:
    """Get the path to .databrickscfg file."""
    return Path.home() / ".databrickscfg"


def _read_profile(profile: str) -> Dict[str, str]:
    """
    Read one profile section from ~/.databrickscfg.

    Uses RawConfigParser to avoid interpolation issues with tokens containing %.
    The DEFAULT section is addressed by its literal name.

    Raises DatabricksConfigError if the file or the section is missing.
    """
    cfg_path = _get_databrickscfg_path()
    if not cfg_path.exists():
        raise DatabricksConfigError(f"Databricks config file not found: {cfg_path}")

    parser = configparser.RawConfigParser()
    try:
        parser.read(cfg_path)
    except configparser.Error as e:
        raise DatabricksConfigError(f"Error parsing {cfg_path}: {e}") from e

    if profile == DEFAULT_PROFILE:
        return dict(parser.defaults())
    if not parser.has_section(profile):
        raise DatabricksConfigError(f"Profile [{profile}] not found in {cfg_path}")
    return dict(parser.items(profile, raw=True))


def _first_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


@dataclass(frozen=True)
class AuthConfig:
    """Workspace host and credentials shared by every client type."""
    host: str
    token: str = field(repr=False)
    timeout_seconds: int = 60

    @property
    def server_hostname(self) -> str:
        """Host without scheme or trailing slash, as the SQL drivers expect it."""
        host = self.host
        for scheme in ("https://", "http://"):
            if host.startswith(scheme):
                host = host[len(scheme):]
                break
        return host.rstrip("/")

    def is_valid(self) -> bool:
        return bool(self.host) and bool(self.token) and self.timeout_seconds > 0

    def validate(self) -> None:
        if not self.is_valid():
            raise DatabricksConfigError(
                "Invalid AuthConfig: host, token, and timeout_seconds are required"
            )

    @classmethod
    def from_profile(cls, profile: str = DEFAULT_PROFILE) -> "AuthConfig":
        """
        Load host and token from a ~/.databrickscfg profile.

        Raises DatabricksConfigError if the profile is missing or incomplete.
        """
        items = _read_profile(profile)
        host = items.get("host")
        token = items.get("token")
        if not host or not token:
            raise DatabricksConfigError(
                f"Profile [{profile}] missing required fields (host, token)"
            )
        return cls(host=host, token=token)

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """
        Load configuration from environment variables:
        DATABRICKS_HOST or DATABRICKS_SERVER_HOSTNAME,
        DATABRICKS_TOKEN or DATABRICKS_ACCESS_TOKEN,
        DATABRICKS_TIMEOUT (optional, seconds).
        """
        host = _first_env("DATABRICKS_HOST", "DATABRICKS_SERVER_HOSTNAME")
        if not host:
            raise DatabricksConfigError(
                "DATABRICKS_HOST or DATABRICKS_SERVER_HOSTNAME environment variable not set"
            )
        token = _first_env("DATABRICKS_TOKEN", "DATABRICKS_ACCESS_TOKEN")
        if not token:
            raise DatabricksConfigError(
                "DATABRICKS_TOKEN or DATABRICKS_ACCESS_TOKEN environment variable not set"
            )

        timeout_raw = os.environ.get("DATABRICKS_TIMEOUT")
        if not timeout_raw:
            return cls(host=host, token=token)
        try:
            timeout = int(timeout_raw)
        except ValueError as e:
            raise DatabricksConfigError(
                f"DATABRICKS_TIMEOUT must be an integer, got '{timeout_raw}'"
            ) from e
        return cls(host=host, token=token, timeout_seconds=timeout)

    @classmethod
    def from_environment(cls, profile: str = DEFAULT_PROFILE) -> "AuthConfig":
        """
        Load configuration with priority:
        1. Profile section in ~/.databrickscfg if it has host and token
        2. Environment variables
        """
        try:
            return cls.from_profile(profile)
        except DatabricksConfigError as e:
            logger.debug(f"Profile [{profile}] unusable ({e}), falling back to environment")

        try:
            return cls.from_env()
        except DatabricksConfigError as e:
            logger.debug(f"Environment configuration unusable ({e})")

        raise DatabricksConfigError(
            "Failed to load Databricks authentication configuration. Ensure either:\n"
            f"  1. ~/.databrickscfg has a [{profile}] section with host and token, OR\n"
            "  2. Environment variables are set: DATABRICKS_HOST and DATABRICKS_TOKEN"
        )


@dataclass(frozen=True)
class SQLConfig:
    """
    SQL warehouse/cluster path and the driver used to reach it.

    `driver` selects the transport: "databricks-sql" uses
    databricks-sql-connector, anything else is taken as an ODBC driver name.
    """
    http_path: str
    driver: str = DEFAULT_SQL_DRIVER

    @property
    def uses_odbc(self) -> bool:
        return self.driver != DEFAULT_SQL_DRIVER

    def is_valid(self) -> bool:
        return bool(self.http_path) and bool(self.driver)

    def validate(self) -> None:
        if not self.is_valid():
            raise DatabricksConfigError(
                "Invalid SQLConfig: http_path and driver are required"
            )

    @classmethod
    def from_environment(
        cls, profile: str = DEFAULT_PROFILE, driver: str = DEFAULT_SQL_DRIVER
    ) -> "SQLConfig":
        """
        Resolve the HTTP path from DATABRICKS_HTTP_PATH or
        DATABRICKS_SQL_HTTP_PATH, then http_path / sql_http_path in the profile.
        """
        http_path = _first_env("DATABRICKS_HTTP_PATH", "DATABRICKS_SQL_HTTP_PATH")
        if not http_path:
            try:
                items = _read_profile(profile)
            except DatabricksConfigError:
                items = {}
            http_path = items.get("http_path") or items.get("sql_http_path")

        if not http_path:
            raise DatabricksConfigError(
                "DATABRICKS_HTTP_PATH not found in environment or profile. "
                "Set DATABRICKS_HTTP_PATH environment variable or add http_path to ~/.databrickscfg"
            )
        return cls(http_path=http_path, driver=driver)


@dataclass(frozen=True)
class PoolingConfig:
    """Connection pool tunables. These never affect which pool a client shares."""
    enabled: bool = False
    min_connections: int = 1
    max_connections: int = 10
    connection_timeout_ms: int = 5000

    def is_valid(self) -> bool:
        return (
            self.min_connections > 0
            and self.max_connections >= self.min_connections
            and self.connection_timeout_ms > 0
        )

    def validate(self) -> None:
        if not self.is_valid():
            raise DatabricksConfigError(
                "Invalid PoolingConfig: require 0 < min_connections <= max_connections "
                f"and connection_timeout_ms > 0 (got min={self.min_connections}, "
                f"max={self.max_connections}, timeout_ms={self.connection_timeout_ms})"
            )


@dataclass(frozen=True)
class RetryConfig:
    """Automatic retry with exponential backoff for transient failures."""
    enabled: bool = True
    max_attempts: int = 3
    initial_backoff_ms: int = 100
    backoff_multiplier: float = 2.0
    max_backoff_ms: int = 10000
    retry_on_timeout: bool = True
    retry_on_connection_lost: bool = True

    def is_valid(self) -> bool:
        return (
            self.max_attempts > 0
            and self.initial_backoff_ms > 0
            and self.backoff_multiplier > 0.0
            and self.max_backoff_ms >= self.initial_backoff_ms
        )

    def validate(self) -> None:
        if not self.is_valid():
            raise DatabricksConfigError(
                "Invalid RetryConfig: require max_attempts > 0, initial_backoff_ms > 0, "
                "backoff_multiplier > 0 and max_backoff_ms >= initial_backoff_ms"
            )
