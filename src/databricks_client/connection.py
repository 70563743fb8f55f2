"""
A single live SQL connection to a Databricks warehouse or cluster.

This is the handle pools lend out and direct clients own. It never goes
through the pool registry.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from databricks import sql as dbsql

from .config import AuthConfig, SQLConfig
from .errors import (
    DatabricksConnectionError,
    ParameterBindingError,
    QueryExecutionError,
)
from .sanitize import redact

logger = logging.getLogger(__name__)

ODBC_DRIVER_HELP = (
    "To fix this issue:\n"
    "1. Download and install the Simba Spark ODBC Driver from:\n"
    "   https://www.databricks.com/spark/odbc-drivers-download\n"
    "2. Verify installation with: odbcinst -q -d\n"
    "3. If using a different driver, set SQLConfig.driver to match\n"
    "   the driver name shown in odbcinst output.\n"
)

Rows = List[List[str]]


@dataclass(frozen=True)
class Parameter:
    """A value bound positionally to a `?` placeholder."""
    value: str


def count_placeholders(statement: str) -> int:
    """
    Count `?` placeholders, ignoring quoted literals, quoted identifiers
    and comments.
    """
    count = 0
    i = 0
    n = len(statement)
    while i < n:
        ch = statement[i]
        if ch in ("'", '"', "`"):
            i += 1
            while i < n:
                if statement[i] == "\\":
                    i += 2
                    continue
                if statement[i] == ch:
                    # doubled quote is an escaped quote
                    if i + 1 < n and statement[i + 1] == ch:
                        i += 2
                        continue
                    break
                i += 1
        elif statement.startswith("--", i):
            end = statement.find("\n", i)
            i = n if end == -1 else end
        elif statement.startswith("/*", i):
            end = statement.find("*/", i + 2)
            i = n if end == -1 else end + 1
        elif ch == "?":
            count += 1
        i += 1
    return count


def _cell(value: Any) -> str:
    # SQL NULL is rendered as an empty string; types are not preserved.
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return str(value)


def bind_values(statement: str, params: Sequence[Parameter]) -> List[str]:
    expected = count_placeholders(statement)
    if expected != len(params):
        raise ParameterBindingError(
            f"Statement has {expected} placeholder(s) but {len(params)} parameter(s) were bound"
        )
    values = []
    for index, param in enumerate(params, start=1):
        value = param.value if isinstance(param, Parameter) else param
        if not isinstance(value, str):
            raise ParameterBindingError(
                f"Failed to bind parameter {index}: expected str, got {type(value).__name__}"
            )
        values.append(value)
    return values


def build_odbc_connection_string(auth: AuthConfig, sql: SQLConfig) -> str:
    """Connection string for the Simba Spark ODBC driver (token auth over HTTP)."""
    return (
        f"Driver={sql.driver};"
        f"Host={auth.server_hostname};"
        "Port=443;"
        f"HTTPPath={sql.http_path};"
        "AuthMech=3;"
        "UID=token;"
        f"PWD={auth.token};"
        "SSL=1;"
        "ThriftTransport=2;"
    )


class Connection:
    """
    One dedicated connection. Thread-safe to connect and close; a single
    connection runs one statement at a time.
    """

    def __init__(self, auth: AuthConfig, sql: SQLConfig):
        self._auth = auth
        self._sql = sql
        self._conn: Optional[Any] = None
        self._lock = threading.RLock()

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def _sanitize(self, message: str) -> str:
        return redact(message, self._auth.token)

    def _open_databricks_sql(self) -> Any:
        return dbsql.connect(
            server_hostname=self._auth.server_hostname,
            http_path=self._sql.http_path,
            access_token=self._auth.token,
            _socket_timeout=self._auth.timeout_seconds,
        )

    def _open_odbc(self) -> Any:
        try:
            import pyodbc
        except ImportError as e:
            raise DatabricksConnectionError(
                f"ODBC driver '{self._sql.driver}' requested but pyodbc is not installed. "
                "Install with: pip install databricks-client[odbc]"
            ) from e

        if self._sql.driver not in pyodbc.drivers():
            raise DatabricksConnectionError(
                f"ODBC driver '{self._sql.driver}' not found.\n\n{ODBC_DRIVER_HELP}"
            )
        return pyodbc.connect(
            build_odbc_connection_string(self._auth, self._sql),
            autocommit=True,
            timeout=self._auth.timeout_seconds,
        )

    def connect(self) -> None:
        """Open the connection. Does nothing if already connected."""
        with self._lock:
            if self._conn is not None:
                return
            logger.info(f"Connecting to Databricks at {self._auth.host}")
            try:
                if self._sql.uses_odbc:
                    self._conn = self._open_odbc()
                else:
                    self._conn = self._open_databricks_sql()
            except DatabricksConnectionError:
                raise
            except Exception as e:
                message = self._sanitize(str(e))
                logger.error(f"Connection failed: {message}")
                raise DatabricksConnectionError(
                    f"Failed to connect to Databricks: {message}"
                ) from e
            logger.info(f"Successfully connected to {self._auth.host}")

    def close(self) -> None:
        """Close the connection. Safe to call repeatedly; connect() may follow."""
        with self._lock:
            conn, self._conn = self._conn, None
        if conn is None:
            return
        logger.info("Disconnecting from Databricks")
        try:
            conn.close()
        except Exception as e:
            # The handle is gone either way; a failed close is not actionable.
            logger.warning(f"Error while closing connection: {self._sanitize(str(e))}")

    def query(self, statement: str, params: Optional[Sequence[Parameter]] = None) -> Rows:
        """
        Execute a statement and return every row as strings.

        With params the statement goes through the driver's bind path;
        values are never spliced into the SQL text.
        """
        values = bind_values(statement, params or [])

        with self._lock:
            if self._conn is None:
                raise DatabricksConnectionError("Connection is not open")
            try:
                cursor = self._conn.cursor()
            except Exception as e:
                raise DatabricksConnectionError(
                    f"Failed to allocate statement handle: {self._sanitize(str(e))}"
                ) from e

            try:
                if not values:
                    cursor.execute(statement)
                else:
                    cursor.execute(statement, values)
                if not cursor.description:
                    return []
                column_count = len(cursor.description)
                rows = cursor.fetchall()
            except Exception as e:
                raise QueryExecutionError(
                    f"Query execution failed: {self._sanitize(str(e))}"
                ) from e
            finally:
                try:
                    cursor.close()
                except Exception as e:
                    logger.debug(f"Error while closing cursor: {self._sanitize(str(e))}")

        return [[_cell(row[i]) for i in range(column_count)] for row in rows]

    def __enter__(self) -> "Connection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "connected" if self.connected else "closed"
        return f"Connection(host={self._auth.host!r}, http_path={self._sql.http_path!r}, {state})"
