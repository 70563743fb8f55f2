"""
Exception hierarchy shared by the SQL and REST clients.

NOTE: This is a leaf module. It must not import from any other module
in the package.
"""
from typing import Optional


class DatabricksError(RuntimeError):
    """Base class for every error raised by this package."""

    pass


class DatabricksConfigError(DatabricksError):
    """Raised when Databricks configuration is missing or invalid."""

    pass


class DatabricksConnectionError(DatabricksError):
    """Raised when a connection cannot be established or was lost."""

    pass


class PoolError(DatabricksError):
    """Base class for connection pool failures."""

    pass


class PoolTimeoutError(PoolError):
    """Raised when acquire() cannot obtain a connection within its timeout."""

    pass


class PoolShutdownError(PoolError):
    """Raised when a pool is used after shutdown()."""

    pass


class QueryExecutionError(DatabricksError):
    """Raised when the driver or the backend rejects a statement."""

    pass


class ParameterBindingError(DatabricksError):
    """Raised when bound parameters do not match the statement placeholders."""

    pass


class DatabricksApiError(DatabricksError):
    """Raised when a REST resource call fails."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class RetryExhaustedError(DatabricksError):
    """Raised when an operation keeps failing after every allowed attempt."""

    def __init__(self, operation: str, attempts: int, last_message: str):
        super().__init__(
            f"Operation '{operation}' failed after {attempts} attempts: {last_message}"
        )
        self.operation = operation
        self.attempts = attempts
        self.last_message = last_message
