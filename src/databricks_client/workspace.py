"""
Cached databricks-sdk WorkspaceClient instances for the REST resource clients.

NOTE: Resource modules (compute, jobs, secrets, unity_catalog) import from
here; this module must not import from them.
"""
import functools
import logging
import threading
from typing import Callable, Dict, Tuple, TypeVar

from databricks.sdk import WorkspaceClient
from databricks.sdk.errors import DatabricksError as SdkError

from .config import AuthConfig
from .errors import DatabricksApiError
from .sanitize import redact

logger = logging.getLogger(__name__)

T = TypeVar("T")

_workspace_clients: Dict[Tuple[str, str], WorkspaceClient] = {}
_workspace_clients_lock = threading.Lock()


def get_workspace_client(auth: AuthConfig) -> WorkspaceClient:
    """
    Get a WorkspaceClient for the given credentials.

    Lazily creates and caches one client per (host, token).
    Uses double-checked locking to minimize lock hold time.
    """
    auth.validate()
    key = (auth.host, auth.token)

    with _workspace_clients_lock:
        existing = _workspace_clients.get(key)
        if existing is not None:
            return existing

    from databricks.sdk.config import Config as SdkConfig

    logger.debug(f"Creating WorkspaceClient (host={auth.host})")
    new_client = WorkspaceClient(
        config=SdkConfig(
            host=auth.host,
            token=auth.token,
            http_timeout_seconds=auth.timeout_seconds,
        )
    )

    with _workspace_clients_lock:
        existing = _workspace_clients.get(key)
        if existing is not None:
            return existing
        _workspace_clients[key] = new_client
        return new_client


def clear_workspace_clients() -> None:
    """Drop every cached WorkspaceClient."""
    with _workspace_clients_lock:
        _workspace_clients.clear()


class ResourceClient:
    """Base for the thin REST wrappers: holds the auth config and the SDK client."""

    def __init__(self, auth: AuthConfig):
        self._auth = auth
        self._client = get_workspace_client(auth)

    @property
    def auth_config(self) -> AuthConfig:
        return self._auth


def api_call(operation: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Convert databricks-sdk errors raised by a ResourceClient method into
    DatabricksApiError with the token redacted.
    """

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(self: ResourceClient, *args, **kwargs) -> T:
            try:
                return fn(self, *args, **kwargs)
            except SdkError as e:
                message = redact(str(e), self._auth.token)
                logger.error(f"{operation} failed: {message}")
                raise DatabricksApiError(
                    f"{operation} failed: {message}",
                    error_code=getattr(e, "error_code", None),
                ) from e

        return wrapper

    return decorator
