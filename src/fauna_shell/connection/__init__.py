from .client import FaunaClient
from .config import ConnectionOptions, resolve_connection_options, stringify_endpoint
from .service import ConnectionService

__all__ = [
    "ConnectionOptions",
    "ConnectionService",
    "FaunaClient",
    "resolve_connection_options",
    "stringify_endpoint",
]
