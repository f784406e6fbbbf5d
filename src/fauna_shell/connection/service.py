from typing import Optional

import httpx
import structlog

from ..errors import ScopeNotFoundError
from ..query.functions import database, exists
from .client import FaunaClient
from .config import ConnectionOptions

logger = structlog.get_logger(__name__)


class ConnectionService:
    """
    Hands out ready-to-use clients for the shell.

    Scoped sessions always go through the root connection first: the service
    checks that the target database exists and only then builds the scoped
    client. Both steps happen before the interactive loop starts.
    """

    def __init__(
        self,
        options: ConnectionOptions,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.options = options
        self.root = FaunaClient(options, transport=transport)
        logger.debug("ConnectionService initialized.", endpoint=self.root.endpoint)

    async def get_client(self, scope: Optional[str] = None) -> FaunaClient:
        """Returns the root client, or a client scoped to `scope` once it is known to exist."""
        if not scope:
            return self.root
        return await self.ensure_scope_client(scope)

    async def ensure_scope_client(self, scope: str) -> FaunaClient:
        log = logger.bind(scope=scope)
        log.debug("service.scope.check")
        found = await self.root.query(exists(database(scope)))
        if not found:
            log.info("service.scope.not_found")
            raise ScopeNotFoundError(f"Database '{scope}' doesn't exist")
        log.debug("service.scope.found")
        return self.root.scoped(scope)

    async def aclose(self, *clients: FaunaClient):
        """Closes the root client and any scoped clients handed out."""
        for client in {id(c): c for c in (self.root, *clients)}.values():
            await client.aclose()
