from typing import Any, Optional

import httpx
import structlog

from ..errors import ServiceError, TransportError
from ..query import decode, to_wire
from .config import ConnectionOptions, stringify_endpoint

logger = structlog.get_logger(__name__)

API_VERSION = "4"


class FaunaClient:
    """
    A thin asynchronous client for the Fauna query endpoint.

    It sends one encoded expression per request and returns the decoded
    `resource` of the response. HTTP error responses become `ServiceError`
    (carrying the decoded body), and network failures become `TransportError`.
    """

    def __init__(
        self,
        options: ConnectionOptions,
        secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.options = options
        self.secret = secret or options.secret
        self._transport = transport
        self._http = httpx.AsyncClient(
            base_url=self.endpoint,
            auth=(self.secret, ""),
            headers={
                "X-FaunaDB-API-Version": API_VERSION,
                "X-Fauna-Driver": "fauna-shell-python",
            },
            timeout=options.timeout,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return stringify_endpoint(self.options)

    def scoped(self, database: str) -> "FaunaClient":
        """Returns a client authenticated as admin of a child database."""
        return FaunaClient(
            self.options,
            secret=f"{self.options.secret}:{database}:admin",
            transport=self._transport,
        )

    async def query(self, expression: Any) -> Any:
        log = logger.bind(endpoint=self.endpoint)
        body = to_wire(expression)
        log.debug("client.query.begin", body=body)

        try:
            response = await self._http.post("/", json=body)
        except httpx.TransportError as e:
            log.debug("client.query.transport_failed", error=str(e))
            raise TransportError(
                f"Could not reach {self.endpoint}: {str(e) or type(e).__name__}"
            ) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            log.debug("client.query.rejected", status_code=response.status_code)
            if payload is None and response.text:
                payload = {"body": response.text}
            raise ServiceError.from_response(response.status_code, payload)

        if not isinstance(payload, dict) or "resource" not in payload:
            raise ServiceError(
                "Response did not contain a result.",
                payload=payload if payload is not None else {"body": response.text},
                status_code=response.status_code,
            )

        log.debug("client.query.success", status_code=response.status_code)
        return decode(payload["resource"])

    async def aclose(self):
        await self._http.aclose()
