"""Network transport for Overpass requests.

The execution pipeline only knows the ``Transport`` protocol: ``send()``
takes the encoded form body and returns the decoded payload, or raises
``TransportFailure``. ``HttpxTransport`` is the production implementation.
"""

import logging
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from overpass_client.errors import INVALID_RESPONSE_TEXT
from overpass_client.queries import OUTPUT_FORMATS, OutputFormat
from overpass_client.resilience.models import TransportFailure

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Overpass applies 180s when the query carries no [timeout:n] clause
SERVER_DEFAULT_TIMEOUT = 180
REQUEST_TIMEOUT_MARGIN = 15.0


def request_timeout_for(query_timeout: int) -> float:
    """Client-side timeout for a query with a server-side *query_timeout*.

    The server may run the query for its whole timeout before answering,
    so the connection is given that long plus a margin for the transfer.
    """
    return (query_timeout or SERVER_DEFAULT_TIMEOUT) + REQUEST_TIMEOUT_MARGIN


@runtime_checkable
class Transport(Protocol):
    """Performs one network round trip."""

    async def send(self, body: str) -> Any:
        """POST *body* and return the decoded payload.

        Raises:
            TransportFailure: On any non-2xx response or when no response
                was received
        """
        ...


class HttpxTransport:
    """POSTs form-encoded queries to an Overpass interpreter endpoint.

    A fresh ``httpx.AsyncClient`` is opened per request, so cancelling the
    calling task closes the connection with it.

    Attributes:
        endpoint: Interpreter URL
        format: ``json`` decodes the body, ``xml`` returns the raw text
        request_timeout: Client-side timeout in seconds (None = no limit)
    """

    def __init__(
        self,
        endpoint: str,
        format: OutputFormat = "json",
        request_timeout: Optional[float] = None,
        *,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the transport.

        Args:
            endpoint: Interpreter URL
            format: Response format, ``json`` or ``xml``
            request_timeout: Client-side timeout in seconds (None = no limit)
            http_transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
        """
        if format not in OUTPUT_FORMATS:
            raise ValueError(f"format must be one of {OUTPUT_FORMATS}, got {format!r}")
        self.endpoint = endpoint
        self.format = format
        self.request_timeout = request_timeout
        self._http_transport = http_transport

    async def send(self, body: str) -> Any:
        client_kwargs: dict[str, Any] = {"timeout": self.request_timeout}
        if self._http_transport is not None:
            client_kwargs["transport"] = self._http_transport

        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                response = await client.post(
                    self.endpoint,
                    content=body,
                    headers={"Content-Type": FORM_CONTENT_TYPE},
                )
        except httpx.HTTPError as e:
            logger.debug("No response from %s: %s", self.endpoint, e)
            raise TransportFailure(original_error=e) from e

        if not 200 <= response.status_code < 300:
            raise TransportFailure(
                status_code=response.status_code,
                status_text=response.reason_phrase or None,
                headers=dict(response.headers),
                body=response.text,
            )

        if self.format == "xml":
            return response.text
        try:
            return response.json()
        except ValueError as e:
            raise TransportFailure(
                status_code=response.status_code,
                status_text=INVALID_RESPONSE_TEXT,
                headers=dict(response.headers),
                body=response.text,
                original_error=e,
            ) from e
