"""HTTP request execution and status classification for the relay service."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import aiohttp

from .errors import (
    RelayConnectionError,
    RelayRateLimitError,
    RelayResponseError,
    RelayTimeout,
)
from .request import RelayRequest

_LOGGER = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_RATE_LIMITED = 413


@dataclass(frozen=True)
class RelayResponse:
    """Fully buffered body of a 200 response and an optional header value."""

    body: str
    header: str | None = None


def raise_for_status(
    resp: aiohttp.ClientResponse, *, classify_rate_limit: bool = True
) -> None:
    """Map a non-200 status onto the client error taxonomy.

    Raises:
        RelayRateLimitError: On 413 when rate limits are classified.
        RelayResponseError: On any other non-200 status.
    """
    if resp.status == HTTP_OK:
        return
    if classify_rate_limit and resp.status == HTTP_RATE_LIMITED:
        raise RelayRateLimitError(resp.status)
    message = f"Bad response: {resp.status} {resp.reason or ''}".rstrip()
    raise RelayResponseError(resp.status, message)


class RequestExecutor:
    """Sends built requests over a caller-owned aiohttp session."""

    def __init__(self, session: aiohttp.ClientSession) -> None:
        self._session = session

    @property
    def session(self) -> aiohttp.ClientSession:
        return self._session

    async def execute(
        self,
        request: RelayRequest,
        *,
        response_header: str | None = None,
        classify_rate_limit: bool = True,
    ) -> RelayResponse:
        """Send a request and return its buffered 200 response.

        The connection is released on every exit path by the response
        context manager.

        Args:
            request: Request produced by RequestBuilder.
            response_header: Optional response header to capture.
            classify_rate_limit: Report 413 as RelayRateLimitError.

        Raises:
            RelayRateLimitError: If the service answered 413.
            RelayResponseError: If the service answered any other non-200 status.
            RelayTimeout: If the request timed out.
            RelayConnectionError: If the network request failed.
        """
        _LOGGER.debug("%s %s", request.method, request.route)
        try:
            async with self._session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body,
                ssl=request.ssl,
                timeout=request.timeout,
            ) as resp:
                raise_for_status(resp, classify_rate_limit=classify_rate_limit)
                body = await resp.text(encoding="utf-8")
                header = resp.headers.get(response_header) if response_header else None
                return RelayResponse(body=body, header=header)
        except TimeoutError as err:
            raise RelayTimeout(f"{request.method} request timed out") from err
        except aiohttp.ClientError as err:
            raise RelayConnectionError(f"{request.method} request failed") from err
