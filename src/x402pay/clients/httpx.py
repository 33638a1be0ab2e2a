"""httpx transport with automatic x402 payment handling."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from x402pay.clients.base import PaymentError, x402Client
from x402pay.common import (
    PAYMENT_REQUIRED_STATUS,
    X_PAYMENT_HEADER,
    X_PAYMENT_RESPONSE_HEADER,
)

logger = logging.getLogger(__name__)


class x402AsyncTransport(httpx.AsyncBaseTransport):
    """Async transport that pays 402 challenges and retries once.

    The original request goes through ``transport``. The paid retry goes
    through ``retry_transport`` (the same raw transport by default), never
    through this wrapper, so a second 402 is handed back to the caller
    instead of being paid again.
    """

    def __init__(
        self,
        client: x402Client,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize payment transport.

        Args:
            client: x402Client used to negotiate and sign payments.
            transport: Raw transport for the original request.
            retry_transport: Raw transport for the paid retry. Defaults to
                ``transport``.
        """
        self._client = client
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._retry_transport = retry_transport or self._transport
        if self._transport is self or self._retry_transport is self:
            raise ValueError("x402AsyncTransport cannot wrap itself")

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        # Buffer the body so it can be replayed on the paid retry
        await request.aread()
        response = await self._transport.handle_async_request(request)

        if response.status_code != PAYMENT_REQUIRED_STATUS:
            return response

        logger.debug("Payment required for %s %s", request.method, request.url)
        try:
            content = await response.aread()
        finally:
            await response.aclose()

        try:
            payment_header = await self._client.handle_402_response_async(content)
        except PaymentError:
            raise
        except Exception as e:
            raise PaymentError(f"Failed to handle payment: {e}") from e

        retry_request = _build_retry_request(request, payment_header)
        logger.debug("Retrying %s %s with payment", request.method, request.url)
        retry_response = await self._retry_transport.handle_async_request(retry_request)

        if retry_response.status_code == PAYMENT_REQUIRED_STATUS:
            logger.warning(
                "Payment was not accepted for %s %s; returning the 402 response",
                request.method,
                request.url,
            )
        return retry_response

    async def aclose(self) -> None:
        await self._transport.aclose()
        if self._retry_transport is not self._transport:
            await self._retry_transport.aclose()


def _build_retry_request(request: httpx.Request, payment_header: str) -> httpx.Request:
    headers = request.headers.copy()
    headers[X_PAYMENT_HEADER] = payment_header
    headers["Access-Control-Expose-Headers"] = X_PAYMENT_RESPONSE_HEADER
    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        stream=request.stream,
        extensions=dict(request.extensions),
    )


def x402_httpx_transport(
    client: x402Client,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> x402AsyncTransport:
    """Create an httpx transport with 402 payment handling.

    Example:
        ```python
        import httpx
        from x402pay.clients.httpx import x402_httpx_transport

        async with httpx.AsyncClient(transport=x402_httpx_transport(client)) as http:
            response = await http.get("https://api.example.com/paid")
        ```
    """
    return x402AsyncTransport(client, transport)


class x402HttpxClient(httpx.AsyncClient):
    """AsyncClient with built-in x402 payment handling."""

    def __init__(
        self,
        client: x402Client,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the client.

        Args:
            client: x402Client used to pay 402 challenges.
            transport: Raw transport to wrap. Defaults to httpx's HTTP transport.
            **kwargs: Additional arguments for httpx.AsyncClient.
        """
        super().__init__(transport=x402AsyncTransport(client, transport), **kwargs)


def wrapHttpxWithPayment(
    client: x402Client,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **httpx_kwargs: Any,
) -> httpx.AsyncClient:
    """Create an httpx.AsyncClient that pays 402 challenges automatically."""
    return httpx.AsyncClient(
        transport=x402AsyncTransport(client, transport),
        **httpx_kwargs,
    )
