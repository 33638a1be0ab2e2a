"""requests library wrapper with automatic x402 payment handling.

Provides HTTPAdapter and convenience functions for sync requests.Session.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from x402pay.clients.base import PaymentError, x402Client
from x402pay.common import (
    PAYMENT_REQUIRED_STATUS,
    X_PAYMENT_HEADER,
    X_PAYMENT_RESPONSE_HEADER,
)

logger = logging.getLogger(__name__)


class x402HTTPAdapter(HTTPAdapter):
    """HTTP adapter that handles 402 Payment Required responses.

    Both the original request and the single paid retry go through the
    plain HTTPAdapter.send, so the retried response is returned as-is even
    when it is another 402.

    Note: Uses synchronous payment creation; the signer must not be async.
    """

    def __init__(self, client: x402Client, **kwargs: Any) -> None:
        """Initialize payment adapter.

        Args:
            client: x402Client for payments.
            **kwargs: Additional arguments for HTTPAdapter.
        """
        super().__init__(**kwargs)
        self.client = client

    def send(
        self,
        request: requests.PreparedRequest,
        **kwargs: Any,
    ) -> requests.Response:
        """Send request with automatic 402 payment handling.

        Raises:
            PaymentError: If payment handling fails.
        """
        response = super().send(request, **kwargs)

        if response.status_code != PAYMENT_REQUIRED_STATUS:
            return response

        logger.debug("Payment required for %s %s", request.method, request.url)
        try:
            payment_header = self.client.handle_402_response(response.content)
        except PaymentError:
            raise
        except Exception as e:
            raise PaymentError(f"Failed to handle payment: {e}") from e

        retry_request = request.copy()
        retry_request.headers[X_PAYMENT_HEADER] = payment_header
        retry_request.headers["Access-Control-Expose-Headers"] = X_PAYMENT_RESPONSE_HEADER

        retry_response = super().send(retry_request, **kwargs)
        if retry_response.status_code == PAYMENT_REQUIRED_STATUS:
            logger.warning(
                "Payment was not accepted for %s %s; returning the 402 response",
                request.method,
                request.url,
            )
        return retry_response


def x402_http_adapter(client: x402Client, **kwargs: Any) -> x402HTTPAdapter:
    """Create an HTTP adapter with 402 payment handling.

    Example:
        ```python
        import requests
        from x402pay.clients.requests import x402_http_adapter

        session = requests.Session()
        adapter = x402_http_adapter(client)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        response = session.get("https://api.example.com/paid")
        ```
    """
    return x402HTTPAdapter(client, **kwargs)


def wrapRequestsWithPayment(
    session: requests.Session,
    client: x402Client,
    **adapter_kwargs: Any,
) -> requests.Session:
    """Mount a payment-aware adapter on an existing session for HTTP and HTTPS."""
    adapter = x402HTTPAdapter(client, **adapter_kwargs)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def x402_requests(client: x402Client, **adapter_kwargs: Any) -> requests.Session:
    """Create a requests Session with x402 payment handling."""
    return wrapRequestsWithPayment(requests.Session(), client, **adapter_kwargs)
