"""
HTTP client integrations for x402 payment handling.

Core exports (always available):
    - x402Client: Base client for payment handling

HTTP wrappers:
    from x402pay.clients.httpx import x402HttpxClient     (async)
    from x402pay.clients.requests import x402_requests    (sync)
"""

from x402pay.clients.base import x402Client

__all__ = [
    "x402Client",
]
