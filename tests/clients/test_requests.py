import json
import logging
from unittest.mock import patch

import pytest
import requests
from eth_account import Account
from requests import PreparedRequest, Response

from x402pay.clients.base import (
    MalformedChallengeError,
    PaymentAmountExceededError,
    PaymentError,
    SigningError,
    x402Client,
)
from x402pay.clients.requests import (
    wrapRequestsWithPayment,
    x402_http_adapter,
    x402_requests,
    x402HTTPAdapter,
)
from x402pay.encoding import decode_payment
from x402pay.signers import EthAccountSigner

PAYEE = "0x209693bc6afc0c5328ba36faf03c514ef312287c"
USDC_BASE = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
URL = "https://example.com/paid"


def make_challenge(amount="10000"):
    return {
        "x402Version": 1,
        "accepts": [
            {
                "scheme": "exact",
                "network": "base",
                "maxAmountRequired": amount,
                "payTo": PAYEE,
                "asset": USDC_BASE,
                "maxTimeoutSeconds": 60,
            }
        ],
    }


def make_response(status_code, body):
    response = Response()
    response.status_code = status_code
    response._content = body if isinstance(body, bytes) else json.dumps(body).encode()
    return response


def make_request(method="GET", data=None):
    request = PreparedRequest()
    request.prepare(method=method, url=URL, data=data, headers={"Authorization": "Bearer abc"})
    return request


@pytest.fixture
def account():
    return Account.create()


@pytest.fixture
def client(account):
    return x402Client(EthAccountSigner(account, network="base"))


@pytest.fixture
def adapter(client):
    return x402HTTPAdapter(client)


def test_non_402_passes_through(adapter):
    sent = []

    def impl(req, **kwargs):
        sent.append(req)
        return make_response(200, b"free")

    with patch("requests.adapters.HTTPAdapter.send", side_effect=impl):
        response = adapter.send(make_request())

    assert response.status_code == 200
    assert response.content == b"free"
    assert len(sent) == 1


def test_payment_flow(adapter, account):
    sent = []

    def impl(req, **kwargs):
        sent.append(req)
        if "X-PAYMENT" in req.headers:
            return make_response(200, {"ok": True})
        return make_response(402, make_challenge())

    with patch("requests.adapters.HTTPAdapter.send", side_effect=impl):
        response = adapter.send(make_request("POST", data=b"payload"), timeout=10)

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert len(sent) == 2

    original, retry = sent
    assert "X-PAYMENT" not in original.headers
    assert retry.method == "POST"
    assert retry.url == original.url
    assert retry.body == b"payload"
    assert retry.headers["Authorization"] == "Bearer abc"
    assert retry.headers["Access-Control-Expose-Headers"] == "X-PAYMENT-RESPONSE"

    authorization = decode_payment(retry.headers["X-PAYMENT"]).payload.authorization
    assert authorization.from_ == account.address
    assert authorization.to == PAYEE
    assert authorization.value == "10000"


def test_send_kwargs_forwarded_to_retry(adapter):
    seen_kwargs = []

    def impl(req, **kwargs):
        seen_kwargs.append(kwargs)
        if "X-PAYMENT" in req.headers:
            return make_response(200, {})
        return make_response(402, make_challenge())

    with patch("requests.adapters.HTTPAdapter.send", side_effect=impl):
        adapter.send(make_request(), timeout=5, verify=False)

    assert seen_kwargs == [{"timeout": 5, "verify": False}] * 2


def test_second_402_is_returned(adapter, caplog):
    sent = []

    def impl(req, **kwargs):
        sent.append(req)
        return make_response(402, make_challenge())

    with caplog.at_level(logging.WARNING, logger="x402pay.clients.requests"):
        with patch("requests.adapters.HTTPAdapter.send", side_effect=impl):
            response = adapter.send(make_request())

    assert response.status_code == 402
    assert len(sent) == 2
    assert "Payment was not accepted" in caplog.text


def test_amount_exceeding_ceiling(account):
    adapter = x402HTTPAdapter(
        x402Client(EthAccountSigner(account, network="base"), max_value=100000)
    )
    sent = []

    def impl(req, **kwargs):
        sent.append(req)
        return make_response(402, make_challenge(amount="200000"))

    with patch("requests.adapters.HTTPAdapter.send", side_effect=impl):
        with pytest.raises(PaymentAmountExceededError):
            adapter.send(make_request())

    assert len(sent) == 1


def test_malformed_challenge(adapter):
    with patch(
        "requests.adapters.HTTPAdapter.send",
        return_value=make_response(402, b"invalid json"),
    ):
        with pytest.raises(MalformedChallengeError):
            adapter.send(make_request())


def test_async_signer_rejected(account):
    class RemoteSigner:
        address = account.address
        network = "base"

        async def sign_typed_data(self, domain, types, primary_type, message):
            return b"\x00" * 65

    adapter = x402HTTPAdapter(x402Client(RemoteSigner()))

    with patch(
        "requests.adapters.HTTPAdapter.send",
        return_value=make_response(402, make_challenge()),
    ):
        with pytest.raises(SigningError, match="asynchronous"):
            adapter.send(make_request())


def test_unexpected_errors_are_wrapped(adapter, client):
    client.select_payment_requirements = lambda accepts: 1 / 0

    with patch(
        "requests.adapters.HTTPAdapter.send",
        return_value=make_response(402, make_challenge()),
    ):
        with pytest.raises(PaymentError, match="Failed to handle payment"):
            adapter.send(make_request())


def test_connection_errors_propagate(adapter):
    with patch(
        "requests.adapters.HTTPAdapter.send",
        side_effect=requests.ConnectionError("refused"),
    ):
        with pytest.raises(requests.ConnectionError):
            adapter.send(make_request())


def test_x402_http_adapter(client):
    adapter = x402_http_adapter(client, max_retries=3)
    assert isinstance(adapter, x402HTTPAdapter)
    assert adapter.client is client
    assert adapter.max_retries.total == 3


def test_wrap_requests_with_payment(client):
    session = requests.Session()
    assert wrapRequestsWithPayment(session, client) is session
    assert isinstance(session.get_adapter("https://example.com"), x402HTTPAdapter)
    assert isinstance(session.get_adapter("http://example.com"), x402HTTPAdapter)


def test_x402_requests(client):
    session = x402_requests(client)
    adapter = session.get_adapter(URL)
    assert isinstance(adapter, x402HTTPAdapter)
    assert adapter.client is client
