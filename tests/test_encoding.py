import base64
import json

import pytest

from x402pay.encoding import (
    decode_payment,
    decode_payment_required,
    encode_payment,
    safe_base64_decode,
    safe_base64_encode,
)
from x402pay.types import (
    EIP3009Authorization,
    ExactPaymentPayload,
    MalformedChallengeError,
    PaymentPayload,
)


@pytest.fixture
def signed_payload():
    return PaymentPayload(
        x402_version=1,
        scheme="exact",
        network="base",
        payload=ExactPaymentPayload(
            signature="0x" + "12" * 65,
            authorization=EIP3009Authorization(
                from_="0x1111111111111111111111111111111111111111",
                to="0x2222222222222222222222222222222222222222",
                value=str(2**256 - 1),
                valid_after="1700000000",
                valid_before="1700000660",
                nonce="0x" + "cd" * 32,
            ),
        ),
    )


def test_safe_base64_encode():
    assert safe_base64_encode("hello") == "aGVsbG8="
    assert safe_base64_encode("") == ""
    assert safe_base64_encode("hello 世界") == "aGVsbG8g5LiW55WM"
    assert safe_base64_encode(b"\x00\x01\x02") == "AAEC"


def test_safe_base64_decode():
    assert safe_base64_decode("aGVsbG8=") == "hello"
    assert safe_base64_decode("aGVsbG8g5LiW55WM") == "hello 世界"

    # Test invalid base64
    with pytest.raises(Exception):
        safe_base64_decode("invalid base64!")

    # Test non-utf8 bytes (should raise UnicodeDecodeError)
    with pytest.raises(UnicodeDecodeError):
        safe_base64_decode("//79")


def test_encode_payment_wire_format(signed_payload):
    header = encode_payment(signed_payload)
    decoded = json.loads(base64.b64decode(header))

    assert list(decoded) == ["x402Version", "scheme", "network", "payload"]
    assert decoded["x402Version"] == 1
    authorization = decoded["payload"]["authorization"]
    assert list(authorization) == ["from", "to", "value", "validAfter", "validBefore", "nonce"]
    # Integers travel as strings so 256-bit values survive JSON
    assert all(isinstance(v, str) for v in authorization.values())
    assert authorization["value"] == str(2**256 - 1)


def test_encode_is_header_safe(signed_payload):
    header = encode_payment(signed_payload)
    assert "\n" not in header
    assert header.isascii()


def test_decode_reverses_encode(signed_payload):
    decoded = decode_payment(encode_payment(signed_payload))
    assert decoded == signed_payload
    assert decoded.payload.authorization.value == str(2**256 - 1)
    assert decoded.payload.authorization.valid_before == "1700000660"


def test_decode_payment_required():
    body = json.dumps(
        {
            "x402Version": 1,
            "error": "X-PAYMENT header is required",
            "accepts": [
                {
                    "scheme": "exact",
                    "network": "base",
                    "maxAmountRequired": "10000",
                    "payTo": "0x2222222222222222222222222222222222222222",
                    "asset": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
                    "maxTimeoutSeconds": 60,
                }
            ],
        }
    ).encode()

    payment_required = decode_payment_required(body)
    assert payment_required.x402_version == 1
    assert payment_required.accepts[0].max_amount_required == "10000"


@pytest.mark.parametrize(
    "body",
    [
        b"invalid json",
        b"",
        b'{"accepts": []}',
        b'{"x402Version": 1}',
        b'{"x402Version": 1, "accepts": [{"scheme": "exact"}]}',
    ],
)
def test_decode_payment_required_rejects_malformed_bodies(body):
    with pytest.raises(MalformedChallengeError):
        decode_payment_required(body)


def test_decode_payment_required_rejects_empty_accepts():
    with pytest.raises(MalformedChallengeError, match="no payment requirements"):
        decode_payment_required(b'{"x402Version": 1, "accepts": []}')
