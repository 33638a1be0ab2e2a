import base64
from typing import Union

from pydantic import ValidationError

from x402pay.types import (
    MalformedChallengeError,
    PaymentPayload,
    x402PaymentRequiredResponse,
)


def safe_base64_encode(data: Union[str, bytes]) -> str:
    """Safely encode string or bytes to base64 string.

    Args:
        data: String or bytes to encode

    Returns:
        Base64 encoded string
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.b64encode(data).decode("utf-8")


def safe_base64_decode(data: str) -> str:
    """Safely decode base64 string to bytes and then to utf-8 string.

    Args:
        data: Base64 encoded string

    Returns:
        Decoded utf-8 string
    """
    return base64.b64decode(data, validate=True).decode("utf-8")


def encode_payment(payment_payload: PaymentPayload) -> str:
    """Encode a signed payment payload into the X-PAYMENT header value.

    The payload is serialized as compact JSON with camelCase keys. Every
    integer-valued authorization field is already a decimal string, so no
    precision is lost for 256-bit amounts.
    """
    return safe_base64_encode(payment_payload.model_dump_json(by_alias=True))


def decode_payment(encoded_payment: str) -> PaymentPayload:
    """Decode a base64 encoded X-PAYMENT header back into a PaymentPayload."""
    return PaymentPayload.model_validate_json(safe_base64_decode(encoded_payment))


def decode_payment_required(body: Union[bytes, str]) -> x402PaymentRequiredResponse:
    """Parse the body of a 402 response.

    Args:
        body: Raw response body

    Returns:
        The server's x402 version and its list of accepted requirements

    Raises:
        MalformedChallengeError: If the body is not valid JSON, does not match
            the expected shape, or offers no requirements
    """
    try:
        payment_required = x402PaymentRequiredResponse.model_validate_json(body)
    except ValidationError as e:
        raise MalformedChallengeError(f"Invalid payment required response: {e}") from e

    if not payment_required.accepts:
        raise MalformedChallengeError("Payment required response contains no payment requirements")

    return payment_required
