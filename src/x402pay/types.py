from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing_extensions import (
    TypedDict,
)  # use `typing_extensions.TypedDict` instead of `typing.TypedDict` on Python < 3.12

_UINT_PATTERN = re.compile(r"[0-9]+")
_NONCE_PATTERN = re.compile(r"0x[0-9a-fA-F]{64}")
_HEX_PATTERN = re.compile(r"0x[0-9a-fA-F]+")


def _validate_uint_string(value: str, field_name: str) -> str:
    if not _UINT_PATTERN.fullmatch(value):
        raise ValueError(f"{field_name} must be a non-negative integer encoded as a string")
    return value


class PaymentError(Exception):
    """Base class for payment-related errors."""

    pass


class MalformedChallengeError(PaymentError):
    """Raised when a 402 response cannot be turned into a payable requirement."""

    pass


class NoAcceptableRequirementError(PaymentError):
    """Raised when no offered requirement can be signed by this client."""

    pass


class PaymentAmountExceededError(PaymentError):
    """Raised when payment amount exceeds maximum allowed value."""

    pass


class SigningError(PaymentError):
    """Raised when the signer declines, fails, or is missing."""

    pass


class PaymentRequirements(BaseModel):
    """One payment offer advertised by a resource server."""

    scheme: str
    network: str
    max_amount_required: str
    resource: str = ""
    description: str = ""
    mime_type: str = ""
    pay_to: str
    max_timeout_seconds: int = Field(ge=0)
    asset: str
    extra: Optional[dict[str, Any]] = None
    output_schema: Optional[Any] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
        extra="allow",
    )

    @field_validator("max_amount_required")
    def validate_max_amount_required(cls, v):
        return _validate_uint_string(v, "max_amount_required")


# Returned by a server as json alongside a 402 response code
class x402PaymentRequiredResponse(BaseModel):
    x402_version: int
    accepts: list[PaymentRequirements]
    error: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
        extra="allow",
    )


class EIP3009Authorization(BaseModel):
    from_: str = Field(alias="from")
    to: str
    value: str
    valid_after: str
    valid_before: str
    nonce: str

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )

    @field_validator("value", "valid_after", "valid_before")
    def validate_integer_fields(cls, v, info):
        return _validate_uint_string(v, info.field_name)

    @field_validator("nonce")
    def validate_nonce(cls, v):
        if not _NONCE_PATTERN.fullmatch(v):
            raise ValueError("nonce must be 32 bytes hex-encoded with a 0x prefix")
        return v

    @model_validator(mode="after")
    def validate_window(self):
        if int(self.valid_after) >= int(self.valid_before):
            raise ValueError("valid_after must be earlier than valid_before")
        return self


class ExactPaymentPayload(BaseModel):
    signature: str
    authorization: EIP3009Authorization

    model_config = ConfigDict(frozen=True)

    @field_validator("signature")
    def validate_signature(cls, v):
        if not _HEX_PATTERN.fullmatch(v):
            raise ValueError("signature must be a 0x-prefixed hex string")
        return v


class PaymentPayload(BaseModel):
    """Signed envelope sent in the X-PAYMENT header."""

    x402_version: int
    scheme: str
    network: str
    payload: ExactPaymentPayload

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        frozen=True,
    )


class X402PaymentResult(BaseModel):
    """Result of paying for and executing an x402 workflow."""

    success: bool
    tx_hash: str = ""
    price: str = ""
    response: Any = None
    network: str
    chain_id: int

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ClientConfig(TypedDict, total=False):
    """Configuration accepted by x402Client.from_config"""

    signer: Any
    private_key: str
    network: str
    max_value: Optional[int]
