"""x402pay: pay-per-request HTTP client for the x402 protocol."""

# EVM exact scheme
from x402pay.exact import (
    build_authorization,
    build_typed_data,
    create_nonce,
    sign_authorization,
    sign_authorization_async,
)

# Codec
from x402pay.encoding import (
    decode_payment,
    decode_payment_required,
    encode_payment,
)

# Clients
from x402pay.clients.base import x402Client

# Signers
from x402pay.signers import (
    ClientEvmSigner,
    EthAccountSigner,
    create_signer,
    normalize_private_key,
)

# Types and errors
from x402pay.types import (
    EIP3009Authorization,
    ExactPaymentPayload,
    MalformedChallengeError,
    NoAcceptableRequirementError,
    PaymentAmountExceededError,
    PaymentError,
    PaymentPayload,
    PaymentRequirements,
    SigningError,
    X402PaymentResult,
    x402PaymentRequiredResponse,
)

from x402pay.common import DEFAULT_MAX_VALUE, x402_VERSION


__all__ = [
    # EVM
    "build_authorization",
    "build_typed_data",
    "create_nonce",
    "sign_authorization",
    "sign_authorization_async",
    # Codec
    "decode_payment",
    "decode_payment_required",
    "encode_payment",
    # Clients
    "x402Client",
    # Signers
    "ClientEvmSigner",
    "EthAccountSigner",
    "create_signer",
    "normalize_private_key",
    # Types
    "EIP3009Authorization",
    "ExactPaymentPayload",
    "PaymentPayload",
    "PaymentRequirements",
    "X402PaymentResult",
    "x402PaymentRequiredResponse",
    # Errors
    "PaymentError",
    "MalformedChallengeError",
    "NoAcceptableRequirementError",
    "PaymentAmountExceededError",
    "SigningError",
    # Common
    "DEFAULT_MAX_VALUE",
    "x402_VERSION",
]
