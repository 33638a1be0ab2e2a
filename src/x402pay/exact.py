"""The "exact" scheme for EVM networks.

Builds EIP-3009 TransferWithAuthorization records and signs them as EIP-712
typed data. All monetary fields travel as decimal strings and are only
converted to integers here, when the typed message is assembled.
"""

import inspect
import re
import secrets
import time
from typing import Any, Optional

from eth_utils import is_address, to_checksum_address
from pydantic import ValidationError

from x402pay.chains import find_known_token, get_chain_id
from x402pay.common import UINT256_MAX, VALIDITY_BUFFER_SECONDS
from x402pay.signers import ClientEvmSigner
from x402pay.types import (
    EIP3009Authorization,
    MalformedChallengeError,
    NoAcceptableRequirementError,
    PaymentRequirements,
    SigningError,
)

_UINT_PATTERN = re.compile(r"[0-9]+")

TRANSFER_WITH_AUTHORIZATION_TYPES = {
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ]
}


def create_nonce() -> str:
    """Create a random 32-byte hex-encoded nonce for authorization signatures."""
    return "0x" + secrets.token_hex(32)


def to_uint256(value: str, field_name: str = "value") -> int:
    """Convert a decimal string to an int that fits in a uint256.

    Raises:
        MalformedChallengeError: If the string is not a decimal integer or is
            out of range
    """
    if not isinstance(value, str) or not _UINT_PATTERN.fullmatch(value):
        raise MalformedChallengeError(f"{field_name} must be a decimal integer string, got {value!r}")
    number = int(value)
    if number > UINT256_MAX:
        raise MalformedChallengeError(f"{field_name} does not fit in uint256: {value}")
    return number


def build_authorization(
    payer_address: str,
    payment_requirements: PaymentRequirements,
    issued_at: Optional[int] = None,
) -> EIP3009Authorization:
    """Build an unsigned TransferWithAuthorization for the selected requirement.

    Args:
        payer_address: Address the funds are drawn from
        payment_requirements: The requirement chosen during negotiation
        issued_at: Unix timestamp the validity window is anchored to;
            defaults to now

    Returns:
        Authorization valid from ``issued_at - 600`` until
        ``issued_at + max_timeout_seconds`` with a fresh random nonce

    Raises:
        MalformedChallengeError: If payTo or asset is not a valid address, or
            the amount is not a valid uint256
        SigningError: If the payer address is not a valid address
    """
    if not is_address(payment_requirements.pay_to):
        raise MalformedChallengeError(f"Invalid payTo address: {payment_requirements.pay_to!r}")
    if not is_address(payment_requirements.asset):
        raise MalformedChallengeError(f"Invalid asset address: {payment_requirements.asset!r}")
    to_uint256(payment_requirements.max_amount_required, "maxAmountRequired")
    if not is_address(payer_address):
        raise SigningError(f"Signer reported an invalid address: {payer_address!r}")

    if issued_at is None:
        issued_at = int(time.time())

    try:
        return EIP3009Authorization(
            from_=payer_address,
            to=payment_requirements.pay_to,
            value=payment_requirements.max_amount_required,
            valid_after=str(max(issued_at - VALIDITY_BUFFER_SECONDS, 0)),
            valid_before=str(issued_at + payment_requirements.max_timeout_seconds),
            nonce=create_nonce(),
        )
    except ValidationError as e:
        raise MalformedChallengeError(f"Invalid authorization window: {e}") from e


def _resolve_domain(payment_requirements: PaymentRequirements, chain_id: str) -> tuple[str, str]:
    extra = payment_requirements.extra or {}
    name = extra.get("name")
    version = extra.get("version")
    if name and version:
        return name, version

    # Servers may omit the domain for well-known tokens
    token = find_known_token(chain_id, payment_requirements.asset)
    if token is None:
        raise MalformedChallengeError(
            f"Missing EIP-712 domain name/version for asset {payment_requirements.asset} "
            f"on {payment_requirements.network}"
        )
    return name or token["name"], version or token["version"]


def build_typed_data(
    authorization: EIP3009Authorization,
    payment_requirements: PaymentRequirements,
) -> dict[str, Any]:
    """Assemble the EIP-712 typed message for an authorization.

    The domain binds the signature to the token contract and chain, so it
    cannot be replayed against another asset or network.
    """
    try:
        chain_id = get_chain_id(payment_requirements.network)
    except ValueError as e:
        raise NoAcceptableRequirementError(str(e)) from e

    name, version = _resolve_domain(payment_requirements, chain_id)

    return {
        "types": TRANSFER_WITH_AUTHORIZATION_TYPES,
        "primaryType": "TransferWithAuthorization",
        "domain": {
            "name": name,
            "version": version,
            "chainId": int(chain_id),
            "verifyingContract": to_checksum_address(payment_requirements.asset),
        },
        "message": {
            "from": to_checksum_address(authorization.from_),
            "to": to_checksum_address(authorization.to),
            "value": to_uint256(authorization.value, "value"),
            "validAfter": to_uint256(authorization.valid_after, "validAfter"),
            "validBefore": to_uint256(authorization.valid_before, "validBefore"),
            "nonce": bytes.fromhex(authorization.nonce.removeprefix("0x")),
        },
    }


def _normalize_signature(signature: Any) -> str:
    if isinstance(signature, (bytes, bytearray)):
        return "0x" + bytes(signature).hex()
    if isinstance(signature, str):
        return signature if signature.startswith("0x") else f"0x{signature}"
    raise SigningError(f"Signer returned unsupported signature type {type(signature).__name__}")


def sign_authorization(
    signer: ClientEvmSigner,
    authorization: EIP3009Authorization,
    payment_requirements: PaymentRequirements,
) -> str:
    """Sign an authorization with a synchronous signer.

    Returns:
        0x-prefixed hex signature

    Raises:
        SigningError: If the signer fails or only supports async signing
    """
    typed_data = build_typed_data(authorization, payment_requirements)
    try:
        signature = signer.sign_typed_data(
            typed_data["domain"],
            typed_data["types"],
            typed_data["primaryType"],
            typed_data["message"],
        )
    except Exception as e:
        raise SigningError(f"Failed to sign payment authorization: {e}") from e

    if inspect.isawaitable(signature):
        if inspect.iscoroutine(signature):
            signature.close()
        raise SigningError("Signer is asynchronous; use the async payment client")

    return _normalize_signature(signature)


async def sign_authorization_async(
    signer: ClientEvmSigner,
    authorization: EIP3009Authorization,
    payment_requirements: PaymentRequirements,
) -> str:
    """Sign an authorization, awaiting the signer if it is asynchronous."""
    typed_data = build_typed_data(authorization, payment_requirements)
    try:
        signature = signer.sign_typed_data(
            typed_data["domain"],
            typed_data["types"],
            typed_data["primaryType"],
            typed_data["message"],
        )
        if inspect.isawaitable(signature):
            signature = await signature
    except Exception as e:
        raise SigningError(f"Failed to sign payment authorization: {e}") from e

    return _normalize_signature(signature)
