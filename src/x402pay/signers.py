"""Signer implementations for EIP-712 typed data.

The payment client never holds key material itself. It only needs an object
that exposes an address and can sign a structured message; any wallet,
remote signer or hardware device can be plugged in by implementing
ClientEvmSigner.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Optional, Protocol, Union, runtime_checkable

from x402pay.chains import NETWORK_TO_ID

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount


SignatureLike = Union[bytes, str]


@runtime_checkable
class ClientEvmSigner(Protocol):
    """Signing capability supplied by the caller.

    ``sign_typed_data`` may return the signature directly or an awaitable
    resolving to it. Signers may also expose a ``network`` attribute naming
    the chain they prefer to pay on.
    """

    @property
    def address(self) -> str: ...

    def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        primary_type: str,
        message: dict[str, Any],
    ) -> Union[SignatureLike, Awaitable[SignatureLike]]: ...


class EthAccountSigner:
    """Client-side EVM signer using eth_account library.

    Example:
        ```python
        from eth_account import Account
        from x402pay.signers import EthAccountSigner

        account = Account.from_key("0x...")
        signer = EthAccountSigner(account, network="base")
        ```

    Args:
        account: eth_account LocalAccount instance.
        network: Network this wallet pays on, used as the preferred network
            when negotiating requirements.
    """

    def __init__(self, account: "LocalAccount", network: Optional[str] = None) -> None:
        self._account = account
        self.network = network

    @property
    def address(self) -> str:
        """The signer's Ethereum address (checksummed)."""
        return self._account.address

    def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        primary_type: str,
        message: dict[str, Any],
    ) -> bytes:
        """Sign EIP-712 typed data.

        Args:
            domain: EIP-712 domain separator.
            types: Type definitions, excluding EIP712Domain.
            primary_type: Primary type name (unused, inferred by eth_account).
            message: Message data.

        Returns:
            65-byte ECDSA signature (r, s, v).
        """
        signed = self._account.sign_typed_data(
            domain_data=domain,
            message_types=types,
            message_data=message,
        )
        return bytes(signed.signature)


def normalize_private_key(key: str) -> str:
    """Normalize a private key string to a 0x-prefixed hex string.

    Accepts keys with or without the 0x prefix.
    """
    return key if key.startswith("0x") else f"0x{key}"


def create_signer(network: str, private_key: str) -> EthAccountSigner:
    """Create an eth_account backed signer for x402 payments.

    Args:
        network: Network name (e.g., "base", "base-sepolia")
        private_key: Hex-encoded private key

    Returns:
        Configured EthAccountSigner

    Raises:
        ValueError: If the network is not supported
    """
    from eth_account import Account

    if network not in NETWORK_TO_ID:
        raise ValueError(
            f"Unsupported network: {network}. Supported: {', '.join(NETWORK_TO_ID)}"
        )
    account = Account.from_key(normalize_private_key(private_key))
    return EthAccountSigner(account, network=network)
