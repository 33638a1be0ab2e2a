import logging
from typing import Callable, List, Optional, Union

from x402pay.common import DEFAULT_MAX_VALUE, SCHEME_EXACT, x402_VERSION
from x402pay.encoding import decode_payment_required, encode_payment
from x402pay.exact import (
    build_authorization,
    sign_authorization,
    sign_authorization_async,
    to_uint256,
)
from x402pay.signers import ClientEvmSigner, create_signer
from x402pay.types import (
    ClientConfig,
    EIP3009Authorization,
    ExactPaymentPayload,
    MalformedChallengeError,
    NoAcceptableRequirementError,
    PaymentAmountExceededError,
    PaymentError,
    PaymentPayload,
    PaymentRequirements,
    SigningError,
    x402PaymentRequiredResponse,
)

logger = logging.getLogger(__name__)

# Define type for the payment requirements selector
PaymentSelectorCallable = Callable[
    [List[PaymentRequirements], Optional[str]],
    PaymentRequirements,
]

__all__ = [
    "x402Client",
    "PaymentSelectorCallable",
    "PaymentError",
    "MalformedChallengeError",
    "NoAcceptableRequirementError",
    "PaymentAmountExceededError",
    "SigningError",
]


class x402Client:
    """Client for paying x402 challenges on EVM networks.

    Holds the caller's signer and spending policy. Every call builds a fresh
    authorization, so one client can be shared by concurrent requests.
    """

    def __init__(
        self,
        signer: Optional[ClientEvmSigner] = None,
        max_value: Optional[int] = DEFAULT_MAX_VALUE,
        network: Optional[str] = None,
        payment_requirements_selector: Optional[PaymentSelectorCallable] = None,
    ):
        """Initialize the x402 client.

        Args:
            signer: Signing capability used to sign authorizations
            max_value: Maximum allowed payment amount in base units. None
                disables the ceiling.
            network: Preferred network. Defaults to the signer's network.
            payment_requirements_selector: Optional custom selector for payment requirements
        """
        self.signer = signer
        self.max_value = max_value
        self.network = network if network is not None else getattr(signer, "network", None)
        self._payment_requirements_selector = (
            payment_requirements_selector or self.default_payment_requirements_selector
        )

    @classmethod
    def from_config(cls, config: ClientConfig) -> "x402Client":
        """Create a client from a configuration dict.

        A ``private_key`` is turned into an eth_account signer on
        ``network`` (default "base") when no ``signer`` is given.
        """
        network = config.get("network")
        signer = config.get("signer")
        if signer is None and config.get("private_key"):
            signer = create_signer(network or "base", config["private_key"])
        return cls(
            signer=signer,
            max_value=config.get("max_value", DEFAULT_MAX_VALUE),
            network=network,
        )

    @staticmethod
    def default_payment_requirements_selector(
        accepts: List[PaymentRequirements],
        network: Optional[str] = None,
    ) -> PaymentRequirements:
        """Select payment requirements from the list of accepted requirements.

        Server ordering expresses the server's preference, so the first
        match wins: an "exact" requirement on the preferred network, then
        any "exact" requirement, then the first requirement offered.

        Raises:
            MalformedChallengeError: If no requirements were offered
        """
        if not accepts:
            raise MalformedChallengeError("No payment requirements offered")

        if network:
            for requirements in accepts:
                if requirements.scheme == SCHEME_EXACT and requirements.network == network:
                    return requirements

        for requirements in accepts:
            if requirements.scheme == SCHEME_EXACT:
                return requirements

        return accepts[0]

    def select_payment_requirements(
        self,
        accepts: List[PaymentRequirements],
    ) -> PaymentRequirements:
        """Select payment requirements using the configured selector.

        Raises:
            PaymentAmountExceededError: If payment amount exceeds max_value
        """
        selected = self._payment_requirements_selector(accepts, self.network)
        logger.debug(
            "Selected %s payment on %s for %s",
            selected.scheme,
            selected.network,
            selected.max_amount_required,
        )

        if self.max_value is not None:
            amount = to_uint256(selected.max_amount_required, "maxAmountRequired")
            if amount > self.max_value:
                raise PaymentAmountExceededError(
                    f"Payment amount {amount} exceeds maximum allowed value {self.max_value}"
                )

        return selected

    def _prepare_authorization(
        self, payment_requirements: PaymentRequirements
    ) -> EIP3009Authorization:
        if payment_requirements.scheme != SCHEME_EXACT:
            raise NoAcceptableRequirementError(
                f"Unsupported payment scheme: {payment_requirements.scheme}"
            )
        if self.signer is None:
            raise SigningError("No signer configured for payment")
        return build_authorization(self.signer.address, payment_requirements)

    @staticmethod
    def _assemble_payload(
        payment_requirements: PaymentRequirements,
        authorization: EIP3009Authorization,
        signature: str,
        x402_version: int,
    ) -> PaymentPayload:
        return PaymentPayload(
            x402_version=x402_version,
            scheme=payment_requirements.scheme,
            network=payment_requirements.network,
            payload=ExactPaymentPayload(signature=signature, authorization=authorization),
        )

    def create_payment_payload(
        self,
        payment_requirements: PaymentRequirements,
        x402_version: int = x402_VERSION,
    ) -> PaymentPayload:
        """Build and sign a payment payload (synchronous signer)."""
        authorization = self._prepare_authorization(payment_requirements)
        signature = sign_authorization(self.signer, authorization, payment_requirements)
        return self._assemble_payload(payment_requirements, authorization, signature, x402_version)

    async def create_payment_payload_async(
        self,
        payment_requirements: PaymentRequirements,
        x402_version: int = x402_VERSION,
    ) -> PaymentPayload:
        """Build and sign a payment payload, awaiting asynchronous signers."""
        authorization = self._prepare_authorization(payment_requirements)
        signature = await sign_authorization_async(
            self.signer, authorization, payment_requirements
        )
        return self._assemble_payload(payment_requirements, authorization, signature, x402_version)

    def create_payment_header(
        self,
        payment_requirements: PaymentRequirements,
        x402_version: int = x402_VERSION,
    ) -> str:
        """Create a signed X-PAYMENT header value for the given requirements."""
        return encode_payment(self.create_payment_payload(payment_requirements, x402_version))

    async def create_payment_header_async(
        self,
        payment_requirements: PaymentRequirements,
        x402_version: int = x402_VERSION,
    ) -> str:
        """Async version of create_payment_header."""
        payload = await self.create_payment_payload_async(payment_requirements, x402_version)
        return encode_payment(payload)

    def _negotiate(self, body: Union[bytes, str]) -> tuple[x402PaymentRequiredResponse, PaymentRequirements]:
        payment_required = decode_payment_required(body)
        selected = self.select_payment_requirements(payment_required.accepts)
        return payment_required, selected

    def handle_402_response(self, body: Union[bytes, str]) -> str:
        """Turn the body of a 402 response into an X-PAYMENT header value.

        Parses the challenge, negotiates one requirement, enforces max_value
        and signs. The server's x402Version is echoed in the payload.
        """
        payment_required, selected = self._negotiate(body)
        return self.create_payment_header(selected, payment_required.x402_version)

    async def handle_402_response_async(self, body: Union[bytes, str]) -> str:
        """Async version of handle_402_response."""
        payment_required, selected = self._negotiate(body)
        return await self.create_payment_header_async(selected, payment_required.x402_version)
