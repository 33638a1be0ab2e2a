"""Pay for and execute x402-protected workflows."""

import json
import logging
import os
from typing import Any, Optional

import httpx

from x402pay.chains import get_chain_id
from x402pay.clients.base import x402Client
from x402pay.clients.httpx import x402HttpxClient
from x402pay.common import DEFAULT_MAX_VALUE
from x402pay.signers import create_signer
from x402pay.types import X402PaymentResult

logger = logging.getLogger(__name__)

PRIVATE_KEY_ENV = "WALLET_PRIVATE_KEY"


class WorkflowExecutionError(Exception):
    """Raised when a paid workflow trigger does not answer with a 2xx status."""

    def __init__(self, status_code: int, error_data: Any):
        self.status_code = status_code
        self.error_data = error_data
        super().__init__(f"Workflow execution failed: {status_code} {json.dumps(error_data)}")


class PaymentsAPI:
    """Pay for and execute x402-protected workflows with a local wallet.

    Example:
        ```python
        payments = PaymentsAPI()
        result = await payments.pay_workflow(
            "https://api.openserv.ai/webhooks/x402/trigger/abc123",
            input={"query": "Hello world"},
        )
        print(result.response)
        ```
    """

    def __init__(
        self,
        network: str = "base",
        max_value: Optional[int] = DEFAULT_MAX_VALUE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.network = network
        self.max_value = max_value
        self._transport = transport

    async def pay_workflow(
        self,
        trigger_url: str,
        private_key: Optional[str] = None,
        input: Optional[dict[str, Any]] = None,
    ) -> X402PaymentResult:
        """Pay for and execute an x402-protected workflow.

        The trigger is POSTed with the buyer's address and input; a 402
        challenge is paid and the request retried once.

        Args:
            trigger_url: The x402 trigger URL
            private_key: Wallet private key. Falls back to WALLET_PRIVATE_KEY.
            input: Input data to pass to the workflow

        Raises:
            ValueError: If no private key is available
            WorkflowExecutionError: If the final response is not successful
        """
        private_key = private_key or os.environ.get(PRIVATE_KEY_ENV)
        if not private_key:
            raise ValueError(
                f"Private key is required. Provide it as a parameter or set {PRIVATE_KEY_ENV} env var."
            )

        signer = create_signer(self.network, private_key)
        client = x402Client(signer, max_value=self.max_value)

        async with x402HttpxClient(client, transport=self._transport) as http:
            response = await http.post(
                trigger_url,
                json={"buyerAddress": signer.address, "payload": input or {}},
            )

        if not response.is_success:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            raise WorkflowExecutionError(response.status_code, error_data)

        logger.debug("Workflow at %s executed with status %s", trigger_url, response.status_code)
        return X402PaymentResult(
            success=True,
            response=response.json(),
            network=self.network,
            chain_id=int(get_chain_id(self.network)),
        )
