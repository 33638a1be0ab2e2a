"""Protocol constants shared by the client modules."""

x402_VERSION = 1

# Status code a resource server answers with when payment is required
PAYMENT_REQUIRED_STATUS = 402

X_PAYMENT_HEADER = "X-PAYMENT"
X_PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"

SCHEME_EXACT = "exact"

# 0.1 USDC in atomic units (6 decimals)
DEFAULT_MAX_VALUE = 100_000

# Seconds subtracted from the issue time for validAfter (clock skew)
VALIDITY_BUFFER_SECONDS = 600

UINT256_MAX = 2**256 - 1
