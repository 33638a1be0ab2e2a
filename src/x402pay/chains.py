from typing import Optional, TypedDict

NETWORK_TO_ID = {
    "base-sepolia": "84532",
    "base": "8453",
    "avalanche-fuji": "43113",
    "avalanche": "43114",
    "ethereum": "1",
    "polygon": "137",
    "polygon-amoy": "80002",
}


def get_chain_id(network: str) -> str:
    """Get the chain ID for a given network
    Supports string encoded chain IDs and human readable networks
    """
    try:
        int(network)
        return network
    except ValueError:
        pass
    if network not in NETWORK_TO_ID:
        raise ValueError(f"Unsupported network: {network}")
    return NETWORK_TO_ID[network]


class KnownToken(TypedDict):
    address: str
    name: str
    version: str


KNOWN_TOKENS: dict[str, list[KnownToken]] = {
    "84532": [
        {
            "address": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            "name": "USDC",
            "version": "2",
        }
    ],
    "8453": [
        {
            "address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            "name": "USD Coin",  # needs to be exactly what is returned by name() on contract
            "version": "2",
        }
    ],
    "43113": [
        {
            "address": "0x5425890298aed601595a70AB815c96711a31Bc65",
            "name": "USD Coin",
            "version": "2",
        }
    ],
    "43114": [
        {
            "address": "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
            "name": "USDC",
            "version": "2",
        }
    ],
}


def find_known_token(chain_id: str, address: str) -> Optional[KnownToken]:
    """Look up a known token by chain and contract address (case-insensitive)"""
    for token in KNOWN_TOKENS.get(chain_id, []):
        if token["address"].lower() == address.lower():
            return token
    return None
