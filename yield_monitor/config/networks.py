"""
Network Registry - static table of supported networks.

Each entry maps a network id to its connection parameters. RPC endpoints are
resolved from the environment once, at import time:

    <NETWORK>_RPC_URL  ->  RPC_URL  ->  Alchemy URL built from ALCHEMY_API_KEY
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from . import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkDescriptor:
    """Connection parameters for one network."""
    id: str
    name: str
    chain_id: Optional[int]
    rpc_url: str
    native_currency: str
    explorer: str
    poa: bool = False

    @property
    def is_evm(self) -> bool:
        return self.chain_id is not None


# id -> (name, chain_id, native currency, explorer, provider slug, poa)
NETWORK_TABLE = {
    "ethereum": ("Ethereum Mainnet", 1, "ETH", "https://etherscan.io", "eth-mainnet", False),
    "ethereum-sepolia": ("Ethereum Sepolia", 11155111, "ETH", "https://sepolia.etherscan.io", "eth-sepolia", False),
    "base": ("Base Mainnet", 8453, "ETH", "https://basescan.org", "base-mainnet", True),
    "base-sepolia": ("Base Sepolia", 84532, "ETH", "https://sepolia.basescan.org", "base-sepolia", True),
    "optimism": ("OP Mainnet", 10, "ETH", "https://optimistic.etherscan.io", "opt-mainnet", True),
    "optimism-sepolia": ("OP Sepolia", 11155420, "ETH", "https://sepolia-optimism.etherscan.io", "opt-sepolia", True),
    "polygon": ("Polygon Mainnet", 137, "MATIC", "https://polygonscan.com", "polygon-mainnet", True),
    "polygon-amoy": ("Polygon Amoy", 80002, "MATIC", "https://amoy.polygonscan.com", "polygon-amoy", True),
    "arbitrum": ("Arbitrum One", 42161, "ETH", "https://arbiscan.io", "arb-mainnet", True),
    "arbitrum-sepolia": ("Arbitrum Sepolia", 421614, "ETH", "https://sepolia.arbiscan.io", "arb-sepolia", True),
    "avalanche": ("Avalanche C-Chain", 43114, "AVAX", "https://snowtrace.io", "avax-mainnet", True),
    "avalanche-fuji": ("Avalanche Fuji", 43113, "AVAX", "https://testnet.snowtrace.io", "avax-fuji", True),
    "bnb": ("BNB Smart Chain", 56, "BNB", "https://bscscan.com", "bnb-mainnet", True),
    "bnb-testnet": ("BNB Smart Chain Testnet", 97, "BNB", "https://testnet.bscscan.com", "bnb-testnet", True),
    "solana": ("Solana Mainnet", None, "SOL", "https://explorer.solana.com", "solana-mainnet", False),
    "solana-devnet": ("Solana Devnet", None, "SOL", "https://explorer.solana.com?cluster=devnet", "solana-devnet", False),
}

# Provider URL fragments, checked in order
_PROVIDER_PATTERNS = [
    ("eth-mainnet", "ethereum"),
    ("eth-sepolia", "ethereum-sepolia"),
    ("base-mainnet", "base"),
    ("base-sepolia", "base-sepolia"),
    ("opt-mainnet", "optimism"),
    ("opt-sepolia", "optimism-sepolia"),
    ("polygon-mainnet", "polygon"),
    ("polygon-amoy", "polygon-amoy"),
    ("arb-mainnet", "arbitrum"),
    ("arb-sepolia", "arbitrum-sepolia"),
    ("avax-mainnet", "avalanche"),
    ("avax-fuji", "avalanche-fuji"),
    ("bnb-mainnet", "bnb"),
    ("bnb-testnet", "bnb-testnet"),
    ("solana-mainnet", "solana"),
    ("solana-devnet", "solana-devnet"),
]

# Generic chain-family fragments, checked after provider patterns
_GENERIC_PATTERNS = [
    (("base",), "base"),
    (("polygon",), "polygon"),
    (("arbitrum", "arb"), "arbitrum"),
    (("optimism", "opt"), "optimism"),
    (("avalanche", "avax"), "avalanche"),
    (("bsc", "bnb"), "bnb"),
    (("solana",), "solana"),
]


def env_var_name(network_id: str) -> str:
    """Environment variable holding the network-specific RPC endpoint."""
    return network_id.upper().replace("-", "_") + "_RPC_URL"


def resolve_rpc_url(network_id: str, env: Mapping[str, str] = None) -> str:
    """Resolve the RPC endpoint for a network from the environment."""
    env = os.environ if env is None else env
    slug = NETWORK_TABLE[network_id][4]
    return (
        env.get(env_var_name(network_id))
        or env.get("RPC_URL")
        or f"https://{slug}.g.alchemy.com/v2/{env.get('ALCHEMY_API_KEY', settings.ALCHEMY_API_KEY)}"
    )


def build_networks(env: Mapping[str, str] = None) -> Dict[str, NetworkDescriptor]:
    """Build the registry from the static table and an environment."""
    networks = {}
    for network_id, (name, chain_id, currency, explorer, _slug, poa) in NETWORK_TABLE.items():
        networks[network_id] = NetworkDescriptor(
            id=network_id,
            name=name,
            chain_id=chain_id,
            rpc_url=resolve_rpc_url(network_id, env),
            native_currency=currency,
            explorer=explorer,
            poa=poa,
        )
    return networks


NETWORKS: Dict[str, NetworkDescriptor] = build_networks()


def supported_network_ids() -> List[str]:
    return list(NETWORKS.keys())


def is_valid_network(network_id: str) -> bool:
    return network_id in NETWORKS


def get_network(network_id: str) -> NetworkDescriptor:
    """
    Look up a network descriptor.

    Raises:
        UnsupportedNetwork: if the id is not in the registry
    """
    # Imported here to keep config importable without the core package
    from ..core.errors import UnsupportedNetwork

    try:
        return NETWORKS[network_id]
    except KeyError:
        raise UnsupportedNetwork(network_id, supported_network_ids()) from None


def detect_network_from_rpc(rpc_url: str) -> str:
    """
    Guess the network from an RPC URL.

    Provider-style slugs (eth-mainnet, base-sepolia, ...) win over generic
    chain names. Falls back to ethereum.
    """
    url = rpc_url.lower()

    for fragment, network_id in _PROVIDER_PATTERNS:
        if fragment in url:
            return network_id

    for fragments, network_id in _GENERIC_PATTERNS:
        if any(fragment in url for fragment in fragments):
            return network_id

    logger.warning(f"Could not detect network from RPC URL {rpc_url}, defaulting to ethereum")
    return "ethereum"


def default_network(rpc_url: str = None) -> str:
    """Default network: detected from RPC_URL when set, else DEFAULT_NETWORK."""
    rpc_url = settings.RPC_URL if rpc_url is None else rpc_url
    if rpc_url:
        return detect_network_from_rpc(rpc_url)
    return settings.DEFAULT_NETWORK
