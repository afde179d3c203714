"""
Morpho vault adapter - ERC4626 MetaMorpho vaults.

TVL comes from totalAssets(). Vault APY is not derivable from a single view
call, so it is taken from a per-vault-family table keyed on the share symbol
and tagged apy_source="static_table".
"""

import logging
from typing import Dict

from web3 import Web3

from ..config.protocols import MORPHO_VAULT_ABI
from ..core.models import PoolMetric
from .base import ProtocolAdapter, now_ms, scale_amount

logger = logging.getLogger(__name__)

# Symbol prefix -> APY percentage
VAULT_APY_TABLE = {
    "ma": 6.2,
    "mc": 6.8,
}
DEFAULT_VAULT_APY = 5.5
STATIC_APY_SOURCE = "static_table"

# Underlying token address (lowercase) -> symbol
KNOWN_ASSETS = {
    "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": "USDC",
    "0xdac17f958d2ee523a2206206994597c13d831ec7": "USDT",
    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": "WETH",
    "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599": "WBTC",
    "0x6b175474e89094c44da98b954eedeac495271d0f": "DAI",
}

# Underlying symbols recognized inside a vault share symbol, checked in order
SYMBOL_ASSETS = ["USDC", "USDT", "WETH", "DAI"]


def vault_apy_for_symbol(symbol: str) -> float:
    """Table APY for a vault share symbol (e.g. maUSDC -> 6.2)."""
    for prefix, apy in VAULT_APY_TABLE.items():
        if symbol.startswith(prefix):
            return apy
    return DEFAULT_VAULT_APY


def asset_label(asset_address: str, vault_symbol: str) -> str:
    """Underlying asset name: known address, then symbol contents, then prefix strip."""
    known = KNOWN_ASSETS.get(asset_address.lower())
    if known:
        return known
    for asset in SYMBOL_ASSETS:
        if asset in vault_symbol.upper():
            return asset
    for prefix in VAULT_APY_TABLE:
        if vault_symbol.startswith(prefix) and len(vault_symbol) > len(prefix):
            return vault_symbol[len(prefix):]
    return vault_symbol


class MorphoAdapter(ProtocolAdapter):

    protocol_id = "morpho"
    address_kind = "vault"
    config_key = "morpho"

    default_addresses = {
        "ethereum": [
            "0xa5269a8e31b93ff27b887b56720a25f844db0529",
            "0xba9E3b3b684719F80657af1A19DEbc3C772494a0",
            "0xC2A4fBA93d4120d304c94E4fd986e0f9D213eD8A",
            "0xafe7131a57e44f832cb2de78ade38cad644aac2f",
            "0x490bbbc2485e99989ba39b34802fafa58e26aba4",
            "0x676E1B7d5856f4f69e10399685e17c2299370E95",
        ],
        "base": [
            "0xBEEFA7B88064FeEF0cEe02AAeBBd95D30df3878F",
        ],
    }

    def fetch_pool(self, w3: Web3, config: Dict[str, str], address: str, network_id: str, block_number: int, pool_id: str) -> PoolMetric:
        vault = w3.eth.contract(address=address, abi=MORPHO_VAULT_ABI)

        total_assets = vault.functions.totalAssets().call()
        decimals = vault.functions.decimals().call()
        symbol = vault.functions.symbol().call()
        asset_address = vault.functions.asset().call()

        return PoolMetric(
            pool_id=pool_id,
            protocol=self.protocol_id,
            network=network_id,
            asset=asset_label(asset_address, symbol),
            apy=vault_apy_for_symbol(symbol),
            tvl=scale_amount(total_assets, decimals),
            timestamp=now_ms(),
            block_number=block_number,
            apy_source=STATIC_APY_SOURCE,
            additional_data={
                "vault_symbol": symbol,
                "underlying": asset_address,
                "decimals": decimals,
            },
        )
