"""
Compound V3 (Comet) adapter - one base-asset market per Comet contract.

Supply rate is derived from current utilization:
    utilization = totalBorrow * 1e18 / totalSupply
    APY = getSupplyRate(utilization) / 1e18 * SECONDS_PER_YEAR * 100
"""

import logging
from typing import Dict

from web3 import Web3

from ..config.protocols import COMET_ABI, ERC20_ABI
from ..core.models import PoolMetric
from .base import SECONDS_PER_YEAR, WAD, ProtocolAdapter, now_ms, scale_amount

logger = logging.getLogger(__name__)

# Comet markets and their base asset symbol, per network
COMET_MARKETS = {
    "ethereum": {
        "0xc3d688B66703497DAA19211EEdff47f25384cdc3": "USDC",
        "0x3Afdc9BCA9213A35503b077a6072F3D0d5AB0840": "USDT",
        "0xA17581A9E3356d9A858b789D68B4d866e593aE94": "WETH",
    },
    "base": {
        "0xb125E6687d4313864e53df431d5425969c15Eb2F": "USDC",
        "0x46e6b214b524310239732D51387075E0e70970bf": "WETH",
    },
    "arbitrum": {
        "0x9c4ec768c28520B50860ea7a15bd7213a9fF58bf": "USDC",
        "0xA5EDBDD9646f8dFF606d7448e414884C7d905dCA": "USDC.e",
        "0xd98Be00b5D27fc98112BdE293e487f8D4cA57d07": "USDT",
        "0x6f7D514bbD4aFf3BcD1140B7344b32f063dEe486": "WETH",
    },
    "polygon": {
        "0xF25212E676D1F7F89Cd72fFEe66158f541246445": "USDC",
    },
    "optimism": {
        "0x2e44e174f7D53F0212823acC11C01A11d58c5bCB": "USDC",
    },
}

DEFAULT_BASE_SYMBOL = "USDC"


def utilization(total_supply: int, total_borrow: int) -> int:
    """WAD-scaled utilization, 0 for an empty market."""
    if total_supply == 0:
        return 0
    return total_borrow * WAD // total_supply


def comet_rate_to_apy(supply_rate: int) -> float:
    """Per-second WAD supply rate to a simple annualized percentage."""
    return supply_rate / WAD * SECONDS_PER_YEAR * 100


class CompoundAdapter(ProtocolAdapter):

    protocol_id = "compound_v3"
    address_kind = "market"
    config_key = "comet"

    default_addresses = {
        network_id: list(markets.keys()) for network_id, markets in COMET_MARKETS.items()
    }

    def base_symbol(self, w3: Web3, comet, address: str, network_id: str) -> str:
        known = {a.lower(): s for a, s in COMET_MARKETS.get(network_id, {}).items()}
        if address.lower() in known:
            return known[address.lower()]

        try:
            base_token = comet.functions.baseToken().call()
            return w3.eth.contract(address=base_token, abi=ERC20_ABI).functions.symbol().call()
        except Exception as e:
            logger.debug(f"Base token lookup failed for {address} on {network_id}: {e}")
            return DEFAULT_BASE_SYMBOL

    def fetch_pool(self, w3: Web3, config: Dict[str, str], address: str, network_id: str, block_number: int, pool_id: str) -> PoolMetric:
        comet = w3.eth.contract(address=address, abi=COMET_ABI)

        total_supply = comet.functions.totalSupply().call()
        total_borrow = comet.functions.totalBorrow().call()
        decimals = comet.functions.decimals().call()

        util = utilization(total_supply, total_borrow)
        supply_rate = comet.functions.getSupplyRate(util).call()

        return PoolMetric(
            pool_id=pool_id,
            protocol=self.protocol_id,
            network=network_id,
            asset=self.base_symbol(w3, comet, address, network_id),
            apy=comet_rate_to_apy(supply_rate),
            tvl=scale_amount(total_supply, decimals),
            timestamp=now_ms(),
            block_number=block_number,
            additional_data={
                "utilization": util / WAD,
                "supply_rate": supply_rate,
                "total_borrow": scale_amount(total_borrow, decimals),
                "decimals": decimals,
            },
        )
