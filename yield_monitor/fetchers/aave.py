"""
Aave V3 adapter - variable-rate reserves with ray-encoded rates.

Reads the AaveProtocolDataProvider for each reserve:
- APY: liquidityRate (ray, 1e27) compounded per second over a year
- TVL: available liquidity + stable debt + variable debt
"""

import logging
from typing import Dict

from web3 import Web3

from ..config.protocols import AAVE_POOL_DATA_PROVIDER_ABI, ERC20_ABI
from ..core.models import PoolMetric
from .base import RAY, SECONDS_PER_YEAR, ProtocolAdapter, now_ms, scale_amount

logger = logging.getLogger(__name__)

# getReserveData output positions
TOTAL_STABLE_DEBT = 3
TOTAL_VARIABLE_DEBT = 4
LIQUIDITY_RATE = 5


def ray_rate_to_apy(liquidity_rate: int) -> float:
    """
    Convert a ray-encoded liquidity rate to an APY percentage.

    APY = ((1 + r / SPY) ^ SPY - 1) * 100 with r = liquidityRate / 1e27.
    """
    rate_per_second = liquidity_rate / RAY
    if rate_per_second <= 0:
        return 0.0
    return ((1 + rate_per_second / SECONDS_PER_YEAR) ** SECONDS_PER_YEAR - 1) * 100


class AaveAdapter(ProtocolAdapter):

    protocol_id = "aave_v3"
    address_kind = "asset"
    config_key = "pool_data_provider"

    default_addresses = {
        "ethereum": [
            "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",  # USDC
            "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",  # WETH
            "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",  # WBTC
        ],
        "polygon": [
            "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",  # USDC
            "0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619",  # WETH
            "0x1BFD67037B42Cf73acF2047067bd4F2C47D9BfD6",  # WBTC
        ],
        "arbitrum": [
            "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",  # USDC
            "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",  # WETH
            "0x2f2a2543B76A4166549F7aaB2e75Bef0aefC5B0f",  # WBTC
        ],
        "optimism": [
            "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",  # USDC
            "0x4200000000000000000000000000000000000006",  # WETH
            "0x68f180fcCe6836688e9084f035309E29Bf0A2095",  # WBTC
        ],
        "avalanche": [
            "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",  # USDC
            "0x49D5c2BdFfac6CE2BFdB6640F4F80f226bc10bAB",  # WETH.e
            "0x50b7545627a5162F82A992c33b87aDc75187B52B",  # WBTC.e
        ],
        "base": [
            "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",  # USDC
            "0x4200000000000000000000000000000000000006",  # WETH
            "0xcbB7C0000aB88B473b1f5aFd9ef808440eed33Bf",  # cbBTC
        ],
    }

    def fetch_pool(self, w3: Web3, config: Dict[str, str], address: str, network_id: str, block_number: int, pool_id: str) -> PoolMetric:
        provider = w3.eth.contract(address=config["pool_data_provider"], abi=AAVE_POOL_DATA_PROVIDER_ABI)
        underlying = w3.eth.contract(address=address, abi=ERC20_ABI)

        reserve_data = provider.functions.getReserveData(address).call()
        atoken_address = provider.functions.getReserveTokensAddresses(address).call()[0]
        decimals = underlying.functions.decimals().call()

        # Underlying held by the aToken is what can still be withdrawn or borrowed
        available_liquidity = underlying.functions.balanceOf(atoken_address).call()
        stable_debt = reserve_data[TOTAL_STABLE_DEBT]
        variable_debt = reserve_data[TOTAL_VARIABLE_DEBT]
        liquidity_rate = reserve_data[LIQUIDITY_RATE]

        tvl = (
            scale_amount(available_liquidity, decimals)
            + scale_amount(stable_debt, decimals)
            + scale_amount(variable_debt, decimals)
        )

        try:
            symbol = underlying.functions.symbol().call()
        except Exception as e:
            logger.debug(f"symbol() unavailable for {address} on {network_id}: {e}")
            symbol = address

        return PoolMetric(
            pool_id=pool_id,
            protocol=self.protocol_id,
            network=network_id,
            asset=symbol,
            apy=ray_rate_to_apy(liquidity_rate),
            tvl=tvl,
            timestamp=now_ms(),
            block_number=block_number,
            additional_data={
                "liquidity_rate": liquidity_rate,
                "available_liquidity": scale_amount(available_liquidity, decimals),
                "total_debt": scale_amount(stable_debt + variable_debt, decimals),
                "decimals": decimals,
            },
        )
