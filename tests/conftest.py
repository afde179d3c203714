"""
Pytest configuration and fixtures for the yield monitor.

This file contains shared fixtures used across all test modules. On-chain
state is simulated with FakeChain: a MagicMock Web3 whose eth.contract()
returns pre-registered MagicMock contracts keyed by address.
"""

import pytest
import sys
from pathlib import Path
from typing import Dict
from unittest.mock import MagicMock

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from yield_monitor.config.networks import build_networks
from yield_monitor.config.protocols import PROTOCOL_ADDRESSES
from yield_monitor.core.connections import ConnectionManager
from yield_monitor.core.history import HistoryStore
from yield_monitor.core.models import PoolMetric, make_pool_id
from yield_monitor.core.service import MonitoringService


# =============================================================================
# ADDRESSES
# =============================================================================

USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC_ATOKEN = "0x98C23E9d8f34FEFb1B7BD6a91B7FF122F4e16F5c"
WETH_ATOKEN = "0x4d5F47FA6A74757f35C14fD3a6Ef8E3C9BC514E8"
AAVE_PROVIDER_ETH = PROTOCOL_ADDRESSES["aave_v3"]["ethereum"]["pool_data_provider"]
COMET_USDC_ETH = "0xc3d688B66703497DAA19211EEdff47f25384cdc3"
COMET_USDC_BASE = "0xb125E6687d4313864e53df431d5425969c15Eb2F"
MORPHO_VAULT_ETH = "0xa5269a8e31b93ff27b887b56720a25f844db0529"

START_BLOCK = 19_000_000

# liquidityRate of 1.5% in ray units
RAY_RATE_1_5_PCT = 15 * 10 ** 24


# =============================================================================
# FAKE CHAIN
# =============================================================================

def returning(value) -> MagicMock:
    """Contract function mock: fn(...).call() -> value."""
    fn = MagicMock()
    fn.return_value.call.return_value = value
    return fn


def keyed(mapping: Dict[str, object]) -> MagicMock:
    """Contract function mock keyed by its single address argument."""
    values = {key.lower(): value for key, value in mapping.items()}

    def _call(arg):
        bound = MagicMock()
        if arg.lower() in values:
            bound.call.return_value = values[arg.lower()]
        else:
            bound.call.side_effect = ValueError("execution reverted")
        return bound

    return MagicMock(side_effect=_call)


class FakeChain:
    """A Web3 stand-in with contracts registered by address."""

    def __init__(self, block_number: int = START_BLOCK):
        self.contracts: Dict[str, MagicMock] = {}
        self._reserves: Dict[str, Dict] = {}
        self.w3 = MagicMock()
        self.w3.eth.block_number = block_number
        self.w3.eth.contract.side_effect = self._contract

    def _contract(self, address, abi):
        try:
            return self.contracts[address.lower()]
        except KeyError:
            raise ValueError(f"no contract at {address}") from None

    def add(self, address: str, contract: MagicMock) -> MagicMock:
        self.contracts[address.lower()] = contract
        return contract

    def add_erc20(self, address: str, decimals: int = 6, symbol: str = "USDC", balances: Dict = None) -> MagicMock:
        token = MagicMock()
        token.functions.decimals = returning(decimals)
        token.functions.symbol = returning(symbol)
        token.functions.balanceOf = keyed(balances or {})
        return self.add(address, token)

    def add_aave_reserve(
        self,
        asset: str,
        atoken: str,
        liquidity_rate: int,
        available: int,
        stable_debt: int = 0,
        variable_debt: int = 0,
        decimals: int = 6,
        symbol: str = "USDC",
        provider: str = AAVE_PROVIDER_ETH
    ) -> None:
        reserves = self._reserves.setdefault(provider.lower(), {"data": {}, "tokens": {}})
        reserves["data"][asset] = (0, 0, available + stable_debt + variable_debt, stable_debt,
                                   variable_debt, liquidity_rate, 0, 0, 0, 0, 0, 0)
        reserves["tokens"][asset] = (atoken, "0x" + "0" * 40, "0x" + "0" * 40)

        pool_data_provider = MagicMock()
        pool_data_provider.functions.getReserveData = keyed(reserves["data"])
        pool_data_provider.functions.getReserveTokensAddresses = keyed(reserves["tokens"])
        self.add(provider, pool_data_provider)

        self.add_erc20(asset, decimals=decimals, symbol=symbol, balances={atoken: available})

    def add_comet(self, address: str, total_supply: int, total_borrow: int, supply_rate: int, decimals: int = 6) -> MagicMock:
        comet = MagicMock()
        comet.functions.totalSupply = returning(total_supply)
        comet.functions.totalBorrow = returning(total_borrow)
        comet.functions.decimals = returning(decimals)
        comet.functions.getSupplyRate = returning(supply_rate)
        return self.add(address, comet)

    def add_vault(self, address: str, total_assets: int, symbol: str, asset: str = USDC, decimals: int = 6) -> MagicMock:
        vault = MagicMock()
        vault.functions.totalAssets = returning(total_assets)
        vault.functions.decimals = returning(decimals)
        vault.functions.symbol = returning(symbol)
        vault.functions.asset = returning(asset)
        return self.add(address, vault)


# =============================================================================
# CONNECTION / SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def chains() -> Dict[str, FakeChain]:
    """Reachable fake networks. Any other network fails to connect."""
    return {
        network_id: FakeChain()
        for network_id in ["ethereum", "base", "polygon", "arbitrum", "optimism"]
    }


@pytest.fixture
def web3_factory(chains):
    def _factory(network):
        if network.id not in chains:
            raise ConnectionError(f"{network.id} unreachable")
        return chains[network.id].w3

    return MagicMock(side_effect=_factory)


@pytest.fixture
def connection_manager(web3_factory) -> ConnectionManager:
    manager = ConnectionManager(
        networks=build_networks(env={}),
        web3_factory=web3_factory,
        track_blocks=False,
        active_network="ethereum",
    )
    yield manager
    manager.shutdown()


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock(return_value=True)


@pytest.fixture
def service(connection_manager, notifier) -> MonitoringService:
    return MonitoringService(connections=connection_manager, notifier=notifier)


# =============================================================================
# METRIC FIXTURES
# =============================================================================

@pytest.fixture
def history() -> HistoryStore:
    return HistoryStore()


@pytest.fixture
def metric_factory():
    """
    Factory fixture for PoolMetric readings.

    Usage:
        def test_something(metric_factory):
            metric = metric_factory(apy=5.0, block_number=110)
    """
    def _create_metric(**overrides) -> PoolMetric:
        base = {
            "protocol": "aave_v3",
            "network": "ethereum",
            "asset": "USDC",
            "apy": 4.0,
            "tvl": 1000.0,
            "timestamp": 1_700_000_000_000,
            "block_number": 100,
        }
        base.update(overrides)
        base.setdefault("pool_id", make_pool_id(base["protocol"], base["network"], USDC))
        return PoolMetric(**base)

    return _create_metric
