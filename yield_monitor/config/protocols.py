"""
Protocol deployments and minimal ABIs.

PROTOCOL_ADDRESSES lists where each protocol is deployed. A network missing
from a protocol's entry means "not deployed there".
"""

from typing import Dict, List

# Aave V3 AaveProtocolDataProvider (minimal)
AAVE_POOL_DATA_PROVIDER_ABI = [
    {"inputs": [{"name": "asset", "type": "address"}], "name": "getReserveData", "outputs": [{"name": "unbacked", "type": "uint256"}, {"name": "accruedToTreasuryScaled", "type": "uint256"}, {"name": "totalAToken", "type": "uint256"}, {"name": "totalStableDebt", "type": "uint256"}, {"name": "totalVariableDebt", "type": "uint256"}, {"name": "liquidityRate", "type": "uint256"}, {"name": "variableBorrowRate", "type": "uint256"}, {"name": "stableBorrowRate", "type": "uint256"}, {"name": "averageStableBorrowRate", "type": "uint256"}, {"name": "liquidityIndex", "type": "uint256"}, {"name": "variableBorrowIndex", "type": "uint256"}, {"name": "lastUpdateTimestamp", "type": "uint40"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "asset", "type": "address"}], "name": "getReserveTokensAddresses", "outputs": [{"name": "aTokenAddress", "type": "address"}, {"name": "stableDebtTokenAddress", "type": "address"}, {"name": "variableDebtTokenAddress", "type": "address"}], "stateMutability": "view", "type": "function"}
]

# Compound V3 Comet (minimal)
COMET_ABI = [
    {"inputs": [{"type": "uint256", "name": "utilization"}], "name": "getSupplyRate", "outputs": [{"type": "uint64"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "totalSupply", "outputs": [{"type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "totalBorrow", "outputs": [{"type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "decimals", "outputs": [{"type": "uint8"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "baseToken", "outputs": [{"type": "address"}], "stateMutability": "view", "type": "function"}
]

# ERC-4626 vault (Morpho supply vaults)
MORPHO_VAULT_ABI = [
    {"inputs": [], "name": "totalAssets", "outputs": [{"type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "totalSupply", "outputs": [{"type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "asset", "outputs": [{"type": "address"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "name", "outputs": [{"type": "string"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "symbol", "outputs": [{"type": "string"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "decimals", "outputs": [{"type": "uint8"}], "stateMutability": "view", "type": "function"}
]

ERC20_ABI = [
    {"inputs": [{"name": "account", "type": "address"}], "name": "balanceOf", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "decimals", "outputs": [{"name": "", "type": "uint8"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "symbol", "outputs": [{"name": "", "type": "string"}], "stateMutability": "view", "type": "function"}
]

PROTOCOL_ADDRESSES: Dict[str, Dict[str, Dict[str, str]]] = {
    "aave_v3": {
        "ethereum": {"name": "Aave V3", "pool_data_provider": "0x0a16f2FCC0D44FaE41cc54e079281D84A363bECD"},
        "polygon": {"name": "Aave V3", "pool_data_provider": "0x243Aa95cAC2a25651eda86e80bEe66114413c43b"},
        "avalanche": {"name": "Aave V3", "pool_data_provider": "0x69FA688f1Dc47d4B5d8029D5a35FB7a548310654"},
        "arbitrum": {"name": "Aave V3", "pool_data_provider": "0x243Aa95cAC2a25651eda86e80bEe66114413c43b"},
        "optimism": {"name": "Aave V3", "pool_data_provider": "0x243Aa95cAC2a25651eda86e80bEe66114413c43b"},
        "base": {"name": "Aave V3", "pool_data_provider": "0x2d8A3C5677189723C4cB8873CfC9C8976FDF38Ac"},
    },
    "compound_v3": {
        "ethereum": {"name": "Compound V3", "comet": "0xc3d688B66703497DAA19211EEdff47f25384cdc3"},
        "base": {"name": "Compound V3", "comet": "0xb125E6687d4313864e53df431d5425969c15Eb2F"},
        "arbitrum": {"name": "Compound V3", "comet": "0x9c4ec768c28520B50860ea7a15bd7213a9fF58bf"},
        "polygon": {"name": "Compound V3", "comet": "0xF25212E676D1F7F89Cd72fFEe66158f541246445"},
        "optimism": {"name": "Compound V3", "comet": "0x2e44e174f7D53F0212823acC11C01A11d58c5bCB"},
    },
    "morpho": {
        "ethereum": {"name": "Morpho Blue", "morpho": "0xBBBBBbbBBb9cC5e90e3b3Af64bdAF62C37EEFFCb"},
        "base": {"name": "Morpho Blue", "morpho": "0xBBBBBbbBBb9cC5e90e3b3Af64bdAF62C37EEFFCb"},
    },
}

PROTOCOL_INFO = {
    "aave_v3": {
        "name": "Aave V3",
        "description": "Decentralized lending protocol with variable and stable rates",
    },
    "compound_v3": {
        "name": "Compound V3",
        "description": "Algorithmic money market protocol with isolated markets",
    },
    "morpho": {
        "name": "Morpho Blue",
        "description": "Lending protocol optimizer that improves rates on top of Aave and Compound",
    },
}

SUPPORTED_PROTOCOLS: List[str] = list(PROTOCOL_ADDRESSES.keys())


def is_protocol_supported(protocol_id: str, network_id: str, deployments: Dict = None) -> bool:
    deployments = PROTOCOL_ADDRESSES if deployments is None else deployments
    return network_id in deployments.get(protocol_id, {})


def deployed_networks(protocol_id: str, deployments: Dict = None) -> List[str]:
    deployments = PROTOCOL_ADDRESSES if deployments is None else deployments
    return list(deployments.get(protocol_id, {}).keys())
