"""
Protocol adapter base - shared fetch loop for all lending protocols.

Subclasses describe one protocol's on-chain layout by implementing
fetch_pool(); the base class handles deployment lookup, default address lists,
address validation and per-address error isolation.
"""

import logging
import time
from typing import Dict, Iterable, List, Optional

from web3 import Web3

from ..config.protocols import PROTOCOL_ADDRESSES, PROTOCOL_INFO
from ..core.errors import ConfigurationMissing, ContractCallFailure, InvalidAddress
from ..core.models import PoolMetric, make_pool_id

logger = logging.getLogger(__name__)

SECONDS_PER_YEAR = 365.25 * 24 * 60 * 60
RAY = 10 ** 27
WAD = 10 ** 18


def scale_amount(raw: int, decimals: int) -> float:
    """Decimal-adjust a raw token amount."""
    return raw / (10 ** decimals)


def now_ms() -> int:
    return int(time.time() * 1000)


class ProtocolAdapter:
    """
    Fetches normalized PoolMetric readings for one protocol.

    address_kind tells callers what fetch_metrics() addresses mean:
    "asset" (underlying reserve token), "market" or "vault" (contract itself).
    """

    protocol_id = ""
    address_kind = "asset"
    config_key = ""
    default_addresses: Dict[str, List[str]] = {}

    def __init__(self, connections, deployments: Dict = None):
        self.connections = connections
        self.deployments = PROTOCOL_ADDRESSES if deployments is None else deployments

    @property
    def name(self) -> str:
        return PROTOCOL_INFO.get(self.protocol_id, {}).get("name", self.protocol_id)

    def supported_networks(self) -> List[str]:
        return list(self.deployments.get(self.protocol_id, {}).keys())

    def supports(self, network_id: str) -> bool:
        return network_id in self.deployments.get(self.protocol_id, {})

    def supported_assets(self, network_id: str) -> List[str]:
        return list(self.default_addresses.get(network_id, []))

    def deployment(self, network_id: str) -> Dict[str, str]:
        """
        Contract config for this protocol on a network.

        Raises:
            ConfigurationMissing: the network entry lacks the protocol's contract
        """
        config = self.deployments.get(self.protocol_id, {}).get(network_id, {})
        if not config.get(self.config_key):
            raise ConfigurationMissing(self.protocol_id, network_id, self.config_key)
        return config

    def fetch_metrics(
        self,
        addresses: Optional[Iterable[str]],
        network_id: str,
        strict: bool = False
    ) -> List[PoolMetric]:
        """
        Fetch metrics for a set of addresses on one network.

        Args:
            addresses: Pool addresses (see address_kind); empty uses defaults
            network_id: Network to query
            strict: Raise on the first failed read instead of skipping it

        Returns:
            List of PoolMetric, empty if the protocol is not deployed here
        """
        if not self.supports(network_id):
            logger.info(f"{self.name} not deployed on {network_id}, skipping")
            return []

        config = self.deployment(network_id)
        w3 = self.connections.get_web3(network_id)

        targets = list(addresses or []) or self.supported_assets(network_id)
        block_number = self.connections.current_block(network_id)
        metrics = []

        for address in targets:
            # Mixed-case input with a bad checksum is still a usable address
            if not isinstance(address, str) or not Web3.is_address(address.lower()):
                logger.warning(str(InvalidAddress(address, self.protocol_id, network_id)) + ", skipping")
                continue

            # Contract calls need the checksum form, the pool id keeps the caller's spelling
            checksum = Web3.to_checksum_address(address)
            pool_id = make_pool_id(self.protocol_id, network_id, address)
            try:
                metric = self.fetch_pool(w3, config, checksum, network_id, block_number, pool_id)
            except Exception as e:
                failure = ContractCallFailure(self.protocol_id, network_id, checksum, e)
                if strict:
                    raise failure from e
                logger.warning(f"{failure}, skipping")
                continue

            metrics.append(metric)

        logger.info(f"{self.name} on {network_id}: {len(metrics)}/{len(targets)} pools fetched")
        return metrics

    def fetch_pool(
        self,
        w3: Web3,
        config: Dict[str, str],
        address: str,
        network_id: str,
        block_number: int,
        pool_id: str
    ) -> PoolMetric:
        """Read one pool. Any exception is treated as a failed contract call."""
        raise NotImplementedError
