"""
Metrics Aggregator - runs protocol adapters for single and multi-network
requests.

Single-network requests are strict: the first adapter error aborts the whole
request. Multi-network sweeps are best-effort: every protocol x network cell
is isolated, failures become error strings and an empty cell.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Tuple

from ..config.protocols import PROTOCOL_INFO
from ..fetchers import ADAPTER_CLASSES
from ..fetchers.base import ProtocolAdapter
from .connections import ConnectionManager
from .errors import UnsupportedProtocol
from .models import PoolMetric

logger = logging.getLogger(__name__)

Breakdown = Dict[str, Dict[str, List[PoolMetric]]]


class AdapterRegistry:
    """Protocol id -> adapter instance, created on first use."""

    def __init__(self, connections: ConnectionManager, adapter_classes: Dict = None, deployments: Dict = None):
        self.connections = connections
        self.adapter_classes = ADAPTER_CLASSES if adapter_classes is None else adapter_classes
        self.deployments = deployments
        self._lock = threading.Lock()
        self._adapters: Dict[str, ProtocolAdapter] = {}

    def supported_protocols(self) -> List[str]:
        return list(self.adapter_classes.keys())

    def is_supported(self, protocol_id: str) -> bool:
        return protocol_id in self.adapter_classes

    def get(self, protocol_id: str) -> ProtocolAdapter:
        """
        Adapter for a protocol.

        Raises:
            UnsupportedProtocol: unknown protocol id
        """
        if protocol_id not in self.adapter_classes:
            raise UnsupportedProtocol(protocol_id, self.supported_protocols())

        with self._lock:
            adapter = self._adapters.get(protocol_id)
            if adapter is None:
                adapter = self.adapter_classes[protocol_id](self.connections, self.deployments)
                self._adapters[protocol_id] = adapter
            return adapter

    def protocol_info(self, protocol_id: str) -> Dict[str, str]:
        if protocol_id not in self.adapter_classes:
            raise UnsupportedProtocol(protocol_id, self.supported_protocols())
        info = PROTOCOL_INFO.get(protocol_id, {})
        return {
            "id": protocol_id,
            "name": info.get("name", protocol_id),
            "description": info.get("description", ""),
        }


class MetricsAggregator:

    def __init__(self, connections: ConnectionManager, registry: AdapterRegistry = None):
        self.connections = connections
        self.registry = registry or AdapterRegistry(connections)

    def fetch_all(
        self,
        protocols: Iterable[str],
        pools: Optional[Iterable[str]],
        network_id: str
    ) -> List[PoolMetric]:
        """
        Strict single-network fetch, adapters run in caller order.

        Raises:
            MonitorError: the first adapter failure, unchanged
        """
        pools = list(pools or [])
        metrics = []

        for protocol_id in protocols:
            adapter = self.registry.get(protocol_id)
            metrics.extend(adapter.fetch_metrics(pools, network_id, strict=True))

        return metrics

    def fetch_all_networks(
        self,
        protocols: List[str],
        networks: List[str],
        assets: Optional[List[str]] = None
    ) -> Tuple[List[PoolMetric], Breakdown, List[str]]:
        """
        Best-effort sweep across networks, one worker thread per network.

        Args:
            protocols: Protocol ids, also the merge order
            networks: Network ids (already validated)
            assets: Underlying asset addresses, only for asset-keyed adapters

        Returns:
            (merged metrics, breakdown[protocol][network], error messages)
        """
        breakdown: Breakdown = {protocol_id: {} for protocol_id in protocols}
        errors: List[str] = []

        known = []
        for protocol_id in protocols:
            if self.registry.is_supported(protocol_id):
                known.append(protocol_id)
            else:
                message = str(UnsupportedProtocol(protocol_id, self.registry.supported_protocols()))
                logger.warning(message)
                errors.append(message)

        if networks:
            with ThreadPoolExecutor(max_workers=len(networks), thread_name_prefix="sweep") as executor:
                futures = [
                    (network_id, executor.submit(self._sweep_network, known, network_id, assets))
                    for network_id in networks
                ]
                results = [(network_id, future.result()) for network_id, future in futures]

            for network_id, (cells, cell_errors) in results:
                errors.extend(cell_errors)
                for protocol_id, metrics in cells.items():
                    breakdown[protocol_id][network_id] = metrics

        merged = []
        for protocol_id in protocols:
            for network_id in networks:
                merged.extend(breakdown[protocol_id].get(network_id, []))

        logger.info(
            f"Sweep finished: {len(merged)} pools across {len(networks)} networks, {len(errors)} errors"
        )
        return merged, breakdown, errors

    def _sweep_network(
        self,
        protocols: List[str],
        network_id: str,
        assets: Optional[List[str]]
    ) -> Tuple[Dict[str, List[PoolMetric]], List[str]]:
        cells: Dict[str, List[PoolMetric]] = {}
        errors: List[str] = []

        try:
            self.connections.ensure_connection(network_id)
        except Exception as e:
            message = f"{network_id}: {e}"
            logger.warning(f"Skipping network {message}")
            return {protocol_id: [] for protocol_id in protocols}, [message]

        for protocol_id in protocols:
            adapter = self.registry.get(protocol_id)
            addresses = assets if adapter.address_kind == "asset" else None
            try:
                cells[protocol_id] = adapter.fetch_metrics(addresses, network_id)
            except Exception as e:
                message = f"{protocol_id} on {network_id}: {e}"
                logger.warning(f"Sweep cell failed, {message}")
                errors.append(message)
                cells[protocol_id] = []

        return cells, errors
