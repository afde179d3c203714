"""
Connection Manager - one live Web3 connection per network.

Connections are created lazily on first use and kept for the process
lifetime. Each connected network gets a daemon thread that polls the latest
block height so cached heights are at most one polling interval stale.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from ..config import settings
from ..config.networks import NETWORKS, NetworkDescriptor, default_network
from .errors import NetworkConnectionError, UnsupportedNetwork

logger = logging.getLogger(__name__)


def build_web3(network: NetworkDescriptor, timeout: float = None) -> Web3:
    """Create a Web3 client for a network with a bounded request timeout."""
    timeout = settings.RPC_TIMEOUT_SECONDS if timeout is None else timeout
    w3 = Web3(Web3.HTTPProvider(network.rpc_url, request_kwargs={"timeout": timeout}))
    if network.poa:
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


class ConnectionManager:
    """
    Owns RPC connections and the per-network block height cache.

    A single lock guards both maps and is never held across an RPC call.
    """

    def __init__(
        self,
        networks: Dict[str, NetworkDescriptor] = None,
        web3_factory: Callable[[NetworkDescriptor], Web3] = None,
        poll_interval: float = None,
        track_blocks: bool = True,
        active_network: str = None
    ):
        self._networks = NETWORKS if networks is None else networks
        self._web3_factory = web3_factory or build_web3
        self._poll_interval = settings.BLOCK_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self._track_blocks = track_blocks

        self._lock = threading.Lock()
        self._connect_locks: Dict[str, threading.Lock] = {}
        self._connections: Dict[str, Web3] = {}
        self._blocks: Dict[str, int] = {}
        self._trackers: Dict[str, threading.Thread] = {}
        self._stop = threading.Event()

        self.active_network = active_network or default_network()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ensure_connection(self, network_id: str, activate: bool = False) -> Web3:
        """
        Connect to a network if not already connected.

        The initial block height query doubles as a liveness check. With
        activate, the network becomes the default for status queries.

        Raises:
            UnsupportedNetwork: unknown network id
            NetworkConnectionError: endpoint unreachable or height query failed
        """
        network = self.descriptor(network_id)

        with self._lock:
            existing = self._connections.get(network_id)
            if existing is not None:
                if activate:
                    self.active_network = network_id
                return existing
            connect_lock = self._connect_locks.setdefault(network_id, threading.Lock())

        with connect_lock:
            # Another caller may have connected while we waited
            with self._lock:
                existing = self._connections.get(network_id)
                if existing is not None:
                    if activate:
                        self.active_network = network_id
                    return existing

            if not network.is_evm:
                raise NetworkConnectionError(
                    f"{network.name} is not an EVM network and cannot be reached over JSON-RPC",
                    network=network_id
                )

            logger.info(f"Connecting to {network.name}: {network.rpc_url[:50]}...")
            try:
                w3 = self._web3_factory(network)
                block_number = int(w3.eth.block_number)
            except Exception as e:
                raise NetworkConnectionError(
                    f"Could not connect to {network.name}: {e}",
                    network=network_id
                ) from e

            with self._lock:
                self._connections[network_id] = w3
                self._blocks[network_id] = block_number
                if activate:
                    self.active_network = network_id

            logger.info(f"{network.name} current block: {block_number}")

            if self._track_blocks:
                self._start_tracker(network_id, w3)

            return w3

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop all block trackers."""
        self._stop.set()
        for thread in list(self._trackers.values()):
            thread.join(timeout)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_web3(self, network_id: str) -> Web3:
        with self._lock:
            w3 = self._connections.get(network_id)
        if w3 is None:
            raise NetworkConnectionError(f"Provider not initialized for network: {network_id}", network=network_id)
        return w3

    def current_block(self, network_id: Optional[str] = None) -> int:
        """Last known block height, 0 if the network was never connected."""
        with self._lock:
            return self._blocks.get(network_id or self.active_network, 0)

    def is_connected(self, network_id: Optional[str] = None) -> bool:
        with self._lock:
            return (network_id or self.active_network) in self._connections

    def list_connected(self) -> List[str]:
        with self._lock:
            return list(self._connections.keys())

    def descriptor(self, network_id: str) -> NetworkDescriptor:
        """
        Registry entry for a network.

        Raises:
            UnsupportedNetwork: unknown network id, message lists all ids
        """
        network = self._networks.get(network_id)
        if network is None:
            raise UnsupportedNetwork(network_id, list(self._networks.keys()))
        return network

    def supported_networks(self) -> List[str]:
        return list(self._networks.keys())

    # ------------------------------------------------------------------
    # Block tracking
    # ------------------------------------------------------------------

    def record_block(self, network_id: str, block_number: int) -> bool:
        """Store a newer block height. Older or equal heights are ignored."""
        with self._lock:
            if block_number <= self._blocks.get(network_id, 0):
                return False
            self._blocks[network_id] = block_number
        logger.debug(f"{network_id} new block: {block_number}")
        return True

    def _start_tracker(self, network_id: str, w3: Web3) -> None:
        thread = threading.Thread(
            target=self._track,
            args=(network_id, w3),
            name=f"block-tracker-{network_id}",
            daemon=True
        )
        self._trackers[network_id] = thread
        thread.start()

    def _track(self, network_id: str, w3: Web3) -> None:
        while not self._stop.wait(self._poll_interval):
            try:
                block_number = int(w3.eth.block_number)
            except Exception as e:
                logger.warning(f"Block poll failed for {network_id}, retrying in {self._poll_interval}s: {e}")
                continue
            self.record_block(network_id, block_number)
