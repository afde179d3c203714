"""
Monitoring Service - the operations exposed to the calling layer.

    monitor            strict single-network fetch + deltas + alerts
    get_history        recent stored readings for one pool
    echo_status        liveness / introspection, no mutation
    universal_monitor  best-effort multi-network sweep

Every fetch follows the same pipeline: fetch, compute deltas against stored
history, check thresholds, then store. Storing last keeps deltas from
comparing a reading with itself.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Union

from ..config import settings
from ..notifications.slack import send_slack_batch
from .aggregator import MetricsAggregator
from .alerts import AlertEngine
from .connections import ConnectionManager
from .deltas import DeltaEngine
from .errors import InvalidRequest, UnsupportedNetwork
from .history import HistoryStore
from .models import Alert, PoolMetric, ThresholdRules, parse_pool_id

logger = logging.getLogger(__name__)

Rules = Union[ThresholdRules, Dict[str, Any], None]
Notifier = Callable[[List[Alert]], bool]


def _rules(threshold_rules: Rules, default: Optional[Dict[str, Any]]) -> ThresholdRules:
    if isinstance(threshold_rules, ThresholdRules):
        return threshold_rules
    if threshold_rules is None:
        return ThresholdRules.from_dict(default)
    return ThresholdRules.from_dict(threshold_rules)


class MonitoringService:
    """
    Wires connections, adapters, history, deltas and alerts together.

    One instance owns its history for the process lifetime; create one per
    process (or per test).
    """

    def __init__(
        self,
        connections: ConnectionManager = None,
        history: HistoryStore = None,
        aggregator: MetricsAggregator = None,
        notifier: Optional[Notifier] = None,
        max_history: int = None,
        clock: Callable[[], float] = time.time
    ):
        self.connections = connections or ConnectionManager()
        self.history = history or HistoryStore()
        self.aggregator = aggregator or MetricsAggregator(self.connections)
        self.delta_engine = DeltaEngine(self.history)
        self.alert_engine = AlertEngine(self.history)
        self.max_history = settings.MAX_HISTORY if max_history is None else max_history
        self._clock = clock
        self._started_at = clock()
        self._process_lock = threading.Lock()

        if notifier is None and settings.ALERT_CONFIG.get("slack_webhook"):
            notifier = send_slack_batch
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def monitor(
        self,
        network: str,
        protocol_ids: List[str],
        pools: Optional[List[str]] = None,
        threshold_rules: Rules = None
    ) -> Dict[str, Any]:
        """
        Strict single-network monitoring request.

        Args:
            network: Network id
            protocol_ids: Protocols to query, in order
            pools: Pool addresses; empty means each protocol's defaults
            threshold_rules: Alert thresholds, None applies the default rules

        Returns:
            Dict with network, metrics, deltas, alerts, current_block and
            supported_networks

        Raises:
            UnsupportedNetwork / UnsupportedProtocol / InvalidRequest before
            any RPC; NetworkConnectionError or ContractCallFailure from the
            first failing read
        """
        self.connections.descriptor(network)

        if not protocol_ids:
            raise InvalidRequest("At least one protocol is required", network=network)
        for protocol_id in protocol_ids:
            self.aggregator.registry.protocol_info(protocol_id)

        rules = _rules(threshold_rules, settings.DEFAULT_THRESHOLD_RULES)

        self.connections.ensure_connection(network, activate=True)
        metrics = self.aggregator.fetch_all(protocol_ids, pools, network)
        deltas, alerts = self._process(metrics, rules)

        logger.info(f"Monitor {network}: {len(metrics)} pools, {len(deltas)} deltas, {len(alerts)} alerts")

        return {
            "network": network,
            "metrics": [metric.to_dict() for metric in metrics],
            "deltas": [delta.to_dict() for delta in deltas],
            "alerts": [alert.to_dict() for alert in alerts],
            "current_block": self.connections.current_block(network),
            "supported_networks": self.connections.supported_networks(),
        }

    def get_history(self, pool_id: str, limit: int = None) -> Dict[str, Any]:
        """
        Most recent stored readings for a pool, oldest first.

        Unknown pools give an empty history. limit is clamped to at least 1.
        """
        limit = settings.DEFAULT_HISTORY_LIMIT if limit is None else max(1, int(limit))
        entries = self.history.get_history(pool_id)[-limit:]

        try:
            _protocol, network, _address = parse_pool_id(pool_id)
        except ValueError:
            network = None

        return {
            "pool_id": pool_id,
            "entries": [entry.to_dict() for entry in entries],
            "count": len(entries),
            "current_block": self.connections.current_block(network),
        }

    def echo_status(self) -> Dict[str, Any]:
        return {
            "rpc_connected": self.connections.is_connected(),
            "current_block": self.connections.current_block(),
            "pools_monitored": self.history.pool_count(),
            "uptime": self._clock() - self._started_at,
            "active_network": self.connections.active_network,
            "connected_networks": self.connections.list_connected(),
        }

    def universal_monitor(
        self,
        protocols: Optional[List[str]] = None,
        networks: Optional[List[str]] = None,
        assets: Optional[List[str]] = None,
        include_historical: bool = False,
        threshold_rules: Rules = None
    ) -> Dict[str, Any]:
        """
        Best-effort sweep over several protocols and networks.

        Invalid networks are skipped with a warning. Failing protocol x network
        cells come back empty and are listed under "errors".

        Raises:
            UnsupportedNetwork: none of the requested networks is valid
        """
        protocols = list(protocols or settings.SWEEP_DEFAULT_PROTOCOLS)
        requested = list(networks or settings.SWEEP_DEFAULT_NETWORKS)
        supported = self.connections.supported_networks()

        valid_networks = []
        for network_id in requested:
            if network_id in supported:
                valid_networks.append(network_id)
            else:
                logger.warning(f"Invalid network: {network_id}, skipping")

        if not valid_networks:
            raise UnsupportedNetwork(", ".join(requested), supported)

        logger.info(f"Universal monitor: {len(protocols)} protocols across {len(valid_networks)} networks")

        metrics, breakdown, errors = self.aggregator.fetch_all_networks(protocols, valid_networks, assets)
        rules = _rules(threshold_rules, None)
        _deltas, alerts = self._process(metrics, rules)

        response = {
            "summary": self._summary(protocols, valid_networks, metrics),
            "protocols": {
                protocol_id: {
                    network_id: [metric.to_dict() for metric in cell]
                    for network_id, cell in cells.items()
                }
                for protocol_id, cells in breakdown.items()
            },
            "alerts": [alert.to_dict() for alert in alerts],
            "opportunities": high_apy_opportunities(metrics),
            "errors": errors,
        }

        if include_historical:
            response["historical"] = {}
            for metric in metrics:
                entries = self.history.get_history(metric.pool_id)[-settings.HISTORICAL_SNAPSHOT_SIZE:]
                if entries:
                    response["historical"][metric.pool_id] = [entry.to_dict() for entry in entries]

        logger.info(f"Universal monitor complete: {len(metrics)} pools, {len(alerts)} alerts, {len(errors)} errors")
        return response

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _process(self, metrics: List[PoolMetric], rules: ThresholdRules):
        # Deltas and alerts must see the same latest reading
        with self._process_lock:
            deltas = self.delta_engine.compute_deltas(metrics)
            alerts = self.alert_engine.check_thresholds(deltas, metrics, rules)
            self.history.store(metrics, self.max_history)
        self._notify(alerts)
        return deltas, alerts

    def _notify(self, alerts: List[Alert]) -> None:
        if not alerts or self.notifier is None:
            return
        try:
            if not self.notifier(alerts):
                logger.warning(f"Alert notification not delivered ({len(alerts)} alerts)")
        except Exception as e:
            logger.error(f"Alert notification failed: {e}")

    def _summary(self, protocols: List[str], networks: List[str], metrics: List[PoolMetric]) -> Dict[str, Any]:
        best = max(metrics, key=lambda metric: metric.apy, default=None)
        return {
            "total_protocols": len(protocols),
            "total_pools": len(metrics),
            "total_tvl": sum(metric.tvl for metric in metrics),
            "best_apy": {
                "protocol": best.protocol if best else "",
                "pool_id": best.pool_id if best else "",
                "apy": best.apy if best else 0.0,
                "asset": best.asset if best else "",
            },
            "evaluated_at": int(self._clock() * 1000),
            "current_blocks": {
                network_id: self.connections.current_block(network_id) for network_id in networks
            },
        }


def high_apy_opportunities(metrics: List[PoolMetric], min_apy: float = None) -> List[Dict[str, Any]]:
    """Pools whose APY exceeds the opportunity floor."""
    min_apy = settings.HIGH_APY_OPPORTUNITY_PERCENT if min_apy is None else min_apy
    return [
        {
            "type": "high_apy_opportunity",
            "protocol": metric.protocol,
            "pool_id": metric.pool_id,
            "asset": metric.asset,
            "apy": metric.apy,
            "message": f"High APY opportunity: {metric.apy:.2f}% on {metric.asset}",
            "severity": "medium",
        }
        for metric in metrics
        if metric.apy > min_apy
    ]
