"""
Yield Monitor.

Tracks APY and TVL of DeFi lending pools (Aave V3, Compound V3, Morpho vaults)
across EVM networks and alerts on threshold breaches between readings.

Quick Start:
    from yield_monitor import MonitoringService

    service = MonitoringService()
    result = service.monitor("ethereum", ["aave_v3"], threshold_rules={"apy_spike_percent": 10})
    print(f"Fetched {len(result['metrics'])} pools at block {result['current_block']}")
"""

__version__ = "1.0.0"

# Core components
from .core import (
    # Service
    MonitoringService,
    # Engines
    ConnectionManager,
    HistoryStore,
    DeltaEngine,
    AlertEngine,
    MetricsAggregator,
    # Models
    PoolMetric,
    Delta,
    Alert,
    AlertType,
    Severity,
    ThresholdRules,
    # Errors
    MonitorError,
    InvalidRequest,
    UnsupportedNetwork,
    UnsupportedProtocol,
    NetworkConnectionError,
    InvalidAddress,
    ContractCallFailure,
    ConfigurationMissing,
)

# Notifications
from .notifications import (
    send_slack_alert,
    send_slack_batch,
)

__all__ = [
    # Version
    "__version__",
    # Service
    "MonitoringService",
    # Engines
    "ConnectionManager",
    "HistoryStore",
    "DeltaEngine",
    "AlertEngine",
    "MetricsAggregator",
    # Models
    "PoolMetric",
    "Delta",
    "Alert",
    "AlertType",
    "Severity",
    "ThresholdRules",
    # Errors
    "MonitorError",
    "InvalidRequest",
    "UnsupportedNetwork",
    "UnsupportedProtocol",
    "NetworkConnectionError",
    "InvalidAddress",
    "ContractCallFailure",
    "ConfigurationMissing",
    # Notifications
    "send_slack_alert",
    "send_slack_batch",
]
