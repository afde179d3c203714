"""Core monitoring components."""

from .errors import (
    MonitorError,
    InvalidRequest,
    UnsupportedNetwork,
    UnsupportedProtocol,
    NetworkConnectionError,
    InvalidAddress,
    ContractCallFailure,
    ConfigurationMissing,
)

from .models import (
    Alert,
    AlertType,
    Delta,
    PoolMetric,
    Severity,
    ThresholdRules,
    make_pool_id,
    parse_pool_id,
)

from .connections import ConnectionManager, build_web3
from .history import HistoryStore
from .deltas import DeltaEngine, percent_change
from .alerts import AlertEngine
from .aggregator import AdapterRegistry, MetricsAggregator
from .service import MonitoringService, high_apy_opportunities

__all__ = [
    # Errors
    "MonitorError",
    "InvalidRequest",
    "UnsupportedNetwork",
    "UnsupportedProtocol",
    "NetworkConnectionError",
    "InvalidAddress",
    "ContractCallFailure",
    "ConfigurationMissing",
    # Models
    "Alert",
    "AlertType",
    "Delta",
    "PoolMetric",
    "Severity",
    "ThresholdRules",
    "make_pool_id",
    "parse_pool_id",
    # Engines
    "ConnectionManager",
    "build_web3",
    "HistoryStore",
    "DeltaEngine",
    "percent_change",
    "AlertEngine",
    "AdapterRegistry",
    "MetricsAggregator",
    # Service
    "MonitoringService",
    "high_apy_opportunities",
]
