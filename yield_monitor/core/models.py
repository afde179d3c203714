"""
Data model shared by fetchers, history, deltas and alerts.
"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class AlertType(Enum):
    APY_SPIKE = "apy_spike"
    APY_DROP = "apy_drop"
    TVL_DRAIN = "tvl_drain"
    TVL_SURGE = "tvl_surge"


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def make_pool_id(protocol: str, network: str, address: str) -> str:
    """Build the external pool identifier: <protocol>:<network>:<address>."""
    return f"{protocol.lower()}:{network.lower()}:{address}"


def parse_pool_id(pool_id: str) -> Tuple[str, str, str]:
    """Split a pool identifier into (protocol, network, address)."""
    parts = pool_id.split(":", 2)
    if len(parts) != 3:
        raise ValueError(f"Malformed pool id: {pool_id}")
    return parts[0], parts[1], parts[2]


@dataclass(frozen=True)
class PoolMetric:
    """
    A normalized pool reading at one block.

    apy is an annualized percentage, tvl is in the asset's decimal-adjusted
    units, timestamp is milliseconds since epoch.
    """
    pool_id: str
    protocol: str
    network: str
    asset: str
    apy: float
    tvl: float
    timestamp: int
    block_number: int
    apy_source: str = "onchain"
    additional_data: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Delta:
    """Change between the latest stored reading and a fresh one."""
    pool_id: str
    apy_change: float
    tvl_change: float
    apy_change_percent: float
    tvl_change_percent: float
    time_elapsed: int
    blocks_elapsed: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Alert:
    """A threshold breach for one pool."""
    pool_id: str
    alert_type: AlertType
    severity: Severity
    message: str
    current_value: float
    previous_value: float
    change_percent: float
    threshold_breached: float
    timestamp: int
    block_number: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["alert_type"] = self.alert_type.value
        data["severity"] = self.severity.value
        return data


@dataclass
class ThresholdRules:
    """Caller-supplied alert thresholds. None disables the category."""
    apy_spike_percent: Optional[float] = None
    apy_drop_percent: Optional[float] = None
    tvl_drain_percent: Optional[float] = None
    tvl_surge_percent: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ThresholdRules":
        """Build rules from a request dict, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{
            key: float(value)
            for key, value in data.items()
            if key in known and value is not None
        })

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
