"""
Alert Engine - evaluate deltas against caller thresholds.

Four independent checks per delta (APY spike/drop, TVL drain/surge). A check
runs only when its threshold is set, and one delta can raise several alerts.
Comparisons are strict: a change exactly equal to the threshold does not fire.
"""

import logging
from typing import Dict, Iterable, List

from .history import HistoryStore
from .models import Alert, AlertType, Delta, PoolMetric, Severity, ThresholdRules

logger = logging.getLogger(__name__)


# Operator mapping for threshold comparisons
OPERATORS = {
    '<': lambda v, t: v < t,
    '>': lambda v, t: v > t,
}

# Rule definitions. Thresholds are positive magnitudes; "sign" turns them into
# the signed bound the change is compared against.
ALERT_RULES = [
    {
        "alert_type": AlertType.APY_SPIKE,
        "threshold_field": "apy_spike_percent",
        "metric": "apy",
        "operator": ">",
        "sign": 1,
        "verb": "spiked",
        "severity": (Severity.CRITICAL, Severity.HIGH),
    },
    {
        "alert_type": AlertType.APY_DROP,
        "threshold_field": "apy_drop_percent",
        "metric": "apy",
        "operator": "<",
        "sign": -1,
        "verb": "dropped",
        "severity": (Severity.CRITICAL, Severity.HIGH),
    },
    {
        "alert_type": AlertType.TVL_DRAIN,
        "threshold_field": "tvl_drain_percent",
        "metric": "tvl",
        "operator": "<",
        "sign": -1,
        "verb": "drained",
        "severity": (Severity.CRITICAL, Severity.HIGH),
    },
    {
        # Surges top out at high
        "alert_type": AlertType.TVL_SURGE,
        "threshold_field": "tvl_surge_percent",
        "metric": "tvl",
        "operator": ">",
        "sign": 1,
        "verb": "surged",
        "severity": (Severity.HIGH, Severity.MEDIUM),
    },
]


def check_threshold(value: float, operator: str, threshold: float) -> bool:
    """True if value breaches threshold under operator."""
    if operator not in OPERATORS:
        return False
    return OPERATORS[operator](value, threshold)


def classify_severity(change_percent: float, rule: Dict, threshold: float) -> Severity:
    """Escalate when the move is more than twice the threshold."""
    escalated, base = rule["severity"]
    bound = rule["sign"] * threshold * 2
    return escalated if check_threshold(change_percent, rule["operator"], bound) else base


def format_message(rule: Dict, delta: Delta, previous: PoolMetric, current: PoolMetric) -> str:
    change = abs(delta.apy_change_percent if rule["metric"] == "apy" else delta.tvl_change_percent)
    label = "APY" if rule["metric"] == "apy" else "TVL"

    if rule["metric"] == "apy":
        values = f"{previous.apy:.4f}% → {current.apy:.4f}%"
    else:
        values = f"{previous.tvl:,.2f} → {current.tvl:,.2f}"

    return f"{label} {rule['verb']} by {change:.4f}% in {delta.blocks_elapsed} blocks ({values})"


class AlertEngine:

    def __init__(self, history: HistoryStore):
        self.history = history

    def check_thresholds(
        self,
        deltas: Iterable[Delta],
        current_metrics: Iterable[PoolMetric],
        rules: ThresholdRules
    ) -> List[Alert]:
        """
        Check a batch of deltas against thresholds.

        Args:
            deltas: Output of DeltaEngine.compute_deltas
            current_metrics: The fresh readings the deltas were computed from
            rules: Thresholds; unset fields disable their check

        Returns:
            List of triggered alerts
        """
        current_by_pool = {metric.pool_id: metric for metric in current_metrics}
        alerts = []

        for delta in deltas:
            current = current_by_pool.get(delta.pool_id)
            if current is None:
                continue

            previous = self.history.latest(delta.pool_id)
            if previous is None:
                continue

            for rule in ALERT_RULES:
                threshold = getattr(rules, rule["threshold_field"])
                if threshold is None:
                    continue

                change_percent = delta.apy_change_percent if rule["metric"] == "apy" else delta.tvl_change_percent
                bound = rule["sign"] * threshold
                if not check_threshold(change_percent, rule["operator"], bound):
                    continue

                alert = Alert(
                    pool_id=delta.pool_id,
                    alert_type=rule["alert_type"],
                    severity=classify_severity(change_percent, rule, threshold),
                    message=format_message(rule, delta, previous, current),
                    current_value=getattr(current, rule["metric"]),
                    previous_value=getattr(previous, rule["metric"]),
                    change_percent=change_percent,
                    threshold_breached=threshold,
                    timestamp=current.timestamp,
                    block_number=current.block_number,
                )
                logger.info(f"[{alert.severity.value}] {alert.pool_id}: {alert.message}")
                alerts.append(alert)

        return alerts
