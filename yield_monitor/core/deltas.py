"""
Delta Engine - compares fresh readings with the latest stored reading.
"""

from typing import Iterable, List

from .history import HistoryStore
from .models import Delta, PoolMetric


def percent_change(previous: float, current: float) -> float:
    """Percentage change; 0 when the previous value is exactly 0."""
    if previous == 0:
        return 0.0
    return (current - previous) * 100 / previous


class DeltaEngine:

    def __init__(self, history: HistoryStore):
        self.history = history

    def compute_deltas(self, current_metrics: Iterable[PoolMetric]) -> List[Delta]:
        """
        One delta per metric whose pool already has a stored reading.

        Must run before the fresh readings are stored, otherwise a metric is
        compared against itself.
        """
        deltas = []

        for metric in current_metrics:
            previous = self.history.latest(metric.pool_id)
            if previous is None:
                continue

            deltas.append(Delta(
                pool_id=metric.pool_id,
                apy_change=metric.apy - previous.apy,
                tvl_change=metric.tvl - previous.tvl,
                apy_change_percent=percent_change(previous.apy, metric.apy),
                tvl_change_percent=percent_change(previous.tvl, metric.tvl),
                time_elapsed=metric.timestamp - previous.timestamp,
                blocks_elapsed=metric.block_number - previous.block_number,
            ))

        return deltas
