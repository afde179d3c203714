"""
History Store - bounded, block-deduplicated metric history per pool.

History lives in memory for the process lifetime. Within a pool, block
numbers are strictly increasing: a reading whose block is not newer than the
last stored one is a re-observation and is dropped.
"""

import threading
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional

from ..config import settings
from .models import PoolMetric


class HistoryStore:
    """In-memory ring buffer of PoolMetric per pool id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._history: Dict[str, Deque[PoolMetric]] = {}

    def store(self, metrics: Iterable[PoolMetric], max_history: int = None) -> int:
        """
        Append metrics to their pools' history.

        Args:
            metrics: Fresh readings
            max_history: Per-pool capacity, oldest entries evicted first

        Returns:
            Number of metrics actually appended
        """
        max_history = settings.MAX_HISTORY if max_history is None else max(1, max_history)
        appended = 0

        with self._lock:
            for metric in metrics:
                history = self._history.setdefault(metric.pool_id, deque())

                if history and history[-1].block_number >= metric.block_number:
                    continue

                history.append(metric)
                appended += 1

                while len(history) > max_history:
                    history.popleft()

        return appended

    def get_history(self, pool_id: str) -> List[PoolMetric]:
        """Block-ascending copy of a pool's history (empty if unknown)."""
        with self._lock:
            return list(self._history.get(pool_id, ()))

    def latest(self, pool_id: str) -> Optional[PoolMetric]:
        with self._lock:
            history = self._history.get(pool_id)
            return history[-1] if history else None

    def pool_count(self) -> int:
        with self._lock:
            return len(self._history)

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
