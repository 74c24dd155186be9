# core/loading_metrics.py

import json
import logging
import time
from dataclasses import dataclass, asdict, replace
from typing import Callable, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


def default_clock() -> float:
    """Monotonic clock in milliseconds"""
    return time.perf_counter() * 1000.0


@dataclass
class LoadingMetric:
    """Timing record for a single named loading operation"""
    id: str
    type: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    status: str = 'loading'  # loading | success | error

    @property
    def completed(self) -> bool:
        return self.status != 'loading'


class LoadingMetricsRegistry:
    """
    Record start/end timestamps per named operation and aggregate them.

    The registry never raises from its public methods: reused ids overwrite
    the previous entry and unknown ids passed to end_timing are ignored.
    """

    def __init__(self, clock: Callable[[], float] = default_clock):
        self.clock = clock
        self._metrics: Dict[str, LoadingMetric] = {}
        self._marks: Dict[str, float] = {}

    # Timeline

    def mark(self, name: str) -> float:
        """Record a named point on the timeline"""
        now = self.clock()
        self._marks[name] = now
        return now

    def measure(self, name: str, start_mark: str, end_mark: str = None) -> float:
        """
        Elapsed time between two marks.

        When end_mark is omitted the current clock reading is used. A completed
        metric named `name` takes its start, end and duration from the measure.
        """
        start = self._marks.get(start_mark)
        if start is None:
            logger.debug("measure %s: unknown start mark %s", name, start_mark)
            return 0.0
        if end_mark is None:
            end = self.clock()
        else:
            end = self._marks.get(end_mark)
            if end is None:
                logger.debug("measure %s: unknown end mark %s", name, end_mark)
                return 0.0

        duration = end - start
        metric = self._metrics.get(name)
        if metric is not None and metric.completed:
            metric.start_time = start
            metric.end_time = end
            metric.duration = duration
        return duration

    # Metrics

    def start_timing(self, metric_id: str, loading_type: str = 'component'):
        """Open a metric; a reused id replaces the previous entry"""
        if metric_id in self._metrics and not self._metrics[metric_id].completed:
            logger.debug("Metric %s restarted before it finished", metric_id)
        start = self.mark(f"{metric_id}-start")
        self._metrics[metric_id] = LoadingMetric(
            id=metric_id,
            type=loading_type,
            start_time=start,
        )

    def end_timing(self, metric_id: str, success: bool = True):
        """Close a metric and compute its duration"""
        metric = self._metrics.get(metric_id)
        if metric is None:
            logger.debug("end_timing ignored for unknown metric %s", metric_id)
            return

        end = self.mark(f"{metric_id}-end")
        metric.end_time = end
        metric.duration = end - metric.start_time
        metric.status = 'success' if success else 'error'
        self.measure(metric_id, f"{metric_id}-start", f"{metric_id}-end")

    def get_metrics(self) -> List[LoadingMetric]:
        """Snapshot of all metrics in insertion order"""
        return [replace(m) for m in self._metrics.values()]

    def _durations(self, loading_type: str = None) -> List[float]:
        return [
            m.duration for m in self._metrics.values()
            if m.completed and m.duration is not None
            and (loading_type is None or m.type == loading_type)
        ]

    def get_average_load_time(self, loading_type: str = None) -> float:
        """Mean duration of completed metrics, 0 when there are none"""
        durations = self._durations(loading_type)
        if not durations:
            return 0
        return float(np.mean(durations))

    def get_statistics(self, loading_type: str = None) -> dict:
        """Summary statistics over completed durations"""
        durations = self._durations(loading_type)
        if not durations:
            return {}

        return {
            'count': len(durations),
            'mean': float(np.mean(durations)),
            'median': float(np.median(durations)),
            'min': float(np.min(durations)),
            'max': float(np.max(durations)),
            'std': float(np.std(durations)),
            'total': float(np.sum(durations))
        }

    def clear_metrics(self):
        self._metrics.clear()
        self._marks.clear()

    def save_metrics(self, output_path: str):
        """Save metrics snapshot to JSON file"""
        with open(output_path, 'w') as f:
            json.dump([asdict(m) for m in self.get_metrics()], f, indent=2)
