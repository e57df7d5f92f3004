"""
Periodic summary logger for the segmentation pipeline.

Provides low-overhead periodic logging of tracking health:
- Tick throughput (Hz)
- Clusters detected per interval
- Object lifecycle counts (created/grown/merged/archived)
- Active object count

Enabled by default, configurable via config/meshseg.yaml (logging section).
"""

from __future__ import annotations
import time
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicLogger:
    """Logs a tracking summary at configurable intervals."""

    def __init__(self, interval_s: float = 5.0, enabled: bool = True,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            interval_s: Seconds between summary logs (default 5.0)
            enabled: Whether periodic logging is enabled (default True)
            clock: Monotonic clock in seconds (defaults to time.monotonic)
        """
        self.interval_s = interval_s
        self.enabled = enabled
        self._clock = clock or time.monotonic
        self._last_log_time = self._clock()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._tick_count = 0
        self._total_clusters = 0
        self._total_created = 0
        self._total_grown = 0
        self._total_merged = 0
        self._total_archived = 0

    def tick(self, clusters: int = 0, created: int = 0, grown: int = 0,
             merged: int = 0, archived: int = 0) -> None:
        """Called after each tick to accumulate stats."""
        self._tick_count += 1
        self._total_clusters += clusters
        self._total_created += created
        self._total_grown += grown
        self._total_merged += merged
        self._total_archived += archived

    def maybe_log(self, seg_stats: dict) -> bool:
        """
        Log summary if interval elapsed.

        Args:
            seg_stats: Dict from MeshSegmenter.stats() with 'active_objects', 'to_check_for_places'

        Returns:
            True if summary was logged, False otherwise
        """
        if not self.enabled:
            return False

        now = self._clock()
        elapsed = now - self._last_log_time
        if elapsed < self.interval_s:
            return False

        rate = self._tick_count / max(0.1, elapsed)
        logger.info(
            f"[summary] ticks={self._tick_count} rate={rate:.1f}Hz clusters={self._total_clusters} | "
            f"created={self._total_created} grown={self._total_grown} merged={self._total_merged} "
            f"archived={self._total_archived} | active={seg_stats.get('active_objects', 0)} "
            f"to_check={seg_stats.get('to_check_for_places', 0)}"
        )

        self._reset_counters()
        self._last_log_time = now
        return True

    def reset(self) -> None:
        """Reset all counters and timestamp."""
        self._reset_counters()
        self._last_log_time = self._clock()
