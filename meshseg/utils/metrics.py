"""
Prometheus metrics for the mesh segmenter.

Counters are bumped by SegmentationPipeline once per tick; the active-object gauge is read
from the segmenter lazily at scrape time.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, REGISTRY, generate_latest


class SegmenterMetrics:
    def __init__(self, registry: Optional[CollectorRegistry] = None, namespace: str = "meshseg") -> None:
        # Default to the global REGISTRY when a custom registry isn't provided.
        self.registry = registry if registry is not None else REGISTRY
        reg = self.registry
        self.ticks = Counter("ticks", "Segmentation ticks processed", namespace=namespace, registry=reg)
        self.clusters = Counter("clusters_detected", "Clusters returned by detect()", namespace=namespace, registry=reg)
        self.created = Counter("objects_created", "Tracked objects created", namespace=namespace, registry=reg)
        self.grown = Counter("objects_grown", "Tracked objects whose box grew", namespace=namespace, registry=reg)
        self.merged = Counter("objects_merged", "Duplicate objects removed", namespace=namespace, registry=reg)
        self.archived = Counter("objects_archived", "Objects archived for staleness", namespace=namespace, registry=reg)
        self.active = Gauge("active_objects", "Objects currently tracked as active", namespace=namespace, registry=reg)

    def bind_segmenter(self, segmenter: Any) -> None:
        """Read the active-object count from `segmenter.stats()` on scrape."""
        def _active() -> float:
            try:
                return float(segmenter.stats().get("active_objects", 0))
            except Exception:
                return 0.0
        self.active.set_function(_active)

    def observe(self, *, clusters: int, update: Dict[str, int]) -> None:
        self.ticks.inc()
        self.clusters.inc(clusters)
        self.created.inc(update.get("created", 0))
        self.grown.inc(update.get("grown", 0))
        self.merged.inc(update.get("merged", 0))
        self.archived.inc(update.get("archived", 0))

    def render(self) -> bytes:
        return generate_latest(registry=self.registry)


def counter_value(registry: CollectorRegistry, name: str) -> float:
    """Read a counter's current total (None-safe) from a registry."""
    v = registry.get_sample_value(f"{name}_total")
    return float(v) if v is not None else 0.0

