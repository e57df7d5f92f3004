"""
Configuration for the mesh segmenter.

Config format (config/meshseg.yaml):
    segmenter:
      prefix: O
      labels: [4, 5, 7]
      cluster_tolerance: 0.25
      min_cluster_size: 40
      max_cluster_size: 100000
      active_index_horizon_m: 7.0
      active_horizon_s: 10.0
      bounding_box_type: AABB
    logging:
      periodic_summary: true
      summary_interval_s: 5.0
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List
import logging

import yaml

from meshseg.core.bounding_box import available_types
from meshseg.core.clustering import ClusterParams

logger = logging.getLogger(__name__)


@dataclass
class MeshSegmenterConfig:
    prefix: str = "O"
    labels: List[int] = field(default_factory=list)   # ordered, unique
    cluster_tolerance: float = 0.25
    min_cluster_size: int = 40
    max_cluster_size: int = 100000
    active_index_horizon_m: float = 7.0
    active_horizon_s: float = 10.0
    bounding_box_type: str = "AABB"

    def __post_init__(self) -> None:
        seen: Dict[int, None] = {}
        for lbl in self.labels:
            seen.setdefault(int(lbl), None)
        self.labels = list(seen)
        self.bounding_box_type = str(self.bounding_box_type).upper()

        if len(self.prefix) != 1:
            raise ValueError(f"prefix must be a single character, got {self.prefix!r}")
        if any(not (0 <= lbl <= 255) for lbl in self.labels):
            raise ValueError(f"labels must fit in 8 bits, got {self.labels}")
        if self.cluster_tolerance <= 0:
            raise ValueError(f"cluster_tolerance must be positive, got {self.cluster_tolerance}")
        if self.min_cluster_size < 1 or self.min_cluster_size > self.max_cluster_size:
            raise ValueError(
                f"invalid cluster size bounds [{self.min_cluster_size}, {self.max_cluster_size}]"
            )
        if self.active_index_horizon_m <= 0:
            raise ValueError(f"active_index_horizon_m must be positive, got {self.active_index_horizon_m}")
        if self.active_horizon_s < 0:
            raise ValueError(f"active_horizon_s must be non-negative, got {self.active_horizon_s}")
        if self.bounding_box_type not in available_types():
            raise ValueError(
                f"unknown bounding_box_type {self.bounding_box_type!r}; expected one of {available_types()}"
            )

    @property
    def active_horizon_ns(self) -> int:
        return int(round(self.active_horizon_s * 1e9))

    def cluster_params(self) -> ClusterParams:
        return ClusterParams(
            tolerance=self.cluster_tolerance,
            min_size=self.min_cluster_size,
            max_size=self.max_cluster_size,
        )

    @classmethod
    def from_cfg(cls, cfg: Dict[str, Any]) -> MeshSegmenterConfig:
        """Build from the full config dict (reads the `segmenter` section)."""
        seg = cfg.get("segmenter", {}) or {}
        return cls(
            prefix=str(seg.get("prefix", "O")),
            labels=[int(l) for l in seg.get("labels", [])],
            cluster_tolerance=float(seg.get("cluster_tolerance", 0.25)),
            min_cluster_size=int(seg.get("min_cluster_size", 40)),
            max_cluster_size=int(seg.get("max_cluster_size", 100000)),
            active_index_horizon_m=float(seg.get("active_index_horizon_m", 7.0)),
            active_horizon_s=float(seg.get("active_horizon_s", 10.0)),
            bounding_box_type=str(seg.get("bounding_box_type", "AABB")),
        )


def load_config(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        cfg = yaml.safe_load(f) or {}
    logger.info(f"Configuration loaded from {path}")
    return cfg
