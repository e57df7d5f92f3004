from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Optional, Sequence, Set

import numpy as np

from meshseg.config import MeshSegmenterConfig
from meshseg.core.datamodel import LabelClusters, NodeId
from meshseg.core.labels import LabelClassifierLike
from meshseg.core.segmenter import MeshSegmenter
from meshseg.stores.mesh_vertices import VertexBufferLike
from meshseg.stores.scene_graph import SceneGraphLike
from meshseg.utils.metrics import SegmenterMetrics
from meshseg.utils.periodic_logger import PeriodicLogger

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    clusters: LabelClusters
    archived: Set[NodeId]
    objects_to_check_for_places: List[NodeId] = field(default_factory=list)

    @property
    def num_clusters(self) -> int:
        return sum(len(c) for c in self.clusters.values())


class SegmentationPipeline:
    def __init__(
        self,
        cfg: Dict[str, Any],
        segmenter: MeshSegmenter,
        graph: SceneGraphLike,
        label_map: LabelClassifierLike,
        metrics: Optional[SegmenterMetrics] = None,
    ):
        self.cfg = cfg
        self.segmenter = segmenter
        self.graph = graph
        self.label_map = label_map
        self.metrics = metrics
        if metrics is not None:
            metrics.bind_segmenter(segmenter)

        # Periodic summary logger
        log_cfg = cfg.get("logging", {})
        self._periodic_logger = PeriodicLogger(
            interval_s=float(log_cfg.get("summary_interval_s", 5.0)),
            enabled=bool(log_cfg.get("periodic_summary", True)),
        )

    @classmethod
    def from_cfg(
        cls,
        cfg: Dict[str, Any],
        vertices: VertexBufferLike,
        graph: SceneGraphLike,
        label_map: LabelClassifierLike,
        metrics: Optional[SegmenterMetrics] = None,
    ) -> SegmentationPipeline:
        segmenter = MeshSegmenter(MeshSegmenterConfig.from_cfg(cfg), vertices)
        return cls(cfg, segmenter, graph, label_map, metrics=metrics)

    # -------- single step (one tick) --------
    def step(
        self,
        frontier_indices: Sequence[int],
        timestamp_ns: int,
        root_position: Optional[np.ndarray] = None,
    ) -> StepResult:
        """
        One processing tick:
        1. Detect per-label clusters among the frontier vertices near `root_position`.
        2. Archive stale objects, then match/grow/create objects and collapse duplicates.
        3. Drop place-check entries whose objects vanished or already have a parent.
        4. Feed metrics and the periodic summary.
        """
        clusters = self.segmenter.detect(self.label_map, frontier_indices, root_position)
        archived = self.segmenter.update_graph(self.graph, clusters, int(timestamp_ns))
        self.segmenter.prune_objects_to_check_for_places(self.graph)

        result = StepResult(
            clusters=clusters,
            archived=archived,
            objects_to_check_for_places=self.segmenter.objects_to_check_for_places,
        )
        update = self.segmenter.last_update.as_dict()
        if self.metrics is not None:
            self.metrics.observe(clusters=result.num_clusters, update=update)
        self._periodic_logger.tick(
            clusters=result.num_clusters,
            created=update["created"],
            grown=update["grown"],
            merged=update["merged"],
            archived=update["archived"],
        )
        self._periodic_logger.maybe_log(self.segmenter.stats())
        return result
