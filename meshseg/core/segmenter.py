"""
Mesh Segmenter (MS)

Turns a growing, semantically colored mesh into tracked object nodes in a scene graph.
- detect(): active-region filter -> label partition -> per-label Euclidean clustering.
- update_graph(): archive stale objects, then match clusters to active objects (centroid inside
  box), grow or create objects, and collapse same-label duplicates.
- Owns per-label active object sets, last-seen timestamps and the pending place-check set.
  Geometry is grow-only: a detection replaces the stored box only if its volume is larger.

Per-tick operations never raise on bad data; offending items are logged and skipped.
Not thread-safe; one caller drives ticks in order with non-decreasing timestamps.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Callable, Dict, List, Optional, Sequence, Set
import logging

import numpy as np

from meshseg.config import MeshSegmenterConfig
from meshseg.core.bounding_box import BoundingBox, extract_bounding_box
from meshseg.core.clustering import ClusteringEngineLike, EuclideanClusterExtractor
from meshseg.core.datamodel import (
    Cluster,
    LabelClusters,
    LabelIndices,
    NodeId,
    NodeSymbol,
    ObjectNodeAttributes,
)
from meshseg.core.labels import LabelClassifierLike
from meshseg.stores.mesh_vertices import VertexBufferLike
from meshseg.stores.scene_graph import SceneGraphLike

logger = logging.getLogger(__name__)

BoxFitter = Callable[[np.ndarray, str], BoundingBox]
DetectCallback = Callable[[VertexBufferLike, List[int], LabelIndices], None]


@dataclass
class UpdateStats:
    """Counters for the most recent update_graph() call."""
    matched: int = 0
    grown: int = 0
    created: int = 0
    rejected: int = 0
    merged: int = 0
    archived: int = 0
    missing: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def _fmt_xyz(p: Optional[np.ndarray]) -> str:
    if p is None:
        return "-"
    return f"[{float(p[0]):.2f},{float(p[1]):.2f},{float(p[2]):.2f}]"


class MeshSegmenter:
    def __init__(
        self,
        config: MeshSegmenterConfig,
        vertices: VertexBufferLike,
        *,
        clustering: Optional[ClusteringEngineLike] = None,
        box_fitter: Optional[BoxFitter] = None,
    ) -> None:
        self.config = config
        self.vertices = vertices
        self.clustering = clustering or EuclideanClusterExtractor(config.cluster_params())
        self.box_fitter: BoxFitter = box_fitter or extract_bounding_box

        # insertion-ordered dicts double as ordered sets
        self._active: Dict[int, Dict[NodeId, None]] = {label: {} for label in config.labels}
        self._timestamps: Dict[NodeId, int] = {}
        self._to_check: Dict[NodeId, None] = {}
        self._next_symbol = NodeSymbol(config.prefix, 0)
        self._callbacks: List[DetectCallback] = []
        self.last_update = UpdateStats()

        logger.debug(f"[MS] detecting objects for labels: {config.labels}")

    # ---------- observers ----------

    def add_callback(self, fn: DetectCallback) -> None:
        """Register an observer called with (vertices, active_indices, label_indices) on detect()."""
        self._callbacks.append(fn)

    def _notify(self, active_indices: List[int], label_indices: LabelIndices) -> None:
        for fn in self._callbacks:
            try:
                fn(self.vertices, active_indices, label_indices)
            except Exception as e:
                logger.warning(f"[MS] detect callback failed; continuing: {e}")

    # ---------- active region ----------

    def get_active_indices(self, indices: Sequence[int], pos: Optional[np.ndarray] = None) -> List[int]:
        """Frontier indices within `active_index_horizon_m` (strict) of `pos`, order preserved."""
        idx = [int(i) for i in indices]
        if pos is None:
            return idx
        if not idx:
            return []
        n = len(self.vertices)
        arr = np.asarray(idx, dtype=np.int64)
        in_range = (arr >= 0) & (arr < n)
        if not np.all(in_range):
            logger.warning(f"[MS] active filter: dropping {int(np.count_nonzero(~in_range))} indices outside mesh (size {n})")
        dist = np.full(arr.shape[0], np.inf)
        root = np.asarray(pos, dtype=np.float64).reshape(3)
        dist[in_range] = np.linalg.norm(self.vertices.positions[arr[in_range]].astype(np.float64) - root, axis=1)
        active = arr[dist < self.config.active_index_horizon_m].tolist()
        logger.debug(f"[MS] active indices: {len(idx)} used: {len(active)}")
        return active

    # ---------- labels ----------

    def get_vertex_label(self, label_map: LabelClassifierLike, index: int) -> Optional[int]:
        if index < 0 or index >= len(self.vertices):
            return None
        return label_map.get_semantic_label_from_color(self.vertices.colors[index])

    def get_label_indices(self, label_map: LabelClassifierLike, indices: Sequence[int]) -> LabelIndices:
        """Bucket indices by semantic label, keeping only configured labels."""
        label_indices: LabelIndices = {}
        wanted = self._active.keys()
        n = len(self.vertices)
        bad: List[int] = []
        unlabeled = 0
        seen: Set[int] = set()
        for idx in indices:
            idx = int(idx)
            if idx < 0 or idx >= n:
                bad.append(idx)
                continue
            label = self.get_vertex_label(label_map, idx)
            if label is None:
                unlabeled += 1
                continue
            seen.add(label)
            if label not in wanted:
                continue
            label_indices.setdefault(label, []).append(idx)

        if bad:
            logger.error(f"[MS] {len(bad)} bad indices (of {n}), e.g. {bad[:5]}")
        if unlabeled:
            logger.warning(f"[MS] {unlabeled} vertices with no semantic label for their color")
        logger.debug(f"[MS] seen labels: {sorted(seen)}")
        return label_indices

    # ---------- detection ----------

    def find_clusters(self, indices: Sequence[int]) -> List[Cluster]:
        return self.clustering.find_clusters(self.vertices.positions, self.vertices.colors, indices)

    def detect(
        self,
        label_map: LabelClassifierLike,
        frontier_indices: Sequence[int],
        pos: Optional[np.ndarray] = None,
    ) -> LabelClusters:
        active_indices = self.get_active_indices(frontier_indices, pos)
        label_clusters: LabelClusters = {}
        if not active_indices:
            logger.debug("[MS] no active indices in mesh")
            return label_clusters

        label_indices = self.get_label_indices(label_map, active_indices)
        if not label_indices:
            logger.debug("[MS] no vertices found matching desired labels")
            self._notify(active_indices, label_indices)
            return label_clusters

        for label in self.config.labels:
            members = label_indices.get(label)
            if members is None or len(members) < self.config.min_cluster_size:
                continue
            clusters = self.find_clusters(members)
            logger.debug(f"[MS]  - found {len(clusters)} clusters of label {label}")
            label_clusters[label] = clusters

        self._notify(active_indices, label_indices)
        return label_clusters

    # ---------- graph update ----------

    def update_graph(self, graph: SceneGraphLike, clusters: LabelClusters, timestamp: int) -> Set[NodeId]:
        """Archive stale objects, merge this tick's clusters into the graph. Returns archived ids."""
        self.last_update = UpdateStats()
        archived = self._archive(graph, timestamp, self.last_update)

        for label in clusters:
            if label not in self._active:
                logger.warning(f"[MS] skipping {len(clusters[label])} clusters of unconfigured label {label}")

        for label in self.config.labels:
            if label not in clusters:
                continue
            for cluster in clusters[label]:
                match = self._find_match(graph, label, cluster)
                if match is not None:
                    self._update_object(graph, cluster, match, timestamp)
                else:
                    self._add_object(graph, cluster, label, timestamp)
            self._merge_duplicates(graph, label)

        st = self.last_update
        logger.debug(
            f"[MS] update t={timestamp} matched={st.matched} grown={st.grown} created={st.created} "
            f"merged={st.merged} archived={st.archived}"
        )
        return archived

    def _find_match(self, graph: SceneGraphLike, label: int, cluster: Cluster) -> Optional[NodeId]:
        centroid = cluster.centroid.get()
        if centroid is None:
            return None
        for node_id in self._active[label]:
            node = graph.get_node(node_id)
            if node is None:
                logger.warning(f"[MS] active object {NodeSymbol.from_id(node_id)} missing from graph")
                continue
            if node.attributes.bounding_box.is_inside(centroid):
                return node_id
        return None

    def _update_object(self, graph: SceneGraphLike, cluster: Cluster, node_id: NodeId, timestamp: int) -> None:
        self.last_update.matched += 1
        self._timestamps[node_id] = timestamp
        for idx in cluster.indices:
            graph.insert_mesh_edge(node_id, int(idx))

        attrs: ObjectNodeAttributes = graph.get_node(node_id).attributes
        attrs.last_update_time_ns = timestamp
        new_box = self.box_fitter(cluster.points, self.config.bounding_box_type)
        old_vol = attrs.bounding_box.volume()
        new_vol = new_box.volume()
        if old_vol >= new_vol:
            return  # prefer the largest detection

        self._to_check[node_id] = None
        attrs.position = cluster.centroid.get()
        attrs.bounding_box = new_box
        self.last_update.grown += 1
        logger.debug(f"[MS] grow {attrs.name} vol={old_vol:.4f}->{new_vol:.4f} xyz={_fmt_xyz(attrs.position)}")

    def _add_object(self, graph: SceneGraphLike, cluster: Cluster, label: int, timestamp: int) -> None:
        if cluster.empty:
            logger.error(f"[MS] encountered empty cluster with label {label} @ {timestamp}[ns]")
            self.last_update.rejected += 1
            return

        symbol = self._next_symbol
        r, g, b = (int(v) for v in cluster.colors[0])
        attrs = ObjectNodeAttributes(
            semantic_label=label,
            name=symbol.label,
            position=cluster.centroid.get(),
            bounding_box=self.box_fitter(cluster.points, self.config.bounding_box_type),
            color=(r, g, b),
            last_update_time_ns=timestamp,
        )
        if not graph.emplace_node("OBJECTS", symbol.value, attrs):
            logger.error(f"[MS] failed to add object {symbol} to graph")
            self.last_update.rejected += 1
            self._next_symbol = symbol.next()
            return

        self._active[label][symbol.value] = None
        self._timestamps[symbol.value] = timestamp
        self._to_check[symbol.value] = None
        for idx in cluster.indices:
            graph.insert_mesh_edge(symbol.value, int(idx))

        self._next_symbol = symbol.next()
        self.last_update.created += 1
        logger.debug(
            f"[MS] create {symbol} label={label} points={cluster.size} xyz={_fmt_xyz(attrs.position)} "
            f"vol={attrs.bounding_box.volume():.4f}"
        )

    # ---------- duplicates ----------

    def _merge_duplicates(self, graph: SceneGraphLike, label: int) -> None:
        """Collapse same-label objects whose centroid lies in the other's box; larger volume wins."""
        snapshot = list(self._active[label])
        for node_id in snapshot:
            node = graph.get_node(node_id)
            if node is None:
                continue
            attrs = node.attributes
            for other_id in snapshot:
                if other_id == node_id:
                    continue
                other_node = graph.get_node(other_id)
                if other_node is None:
                    continue
                other = other_node.attributes
                if not (attrs.bounding_box.is_inside(other.position) or other.bounding_box.is_inside(attrs.position)):
                    continue
                if attrs.bounding_box.volume() >= other.bounding_box.volume():
                    self._remove_object(graph, label, other_id, kept=node_id)
                else:
                    self._remove_object(graph, label, node_id, kept=other_id)
                    break

    def _remove_object(self, graph: SceneGraphLike, label: int, node_id: NodeId, *, kept: NodeId) -> None:
        graph.remove_node(node_id)
        self._active[label].pop(node_id, None)
        self._timestamps.pop(node_id, None)
        self._to_check.pop(node_id, None)
        self.last_update.merged += 1
        logger.info(f"[MS] merge duplicate {NodeSymbol.from_id(node_id)} into {NodeSymbol.from_id(kept)} (label={label})")

    # ---------- archival ----------

    def archive_old_objects(self, graph: SceneGraphLike, latest_timestamp: int) -> Set[NodeId]:
        """Drop active objects missing from the graph or unseen for longer than the horizon."""
        return self._archive(graph, latest_timestamp, UpdateStats())

    def _archive(self, graph: SceneGraphLike, latest_timestamp: int, stats: UpdateStats) -> Set[NodeId]:
        archived: Set[NodeId] = set()
        horizon_ns = self.config.active_horizon_ns
        for label in self.config.labels:
            removed: List[NodeId] = []
            for node_id in self._active[label]:
                if not graph.has_node(node_id):
                    removed.append(node_id)
                    stats.missing += 1
                    continue
                last_seen = self._timestamps.get(node_id)
                if last_seen is None:
                    logger.warning(f"[MS] active object {NodeSymbol.from_id(node_id)} has no timestamp")
                    removed.append(node_id)
                    continue
                if latest_timestamp - last_seen > horizon_ns:
                    removed.append(node_id)
                    archived.add(node_id)

            for node_id in removed:
                self._active[label].pop(node_id, None)
                self._timestamps.pop(node_id, None)

        if archived:
            stats.archived += len(archived)
            logger.info(f"[MS] archived {len(archived)} objects: {[str(NodeSymbol.from_id(i)) for i in sorted(archived)]}")
        return archived

    # ---------- place checks ----------

    def prune_objects_to_check_for_places(self, graph: SceneGraphLike) -> None:
        to_remove: List[NodeId] = []
        for node_id in self._to_check:
            if not graph.has_node(node_id):
                logger.error(f"[MS] missing node {NodeSymbol.from_id(node_id)}")
                to_remove.append(node_id)
                continue
            if graph.has_parent(node_id):
                to_remove.append(node_id)

        for node_id in to_remove:
            self._to_check.pop(node_id, None)

    @property
    def objects_to_check_for_places(self) -> List[NodeId]:
        return list(self._to_check)

    # ---------- read accessors ----------

    def active_objects(self, label: Optional[int] = None) -> List[NodeId]:
        if label is not None:
            return list(self._active.get(label, ()))
        return [oid for ids in self._active.values() for oid in ids]

    def last_seen(self, node_id: NodeId) -> Optional[int]:
        return self._timestamps.get(node_id)

    @property
    def next_node_symbol(self) -> NodeSymbol:
        return self._next_symbol

    def stats(self) -> Dict[str, object]:
        return {
            "active_objects": sum(len(ids) for ids in self._active.values()),
            "per_label": {label: len(ids) for label, ids in self._active.items()},
            "to_check_for_places": len(self._to_check),
            "next_id": self._next_symbol.label,
        }

    def reset(self) -> None:
        """Forget all tracking state (graph nodes are left alone). Identifiers keep counting."""
        self._active = {label: {} for label in self.config.labels}
        self._timestamps.clear()
        self._to_check.clear()
        logger.info("[MS] tracking state cleared")
