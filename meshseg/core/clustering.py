"""
Euclidean cluster extraction over a subset of mesh vertices.

- Two points are connected if they lie within `tolerance` meters (inclusive) of each other.
- Connected components are grown seed-by-seed with KD-tree radius queries.
- Components whose size falls outside [min_size, max_size] are dropped.
- Clusters come back largest first, member indices ascending; callers must not rely on it.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import List, Protocol, Sequence
import logging

import numpy as np
from scipy.spatial import cKDTree

from meshseg.core.datamodel import Cluster

logger = logging.getLogger(__name__)


class ClusteringEngineLike(Protocol):
    """Protocol for the clustering capability injected into MeshSegmenter."""

    def find_clusters(self, positions: np.ndarray, colors: np.ndarray, indices: Sequence[int]) -> List[Cluster]: ...


@dataclass
class ClusterParams:
    tolerance: float = 0.25
    min_size: int = 40
    max_size: int = 100000


class EuclideanClusterExtractor:
    def __init__(self, params: ClusterParams) -> None:
        self.params = params

    def find_clusters(self, positions: np.ndarray, colors: np.ndarray, indices: Sequence[int]) -> List[Cluster]:
        """Cluster the points referenced by `indices` (row indices into positions/colors)."""
        idx = np.asarray(indices, dtype=np.int64).reshape(-1)
        if idx.size == 0:
            return []
        pts = np.asarray(positions, dtype=np.float64)[idx]
        tree = cKDTree(pts)
        tol = float(self.params.tolerance)

        processed = np.zeros(idx.size, dtype=bool)
        components: List[np.ndarray] = []
        for seed in range(idx.size):
            if processed[seed]:
                continue
            processed[seed] = True
            members = [seed]
            frontier = deque([seed])
            while frontier:
                cur = frontier.popleft()
                for nb in tree.query_ball_point(pts[cur], r=tol):
                    if processed[nb]:
                        continue
                    processed[nb] = True
                    members.append(nb)
                    frontier.append(nb)
            if self.params.min_size <= len(members) <= self.params.max_size:
                components.append(np.sort(idx[np.asarray(members, dtype=np.int64)]))

        components.sort(key=lambda c: c.size, reverse=True)
        clusters = [Cluster.from_vertices(c, positions, colors) for c in components]
        logger.debug(
            f"[EC] points={idx.size} tol={tol:.3f} size=[{self.params.min_size},{self.params.max_size}] "
            f"clusters={len(clusters)}"
        )
        return clusters
