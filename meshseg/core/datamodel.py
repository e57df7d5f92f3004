from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from meshseg.core.bounding_box import BoundingBox


Vec3 = NDArray[np.float64]
Points = NDArray[np.float32]     # (N,3) float32 world meters
Colors = NDArray[np.uint8]       # (N,3) uint8 RGB
Indices = NDArray[np.int64]      # (N,) vertex indices into the mesh buffer

NodeId = int
Label = int

__all__ = ["NodeSymbol", "Centroid", "Cluster", "ObjectNodeAttributes", "LabelClusters", "LabelIndices"]

# ------------------------- node identifiers -------------------------

_INDEX_BITS = 56
_INDEX_MASK = (1 << _INDEX_BITS) - 1


@dataclass(frozen=True, slots=True)
class NodeSymbol:
    """
    Prefixed, monotonically indexed node id.
    The integer value packs the prefix character into the top byte: (ord(key) << 56) | index.
    """
    key: str
    index: int = 0

    def __post_init__(self) -> None:
        if len(self.key) != 1:
            raise ValueError(f"node symbol prefix must be a single character, got {self.key!r}")
        if not (0 <= self.index <= _INDEX_MASK):
            raise ValueError(f"node symbol index out of range: {self.index}")

    @property
    def value(self) -> NodeId:
        return (ord(self.key) << _INDEX_BITS) | self.index

    @property
    def label(self) -> str:
        return f"{self.key}({self.index})"

    def next(self) -> NodeSymbol:
        return NodeSymbol(self.key, self.index + 1)

    @classmethod
    def from_id(cls, node_id: NodeId) -> NodeSymbol:
        return cls(chr((node_id >> _INDEX_BITS) & 0xFF), node_id & _INDEX_MASK)

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return self.label

# ------------------------- cluster -------------------------

@dataclass(slots=True)
class Centroid:
    """Running sum of points; mirrors an incremental centroid accumulator."""
    total: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    count: int = 0

    def add(self, points: np.ndarray) -> None:
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        self.total = self.total + pts.sum(axis=0)
        self.count += int(pts.shape[0])

    def get(self) -> Optional[Vec3]:
        if self.count == 0:
            return None
        return self.total / self.count


@dataclass(slots=True)
class Cluster:
    """
    Ephemeral result of one clustering pass. Consumed within the same tick.
    """
    indices: Indices                  # member vertex indices
    points: Points                    # copy of member positions, row-aligned with indices
    colors: Colors                    # copy of member colors, row-aligned with indices
    centroid: Centroid = field(default_factory=Centroid)

    @classmethod
    def from_vertices(cls, indices: np.ndarray, positions: np.ndarray, colors: np.ndarray) -> Cluster:
        idx = np.asarray(indices, dtype=np.int64)
        pts = np.asarray(positions, dtype=np.float32)[idx].copy()
        cols = np.asarray(colors, dtype=np.uint8)[idx].copy()
        c = Centroid()
        c.add(pts)
        return cls(indices=idx, points=pts, colors=cols, centroid=c)

    @property
    def size(self) -> int:
        return int(self.indices.shape[0])

    @property
    def empty(self) -> bool:
        return self.points.shape[0] == 0

    def __len__(self) -> int:
        return self.size


LabelClusters = Dict[Label, List[Cluster]]
LabelIndices = Dict[Label, List[int]]

# ------------------------- tracked object attributes -------------------------

@dataclass(slots=True)
class ObjectNodeAttributes:
    """
    Attributes of a tracked object node stored in the scene graph.
    Geometry (position, bounding_box) only ever grows; see MeshSegmenter.
    """
    semantic_label: Label
    name: str
    position: Vec3                            # (3,) centroid in world frame
    bounding_box: BoundingBox
    color: Tuple[int, int, int] = (0, 0, 0)   # representative RGB
    last_update_time_ns: int = 0
