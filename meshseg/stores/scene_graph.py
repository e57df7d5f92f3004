"""
SceneGraph: minimal layered graph holding tracked objects (and their parent places).

Responsibility:
- Owns nodes keyed by integer id, each on a layer (OBJECTS, PLACES) with an attributes payload.
- Mesh edges: node -> set of mesh vertex indices contributing to it (cumulative).
- Parent relation: one parent per node (e.g. place -> object), assigned by downstream consumers.
- remove_node drops the node's mesh edges and detaches parent/children.

MeshSegmenter only talks to it through SceneGraphLike, so any graph with the same
methods can be used instead.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Optional, Protocol, Set
import threading
import logging

logger = logging.getLogger(__name__)

Layer = Literal["OBJECTS", "PLACES"]
LAYERS: tuple[Layer, ...] = ("OBJECTS", "PLACES")


@dataclass(slots=True)
class SceneGraphNode:
    id: int
    layer: Layer
    attributes: Any
    parent: Optional[int] = None
    children: Set[int] = field(default_factory=set)

    def has_parent(self) -> bool:
        return self.parent is not None


class SceneGraphLike(Protocol):
    """Protocol for the graph operations MeshSegmenter relies on."""

    def has_node(self, node_id: int) -> bool: ...

    def get_node(self, node_id: int) -> Optional[SceneGraphNode]: ...

    def emplace_node(self, layer: Layer, node_id: int, attributes: Any) -> bool: ...

    def remove_node(self, node_id: int) -> bool: ...

    def insert_mesh_edge(self, node_id: int, vertex_idx: int) -> bool: ...

    def has_parent(self, node_id: int) -> bool: ...


class SceneGraph:
    def __init__(self) -> None:
        self._nodes: Dict[int, SceneGraphNode] = {}
        self._mesh_edges: Dict[int, Set[int]] = {}
        self._lock = threading.RLock()

    # ---------- nodes ----------

    def has_node(self, node_id: int) -> bool:
        with self._lock:
            return node_id in self._nodes

    def get_node(self, node_id: int) -> Optional[SceneGraphNode]:
        with self._lock:
            return self._nodes.get(node_id)

    def emplace_node(self, layer: Layer, node_id: int, attributes: Any) -> bool:
        """Insert a node; returns False (and leaves the graph untouched) if the id exists."""
        if layer not in LAYERS:
            raise ValueError(f"unknown layer {layer!r}")
        with self._lock:
            if node_id in self._nodes:
                logger.warning(f"[SG] emplace rejected: node {node_id} already exists")
                return False
            self._nodes[node_id] = SceneGraphNode(id=node_id, layer=layer, attributes=attributes)
            return True

    def remove_node(self, node_id: int) -> bool:
        with self._lock:
            node = self._nodes.pop(node_id, None)
            if node is None:
                return False
            self._mesh_edges.pop(node_id, None)
            if node.parent is not None:
                parent = self._nodes.get(node.parent)
                if parent is not None:
                    parent.children.discard(node_id)
            for child_id in node.children:
                child = self._nodes.get(child_id)
                if child is not None:
                    child.parent = None
        logger.debug(f"[SG] remove node={node_id}")
        return True

    def nodes(self, layer: Optional[Layer] = None) -> List[SceneGraphNode]:
        with self._lock:
            return [n for n in self._nodes.values() if layer is None or n.layer == layer]

    def num_nodes(self, layer: Optional[Layer] = None) -> int:
        return len(self.nodes(layer))

    # ---------- edges ----------

    def insert_mesh_edge(self, node_id: int, vertex_idx: int) -> bool:
        with self._lock:
            if node_id not in self._nodes:
                return False
            self._mesh_edges.setdefault(node_id, set()).add(int(vertex_idx))
            return True

    def mesh_edges(self, node_id: int) -> Set[int]:
        with self._lock:
            return set(self._mesh_edges.get(node_id, ()))

    def insert_edge(self, parent_id: int, child_id: int) -> bool:
        """Assign `parent_id` as the parent of `child_id` (replaces any previous parent)."""
        with self._lock:
            parent = self._nodes.get(parent_id)
            child = self._nodes.get(child_id)
            if parent is None or child is None or parent_id == child_id:
                return False
            if child.parent is not None and child.parent in self._nodes:
                self._nodes[child.parent].children.discard(child_id)
            child.parent = parent_id
            parent.children.add(child_id)
            return True

    def has_parent(self, node_id: int) -> bool:
        with self._lock:
            node = self._nodes.get(node_id)
            return node is not None and node.has_parent()

    # ---------- utilities ----------

    def clear(self) -> None:
        with self._lock:
            self._nodes.clear()
            self._mesh_edges.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            out = {f"{layer.lower()}": 0 for layer in LAYERS}
            for n in self._nodes.values():
                out[n.layer.lower()] += 1
            out["mesh_edges"] = sum(len(s) for s in self._mesh_edges.values())
            return out

    def __contains__(self, node_id: object) -> bool:
        return self.has_node(node_id)  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[SceneGraphNode]:
        return iter(self.nodes())
