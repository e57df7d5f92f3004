"""
meshseg: incremental object segmentation of a semantically labeled mesh.

Clusters newly observed mesh vertices by semantic label and keeps a set of tracked object
nodes in a scene graph up to date (create, grow, de-duplicate, archive).

Typical use:
    cfg = load_config("config/meshseg.yaml")
    pipe = SegmentationPipeline.from_cfg(cfg, vertices, SceneGraph(), label_map)
    result = pipe.step(frontier_indices, timestamp_ns, root_position)
"""

from meshseg.config import MeshSegmenterConfig, load_config
from meshseg.core.segmenter import MeshSegmenter
from meshseg.core.pipeline import SegmentationPipeline, StepResult
from meshseg.core.labels import SemanticLabel2Color
from meshseg.stores.mesh_vertices import MeshVertices
from meshseg.stores.scene_graph import SceneGraph

__all__ = [
    "MeshSegmenterConfig",
    "load_config",
    "MeshSegmenter",
    "SegmentationPipeline",
    "StepResult",
    "SemanticLabel2Color",
    "MeshVertices",
    "SceneGraph",
]
