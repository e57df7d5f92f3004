"""
Replay a recorded mesh sequence through the segmentation pipeline.

Recording format (.npz):
    positions      (N,3) float32   all mesh vertices, in the order they were appended
    colors         (N,3) uint8     semantic colors
    num_vertices   (T,)  int       mesh size at each tick (the buffer grows to this size)
    timestamp_ns   (T,)  int64     tick timestamps
    frontier_<k>   (M,)  int64     frontier vertex indices for tick k
    root_<k>       (3,)  float32   optional robot position for tick k
"""
import argparse
import logging
import time

import numpy as np

from meshseg.config import load_config
from meshseg.core.labels import SemanticLabel2Color
from meshseg.core.pipeline import SegmentationPipeline
from meshseg.stores.mesh_vertices import MeshVertices
from meshseg.stores.scene_graph import SceneGraph
from meshseg.utils.metrics import SegmenterMetrics

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("replay_mesh")


def main() -> None:
    p = argparse.ArgumentParser(description="Replay a recorded labeled-mesh sequence through the mesh segmenter.")
    p.add_argument("--config", default="config/meshseg.yaml", help="YAML config file")
    p.add_argument("--labels", default=None, help="Label color YAML (defaults to config 'label_map')")
    p.add_argument("--recording", required=True, help="Path to .npz recording")
    p.add_argument("--max-ticks", type=int, default=None, help="Stop after this many ticks")
    p.add_argument("--metrics", action="store_true", help="Print Prometheus metrics at the end")
    p.add_argument("--debug", action="store_true", help="Enable DEBUG logging for meshseg")
    args = p.parse_args()

    if args.debug:
        logging.getLogger("meshseg").setLevel(logging.DEBUG)

    cfg = load_config(args.config)
    label_map = SemanticLabel2Color.from_yaml(args.labels or cfg.get("label_map", "config/labels.yaml"))

    rec = np.load(args.recording)
    positions = rec["positions"]
    colors = rec["colors"]
    sizes = rec["num_vertices"]
    stamps = rec["timestamp_ns"]

    vertices = MeshVertices(capacity=max(1, int(sizes.max()) if sizes.size else 1))
    graph = SceneGraph()
    metrics = SegmenterMetrics() if args.metrics else None
    pipe = SegmentationPipeline.from_cfg(cfg, vertices, graph, label_map, metrics=metrics)

    n_ticks = int(stamps.shape[0])
    if args.max_ticks is not None:
        n_ticks = min(n_ticks, args.max_ticks)

    archived_total = 0
    t0 = time.perf_counter()
    for k in range(n_ticks):
        target = int(sizes[k])
        if target > len(vertices):
            vertices.append(positions[len(vertices):target], colors[len(vertices):target])
        frontier = rec[f"frontier_{k}"] if f"frontier_{k}" in rec.files else np.zeros(0, dtype=np.int64)
        root = rec[f"root_{k}"] if f"root_{k}" in rec.files else None
        res = pipe.step(frontier, int(stamps[k]), root)
        archived_total += len(res.archived)
        logger.debug(f"tick {k}: clusters={res.num_clusters} archived={len(res.archived)}")
    dt = time.perf_counter() - t0

    print("=" * 60)
    print(f"  ticks:     {n_ticks} in {dt:.2f}s")
    print(f"  vertices:  {len(vertices)}")
    print(f"  objects:   {graph.num_nodes('OBJECTS')} in graph, {pipe.segmenter.stats()['active_objects']} active")
    print(f"  archived:  {archived_total}")
    print(f"  to check:  {len(pipe.segmenter.objects_to_check_for_places)}")
    print("=" * 60)
    if metrics is not None:
        print(metrics.render().decode())


if __name__ == "__main__":
    main()
