import numpy as np
import pytest

from meshseg.config import MeshSegmenterConfig
from meshseg.core.labels import SemanticLabel2Color
from meshseg.core.segmenter import MeshSegmenter
from meshseg.stores.mesh_vertices import MeshVertices
from meshseg.stores.scene_graph import SceneGraph

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
GRAY = (128, 128, 128)

SEC = 10**9


def grid_blob(center, counts, spacing=0.05):
    """Regular (nx,ny,nz) grid of points centered on `center`; neighbors are `spacing` apart."""
    nx, ny, nz = counts
    xs, ys, zs = np.meshgrid(np.arange(nx), np.arange(ny), np.arange(nz), indexing="ij")
    pts = np.stack([xs.ravel(), ys.ravel(), zs.ravel()], axis=1).astype(np.float64) * spacing
    pts -= pts.mean(axis=0)
    return (pts + np.asarray(center, dtype=np.float64)).astype(np.float32)


def tilted_patch(center, counts=(8, 6), spacing=0.05):
    """Flat (nx,ny) grid tilted out of every world plane, centered on `center`."""
    a, b = np.deg2rad(40), np.deg2rad(25)
    Rz = np.array([[np.cos(a), -np.sin(a), 0], [np.sin(a), np.cos(a), 0], [0, 0, 1]])
    Rx = np.array([[1, 0, 0], [0, np.cos(b), -np.sin(b)], [0, np.sin(b), np.cos(b)]])
    flat = grid_blob((0, 0, 0), (counts[0], counts[1], 1), spacing).astype(np.float64)
    return (flat @ (Rz @ Rx).T + np.asarray(center, dtype=np.float64)).astype(np.float32)


def add_blob(vertices, center, counts, color, spacing=0.05):
    pts = grid_blob(center, counts, spacing)
    cols = np.tile(np.asarray(color, dtype=np.uint8), (pts.shape[0], 1))
    return list(vertices.append(pts, cols))


@pytest.fixture
def label_map():
    # label 1 -> red, 2 -> green, 3 -> blue (not tracked by default)
    return SemanticLabel2Color({1: RED, 2: GREEN, 3: BLUE})


@pytest.fixture
def vertices():
    return MeshVertices(capacity=16)


@pytest.fixture
def graph():
    return SceneGraph()


@pytest.fixture
def config():
    return MeshSegmenterConfig(
        labels=[1, 2],
        cluster_tolerance=0.25,
        min_cluster_size=10,
        max_cluster_size=10000,
        active_index_horizon_m=7.0,
        active_horizon_s=10.0,
    )


@pytest.fixture
def segmenter(config, vertices):
    return MeshSegmenter(config, vertices)
