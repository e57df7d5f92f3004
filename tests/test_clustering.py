import numpy as np
import pytest
from scipy.spatial import cKDTree

from meshseg.core.clustering import ClusterParams, EuclideanClusterExtractor

from conftest import grid_blob


def _extract(points, tol=0.25, min_size=1, max_size=10000, indices=None):
    pts = np.asarray(points, dtype=np.float32)
    cols = np.zeros((pts.shape[0], 3), dtype=np.uint8)
    idx = np.arange(pts.shape[0]) if indices is None else indices
    ec = EuclideanClusterExtractor(ClusterParams(tolerance=tol, min_size=min_size, max_size=max_size))
    return ec.find_clusters(pts, cols, idx)


def test_separate_blobs():
    pts = np.vstack([grid_blob((0, 0, 0), (4, 4, 2)), grid_blob((3, 0, 0), (3, 3, 3))])
    clusters = _extract(pts)
    assert sorted(c.size for c in clusters) == [27, 32]
    assert {frozenset(c.indices.tolist()) for c in clusters} == {frozenset(range(32)), frozenset(range(32, 59))}


def test_chain_is_one_cluster():
    # consecutive points 0.2 apart: ends are far apart but linked through the chain
    pts = np.array([[0.2 * k, 0.0, 0.0] for k in range(20)])
    clusters = _extract(pts, tol=0.25)
    assert len(clusters) == 1
    assert clusters[0].size == 20


def test_tolerance_splits_gaps():
    pts = np.array([[0.0, 0, 0], [0.5, 0, 0]])
    assert len(_extract(pts, tol=0.4)) == 2
    assert len(_extract(pts, tol=0.6)) == 1


def test_size_bounds():
    pts = np.vstack([
        grid_blob((0, 0, 0), (2, 2, 1)),    # 4
        grid_blob((3, 0, 0), (3, 3, 1)),    # 9
        grid_blob((6, 0, 0), (5, 5, 1)),    # 25
    ])
    clusters = _extract(pts, min_size=5, max_size=20)
    assert [c.size for c in clusters] == [9]


def test_subset_only():
    pts = grid_blob((0, 0, 0), (5, 5, 1))
    subset = np.arange(0, 25, 2)
    clusters = _extract(pts, indices=subset, tol=0.25)
    assert len(clusters) == 1
    assert set(clusters[0].indices.tolist()) == set(subset.tolist())


def test_cluster_contents():
    pts = grid_blob((1, 2, 3), (3, 3, 3))
    cols = np.tile(np.array([9, 8, 7], dtype=np.uint8), (27, 1))
    ec = EuclideanClusterExtractor(ClusterParams(tolerance=0.25, min_size=1, max_size=100))
    (c,) = ec.find_clusters(pts, cols, np.arange(27))
    np.testing.assert_allclose(c.points, pts[c.indices])
    np.testing.assert_array_equal(c.colors[0], [9, 8, 7])
    np.testing.assert_allclose(c.centroid.get(), [1, 2, 3], atol=1e-5)
    assert c.centroid.count == 27


def test_empty_subset():
    assert _extract(np.zeros((3, 3)), indices=np.array([], dtype=np.int64)) == []


def test_components_are_not_linked():
    rng = np.random.default_rng(7)
    pts = rng.uniform(0, 3, size=(400, 3))
    tol = 0.3
    clusters = _extract(pts, tol=tol)
    assert sum(c.size for c in clusters) == 400

    owner = np.empty(400, dtype=np.int64)
    for k, c in enumerate(clusters):
        owner[c.indices] = k
    for i, j in cKDTree(pts).query_pairs(r=tol):
        assert owner[i] == owner[j]
