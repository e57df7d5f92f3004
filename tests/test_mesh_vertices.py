import numpy as np
import pytest

from meshseg.stores.mesh_vertices import MeshVertices


def test_append_grows_and_returns_indices():
    mv = MeshVertices(capacity=2)
    r1 = mv.append(np.ones((3, 3)), np.full((3, 3), 7))
    r2 = mv.append(np.zeros((4, 3)))
    assert list(r1) == [0, 1, 2]
    assert list(r2) == [3, 4, 5, 6]
    assert len(mv) == 7
    assert mv.stats()["capacity"] >= 7
    np.testing.assert_array_equal(mv.positions[:3], np.ones((3, 3)))
    assert mv.color(1) == (7, 7, 7)
    assert mv.color(5) == (0, 0, 0)


def test_existing_rows_survive_growth():
    mv = MeshVertices(capacity=1)
    mv.append(np.array([[1.0, 2.0, 3.0]]))
    for _ in range(10):
        mv.append(np.random.default_rng(0).normal(size=(5, 3)))
    np.testing.assert_array_equal(mv.position(0), [1, 2, 3])
    assert len(mv) == 51


def test_views_are_read_only():
    mv = MeshVertices.from_arrays(np.zeros((2, 3)), np.zeros((2, 3)))
    with pytest.raises(ValueError):
        mv.positions[0, 0] = 5.0
    with pytest.raises(ValueError):
        mv.colors[0, 0] = 5


def test_length_mismatch():
    mv = MeshVertices()
    with pytest.raises(ValueError):
        mv.append(np.zeros((2, 3)), np.zeros((3, 3)))
    assert len(mv) == 0


def test_dtypes():
    mv = MeshVertices.from_arrays(np.zeros((2, 3), dtype=np.float64), np.zeros((2, 3), dtype=np.int32))
    assert mv.positions.dtype == np.float32
    assert mv.colors.dtype == np.uint8
