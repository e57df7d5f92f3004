import numpy as np
import pytest

from meshseg.core.datamodel import Centroid, Cluster, NodeSymbol


class TestNodeSymbol:
    def test_value_and_label(self):
        s = NodeSymbol("O", 3)
        assert s.value == (ord("O") << 56) | 3
        assert s.label == "O(3)"
        assert str(s) == "O(3)"
        assert int(s) == s.value

    def test_round_trip(self):
        s = NodeSymbol("p", 12345)
        assert NodeSymbol.from_id(s.value) == s

    def test_next(self):
        s = NodeSymbol("O")
        assert s.next() == NodeSymbol("O", 1)
        assert s.next().next().value == NodeSymbol("O", 2).value

    def test_prefixes_do_not_collide(self):
        assert NodeSymbol("O", 0).value != NodeSymbol("p", 0).value

    def test_invalid(self):
        with pytest.raises(ValueError):
            NodeSymbol("OB", 0)
        with pytest.raises(ValueError):
            NodeSymbol("O", -1)


def test_centroid_accumulates():
    c = Centroid()
    assert c.get() is None
    c.add(np.array([[0, 0, 0], [2, 0, 0]]))
    c.add(np.array([4, 3, 0]))
    np.testing.assert_allclose(c.get(), [2, 1, 0])
    assert c.count == 3


def test_cluster_copies_points():
    pos = np.arange(12, dtype=np.float32).reshape(4, 3)
    cols = np.arange(12, dtype=np.uint8).reshape(4, 3)
    c = Cluster.from_vertices([3, 1], pos, cols)
    assert c.size == 2 and len(c) == 2
    np.testing.assert_array_equal(c.points, pos[[3, 1]])
    np.testing.assert_array_equal(c.colors[0], cols[3])
    pos[3] = -1
    assert c.points[0, 0] == 9
    assert not c.empty
