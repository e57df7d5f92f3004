import pytest

from meshseg.stores.scene_graph import SceneGraph


def test_emplace_and_get():
    g = SceneGraph()
    assert g.emplace_node("OBJECTS", 1, {"name": "a"})
    assert not g.emplace_node("OBJECTS", 1, {"name": "b"})
    assert g.has_node(1) and 1 in g
    assert g.get_node(1).attributes == {"name": "a"}
    assert g.get_node(2) is None


def test_unknown_layer():
    with pytest.raises(ValueError):
        SceneGraph().emplace_node("ROOMS", 1, None)


def test_mesh_edges_cumulative():
    g = SceneGraph()
    g.emplace_node("OBJECTS", 1, None)
    assert g.insert_mesh_edge(1, 5)
    assert g.insert_mesh_edge(1, 5)
    assert g.insert_mesh_edge(1, 6)
    assert not g.insert_mesh_edge(2, 6)
    assert g.mesh_edges(1) == {5, 6}
    assert g.stats()["mesh_edges"] == 2


def test_parent_relation():
    g = SceneGraph()
    g.emplace_node("PLACES", 10, None)
    g.emplace_node("PLACES", 11, None)
    g.emplace_node("OBJECTS", 1, None)
    assert not g.has_parent(1)
    assert g.insert_edge(10, 1)
    assert g.has_parent(1)
    assert g.insert_edge(11, 1)
    assert g.get_node(1).parent == 11
    assert 1 not in g.get_node(10).children
    assert not g.insert_edge(1, 1)
    assert not g.insert_edge(99, 1)


def test_remove_node_cleans_up():
    g = SceneGraph()
    g.emplace_node("PLACES", 10, None)
    g.emplace_node("OBJECTS", 1, None)
    g.insert_edge(10, 1)
    g.insert_mesh_edge(1, 3)

    assert g.remove_node(1)
    assert not g.remove_node(1)
    assert g.mesh_edges(1) == set()
    assert g.get_node(10).children == set()

    g.emplace_node("OBJECTS", 2, None)
    g.insert_edge(10, 2)
    g.remove_node(10)
    assert not g.has_parent(2)


def test_layers_and_stats():
    g = SceneGraph()
    g.emplace_node("PLACES", 10, None)
    g.emplace_node("OBJECTS", 1, None)
    g.emplace_node("OBJECTS", 2, None)
    assert g.num_nodes("OBJECTS") == 2
    assert g.num_nodes() == 3
    assert g.stats() == {"objects": 2, "places": 1, "mesh_edges": 0}
    assert sorted(n.id for n in g) == [1, 2, 10]
    g.clear()
    assert g.num_nodes() == 0
