import itertools

import pytest

from jigsaw_server.models.component import ComponentShape, Direction, Topology
from jigsaw_server.services.assembly.edge_engineer import (
    EdgeEngineer,
    compatibility_matrix,
    edge_strength,
    shapes_can_connect,
)


def shape(topology, complexity=5, symmetry=False):
    return ComponentShape(topology=topology, complexity=complexity, symmetry=symmetry, fingerprint=topology.value)


@pytest.mark.parametrize(
    "complexity,symmetry,direction,expected",
    [
        (10, False, Direction.TEMPORAL, 100.0),
        (5, True, Direction.NORTH, 65.0),
        (5, False, Direction.CAUSAL, 100.0),
        (2, True, Direction.EAST, 56.0),
    ],
)
def test_edge_strength(complexity, symmetry, direction, expected):
    assert edge_strength(shape(Topology.INTERIOR, complexity, symmetry), direction) == expected


def test_connection_rules():
    corner, edge, interior = shape(Topology.CORNER), shape(Topology.EDGE), shape(Topology.INTERIOR)

    assert shapes_can_connect(corner, edge, Direction.NORTH)
    assert not shapes_can_connect(edge, corner, Direction.NORTH)
    assert shapes_can_connect(edge, interior, Direction.WEST)
    assert shapes_can_connect(shape(Topology.CORNER), shape(Topology.BRIDGE), Direction.SOUTH)
    assert shapes_can_connect(shape(Topology.KEYSTONE), shape(Topology.CORNER, 7), Direction.EAST)
    assert not shapes_can_connect(shape(Topology.KEYSTONE), shape(Topology.CORNER, 6), Direction.EAST)
    assert shapes_can_connect(edge, corner, Direction.TEMPORAL)
    assert shapes_can_connect(shape(Topology.EDGE, 3), shape(Topology.CORNER, 5), Direction.CAUSAL)
    assert not shapes_can_connect(shape(Topology.EDGE, 3), shape(Topology.CORNER, 6), Direction.CAUSAL)


def test_matrix_agrees_with_pairwise_rule():
    shapes = [
        shape(topology, complexity)
        for topology, complexity in itertools.product(Topology, (2, 7))
    ]

    for direction in Direction:
        matrix = compatibility_matrix(shapes, direction)
        assert matrix.shape == (len(shapes), len(shapes))
        for i, j in itertools.product(range(len(shapes)), repeat=2):
            expected = i != j and shapes_can_connect(shapes[i], shapes[j], direction)
            assert bool(matrix[i, j]) == expected, (direction, i, j)


def test_empty_batch():
    assert compatibility_matrix([], Direction.NORTH).shape == (0, 0)
    assert EdgeEngineer().engineer([]) == []


def test_engineer_returns_new_components(make_component):
    originals = [
        make_component("JC-a", topology=Topology.CORNER),
        make_component("JC-b", topology=Topology.EDGE),
        make_component("JC-c", topology=Topology.INTERIOR),
    ]
    originals = [component.model_copy(update={"edges": []}) for component in originals]

    engineered = EdgeEngineer().engineer(originals)

    assert all(component.edges == [] for component in originals)
    first = engineered[0]
    assert [edge.direction for edge in first.edges] == list(Direction)
    north = first.edge(Direction.NORTH)
    assert north.compatible_with == ["JC-b"]
    assert north.incompatible_with == ["JC-c"]
    assert first.edge(Direction.TEMPORAL).compatible_with == ["JC-b", "JC-c"]
    for component in engineered:
        for edge in component.edges:
            assert component.id not in edge.compatible_with
            assert component.id not in edge.incompatible_with
            assert len(edge.compatible_with) + len(edge.incompatible_with) == 2


def test_patterns_are_deterministic(make_component):
    components = [make_component("JC-a"), make_component("JC-b")]

    first = EdgeEngineer().engineer(components)
    second = EdgeEngineer().engineer(components)

    assert [e.pattern for e in first[0].edges] == [e.pattern for e in second[0].edges]
    assert len(first[0].edges[0].pattern) == 8
