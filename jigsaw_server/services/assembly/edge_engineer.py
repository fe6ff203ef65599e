"""
EdgeEngineer - directional edges and pairwise compatibility

Compatibility is a pure function of two shapes and a direction. The
engineer evaluates it for the whole batch at once as one boolean matrix per
direction (NumPy vectorization), so the O(n^2) pass stays cheap at a few
hundred components.
"""

import logging
from typing import Dict, List, Sequence

import numpy as np

from jigsaw_server.models.component import Component, ComponentShape, Direction, Edge, Topology
from jigsaw_server.services import fingerprints

logger = logging.getLogger(__name__)

DIRECTION_BONUS = {
    Direction.TEMPORAL: 20,
    Direction.CAUSAL: 25,
}

_TOPOLOGY_CODES = {topology: code for code, topology in enumerate(Topology)}


def edge_strength(shape: ComponentShape, direction: Direction) -> float:
    strength = 50 + DIRECTION_BONUS.get(direction, 0) + shape.complexity * 3
    if not shape.symmetry:
        strength += 10
    return float(min(100, strength))


def edge_pattern(component_id: str, direction: Direction, fingerprint: str) -> str:
    return fingerprints.md5_hex(f"{component_id}-{direction.value}-{fingerprint}")[:8]


def shapes_can_connect(first: ComponentShape, second: ComponentShape, direction: Direction) -> bool:
    """Whether ``second`` may sit next to ``first`` in ``direction``."""
    a, b = first.topology, second.topology
    if a == Topology.CORNER and b == Topology.EDGE:
        return True
    if a == Topology.EDGE and b == Topology.INTERIOR:
        return True
    if a == Topology.BRIDGE or b == Topology.BRIDGE:
        return True
    if a == Topology.KEYSTONE and second.complexity >= 7:
        return True
    if a == Topology.INTERIOR and b == Topology.INTERIOR:
        return True
    if direction == Direction.TEMPORAL:
        return True
    if direction == Direction.CAUSAL and abs(first.complexity - second.complexity) <= 2:
        return True
    return False


def compatibility_matrix(shapes: Sequence[ComponentShape], direction: Direction) -> np.ndarray:
    """
    Vectorized ``shapes_can_connect`` over all ordered pairs.

    Returns:
        (n, n) bool array; entry [i, j] is True when j may connect to i.
        The diagonal is always False.
    """
    n = len(shapes)
    if n == 0:
        return np.zeros((0, 0), dtype=bool)

    codes = np.array([_TOPOLOGY_CODES[shape.topology] for shape in shapes])
    complexity = np.array([shape.complexity for shape in shapes])
    row, col = codes[:, None], codes[None, :]

    def code(topology: Topology) -> int:
        return _TOPOLOGY_CODES[topology]

    matrix = (
        ((row == code(Topology.CORNER)) & (col == code(Topology.EDGE)))
        | ((row == code(Topology.EDGE)) & (col == code(Topology.INTERIOR)))
        | (row == code(Topology.BRIDGE))
        | (col == code(Topology.BRIDGE))
        | ((row == code(Topology.KEYSTONE)) & (complexity[None, :] >= 7))
        | ((row == code(Topology.INTERIOR)) & (col == code(Topology.INTERIOR)))
    )

    if direction == Direction.TEMPORAL:
        matrix = np.ones((n, n), dtype=bool)
    elif direction == Direction.CAUSAL:
        matrix = matrix | (np.abs(complexity[:, None] - complexity[None, :]) <= 2)

    np.fill_diagonal(matrix, False)
    return matrix


class EdgeEngineer:
    """Attaches six directional edges to every component of a batch."""

    def __init__(self):
        logger.info("EdgeEngineer initialized")

    def engineer(self, components: Sequence[Component]) -> List[Component]:
        """Return new components with edges; the inputs are left untouched."""

        ids = [component.id for component in components]
        shapes = [component.shape for component in components]
        matrices: Dict[Direction, np.ndarray] = {
            direction: compatibility_matrix(shapes, direction) for direction in Direction
        }

        engineered: List[Component] = []
        for index, component in enumerate(components):
            edges = []
            for direction in Direction:
                row = matrices[direction][index]
                edges.append(
                    Edge(
                        direction=direction,
                        pattern=edge_pattern(component.id, direction, component.shape.fingerprint),
                        strength=edge_strength(component.shape, direction),
                        compatible_with=[ids[j] for j in np.flatnonzero(row)],
                        incompatible_with=[ids[j] for j in np.flatnonzero(~row) if j != index],
                    )
                )
            engineered.append(component.model_copy(update={"edges": edges}))

        logger.debug(f"Engineered edges for {len(engineered)} components")
        return engineered
