"""
Component Models - Engineered, placeable units derived from fragments

Each Component maps 1:1 to a reconstruction-eligible Fragment. A Component
is locked when it is placed; a locked Component never moves again.
"""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class ComponentLockedError(RuntimeError):
    """Raised when a locked component is placed a second time."""


class Topology(str, Enum):
    """Structural role of a component"""
    CORNER = "corner"
    EDGE = "edge"
    INTERIOR = "interior"
    BRIDGE = "bridge"
    KEYSTONE = "keystone"


class Direction(str, Enum):
    """Canonical connection directions, in scan order"""
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    TEMPORAL = "temporal"
    CAUSAL = "causal"

    @property
    def offset(self) -> Tuple[int, int, int]:
        return _OFFSETS[self]

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]

    @property
    def is_layered(self) -> bool:
        """Temporal and causal directions move along z."""
        return self in (Direction.TEMPORAL, Direction.CAUSAL)


_OFFSETS = {
    Direction.NORTH: (0, 1, 0),
    Direction.SOUTH: (0, -1, 0),
    Direction.EAST: (1, 0, 0),
    Direction.WEST: (-1, 0, 0),
    Direction.TEMPORAL: (0, 0, 1),
    Direction.CAUSAL: (0, 0, -1),
}

_OPPOSITES = {
    Direction.NORTH: Direction.SOUTH,
    Direction.SOUTH: Direction.NORTH,
    Direction.EAST: Direction.WEST,
    Direction.WEST: Direction.EAST,
    Direction.TEMPORAL: Direction.TEMPORAL,
    Direction.CAUSAL: Direction.CAUSAL,
}


class PlacementState(str, Enum):
    UNPLACED = "unplaced"
    PLACED = "placed"
    UNPLACEABLE = "unplaceable"


class ComponentShape(BaseModel):
    """Topology, complexity and content fingerprint of a component"""

    model_config = {"frozen": True}

    topology: Topology
    complexity: int = Field(..., ge=1, le=10)
    symmetry: bool = Field(..., description="True for shapes at higher risk of mis-fit")
    fingerprint: str = Field(..., description="Deterministic content fingerprint")


class Edge(BaseModel):
    """Directional connector with precomputed compatibility"""

    model_config = {"frozen": True}

    direction: Direction
    pattern: str
    strength: float = Field(..., ge=0.0, le=100.0)
    compatible_with: List[str] = Field(default_factory=list)
    incompatible_with: List[str] = Field(default_factory=list)


class Position(BaseModel):
    """Integer grid coordinate; z encodes temporal/causal layering"""

    model_config = {"frozen": True}

    x: int
    y: int
    z: int
    confidence: float = Field(..., ge=0.0, le=100.0)

    @property
    def coordinates(self) -> Tuple[int, int, int]:
        return (self.x, self.y, self.z)

    def step(self, direction: Direction, confidence: float) -> "Position":
        dx, dy, dz = direction.offset
        return Position(x=self.x + dx, y=self.y + dy, z=self.z + dz, confidence=confidence)


class Component(BaseModel):
    """
    Compressed, engineered representation of exactly one Fragment.

    ``provenance_signature`` includes the engine instance id and is for
    tamper evidence only; placement and compatibility read ``shape`` and
    ``weight``.
    """

    model_config = {"frozen": True}

    id: str
    fragment_id: str
    fragment_type: str
    shape: ComponentShape
    weight: float = Field(..., ge=0.0, le=100.0)
    edges: List[Edge] = Field(default_factory=list)
    position: Optional[Position] = None
    locked: bool = False
    placement_state: PlacementState = PlacementState.UNPLACED
    hash: str = Field(..., description="Integrity hash over fragment, shape and generation time")
    provenance_signature: str
    compression_ratio: float

    def edge(self, direction: Direction) -> Optional[Edge]:
        for edge in self.edges:
            if edge.direction == direction:
                return edge
        return None

    def placed_at(self, position: Position) -> "Component":
        """Return a locked copy at ``position``."""
        if self.locked:
            raise ComponentLockedError(f"Component {self.id} is locked at {self.position}")
        return self.model_copy(
            update={"position": position, "locked": True, "placement_state": PlacementState.PLACED}
        )

    def with_state(self, state: PlacementState) -> "Component":
        if self.locked:
            raise ComponentLockedError(f"Component {self.id} is locked at {self.position}")
        return self.model_copy(update={"placement_state": state})
