"""
Assembler - greedy weighted placement of components on the grid

Components are taken heaviest first. The first one anchors the origin; every
later one goes to the free neighbouring cell with the best
``edge.strength * weight / 100`` offered by an already placed component
whose edge lists it as compatible. A component with no candidate goes to the
back of the queue.

The loop stops when the queue empties, when a full pass over the queue places
nothing (the rest become ``unplaceable``), or when the hard iteration budget
runs out (the rest stay ``unplaced``). Placed components are locked and never
revisited.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Sequence, Set, Tuple

from jigsaw_server.config.settings import Settings, settings
from jigsaw_server.models.component import Component, Direction, PlacementState, Position
from jigsaw_server.models.picture import StoppedReason

logger = logging.getLogger(__name__)

ORIGIN_CONFIDENCE = 100.0
PLANAR_CONFIDENCE = 90.0
LAYERED_CONFIDENCE = 85.0


@dataclass
class Placement:
    """Outcome of one placement run."""

    components: List[Component]
    placed_ids: List[str] = field(default_factory=list)
    unplaced_ids: List[str] = field(default_factory=list)
    unplaceable_ids: List[str] = field(default_factory=list)
    iterations: int = 0
    budget: int = 0
    stopped_reason: StoppedReason = StoppedReason.COMPLETE

    @property
    def completion_percentage(self) -> float:
        if not self.components:
            return 0.0
        return len(self.placed_ids) / len(self.components) * 100

    @property
    def placed_components(self) -> List[Component]:
        by_id = {component.id: component for component in self.components}
        return [by_id[component_id] for component_id in self.placed_ids]


class Assembler:
    """Single-threaded greedy packer; owns its working state for one call only."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        logger.info(f"Assembler initialized (retry factor={self.config.ASSEMBLY_RETRY_FACTOR})")

    def assemble(self, components: Sequence[Component]) -> Placement:
        order = [component.id for component in components]
        by_id: Dict[str, Component] = {component.id: component for component in components}
        compatible: Dict[Tuple[str, Direction], Set[str]] = {
            (component.id, edge.direction): set(edge.compatible_with)
            for component in components
            for edge in component.edges
        }

        # sorted() is stable, so equal weights keep insertion order.
        queue: Deque[str] = deque(
            component.id for component in sorted(components, key=lambda c: c.weight, reverse=True)
        )
        placed: List[str] = []
        occupied: Dict[Tuple[int, int, int], str] = {}

        budget = len(components) * self.config.ASSEMBLY_RETRY_FACTOR
        iterations = 0
        misses = 0
        stopped_reason = StoppedReason.COMPLETE

        while queue:
            if misses >= len(queue):
                stopped_reason = StoppedReason.NO_PROGRESS
                break
            if iterations >= budget:
                stopped_reason = StoppedReason.BUDGET_EXHAUSTED
                break
            iterations += 1

            head_id = queue.popleft()
            head = by_id[head_id]
            if not placed:
                position: Optional[Position] = Position(x=0, y=0, z=0, confidence=ORIGIN_CONFIDENCE)
            else:
                position = self._best_position(head, placed, by_id, compatible, occupied)

            if position is None:
                queue.append(head_id)
                misses += 1
                continue

            by_id[head_id] = head.placed_at(position)
            placed.append(head_id)
            occupied[position.coordinates] = head_id
            misses = 0
            logger.debug(f"Placed {head_id} at {position.coordinates} (iteration {iterations})")

        leftover_state = (
            PlacementState.UNPLACEABLE if stopped_reason == StoppedReason.NO_PROGRESS else PlacementState.UNPLACED
        )
        for component_id in queue:
            by_id[component_id] = by_id[component_id].with_state(leftover_state)

        remaining = set(queue)
        leftovers = [component_id for component_id in order if component_id in remaining]
        placement = Placement(
            components=[by_id[component_id] for component_id in order],
            placed_ids=placed,
            unplaced_ids=leftovers if leftover_state == PlacementState.UNPLACED else [],
            unplaceable_ids=leftovers if leftover_state == PlacementState.UNPLACEABLE else [],
            iterations=iterations,
            budget=budget,
            stopped_reason=stopped_reason,
        )

        logger.info(
            f"Assembly placed {len(placed)}/{len(components)} components in {iterations} iterations "
            f"({stopped_reason.value})"
        )
        return placement

    def _best_position(
        self,
        head: Component,
        placed: List[str],
        by_id: Dict[str, Component],
        compatible: Dict[Tuple[str, Direction], Set[str]],
        occupied: Dict[Tuple[int, int, int], str],
    ) -> Optional[Position]:
        best: Optional[Position] = None
        best_score = -1.0

        for anchor_id in placed:
            anchor = by_id[anchor_id]
            for edge in anchor.edges:
                if head.id not in compatible.get((anchor_id, edge.direction), ()):
                    continue
                confidence = LAYERED_CONFIDENCE if edge.direction.is_layered else PLANAR_CONFIDENCE
                candidate = anchor.position.step(edge.direction, confidence)
                if candidate.coordinates in occupied:
                    continue
                score = edge.strength * (head.weight / 100)
                # Strict comparison: the first candidate wins ties.
                if score > best_score:
                    best, best_score = candidate, score

        return best
