"""
Gap and conclusion analysis over an assembled structure.

A placed component's edge with a non-empty compatible set is satisfied only
when the cell next to it in that direction holds a placed component from
that set. Every unsatisfied edge is a Gap.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from jigsaw_server.models.component import Component, ComponentShape, Direction, Edge, Topology
from jigsaw_server.models.evidence import CaseType
from jigsaw_server.models.picture import Conclusion, ConclusionType, Gap
from jigsaw_server.services.identity import IdentifierSource

logger = logging.getLogger(__name__)

GAP_SOURCES = {
    Direction.TEMPORAL: ["Historical records", "Archives", "Witness testimony", "Digital timestamps"],
    Direction.CAUSAL: ["Financial records", "Communication logs", "Relationship mapping"],
}
DEFAULT_GAP_SOURCES = ["OSINT investigation", "Document analysis", "Witness interviews"]

CERTAINTY_COMPLETION = 90.0
FINDING_WEIGHT = 80.0
FINDING_MIN_COMPONENTS = 3


def _occupancy(placed: Sequence[Component]) -> Dict[Tuple[int, int, int], str]:
    return {component.position.coordinates: component.id for component in placed}


def edge_satisfied(
    component: Component,
    edge: Edge,
    occupied: Dict[Tuple[int, int, int], str],
) -> bool:
    neighbour = occupied.get(component.position.step(edge.direction, 0.0).coordinates)
    return neighbour is not None and neighbour in edge.compatible_with


class GapAnalyzer:
    """Finds unmet edge requirements of placed components."""

    def __init__(self, identifiers: Optional[IdentifierSource] = None):
        self.identifiers = identifiers or IdentifierSource()

    def find_gaps(self, placed: Sequence[Component]) -> List[Gap]:
        """Gaps in placement order, edges in canonical direction order."""

        occupied = _occupancy(placed)
        gaps: List[Gap] = []
        for component in placed:
            for edge in component.edges:
                if not edge.compatible_with or edge_satisfied(component, edge, occupied):
                    continue
                gaps.append(self._gap_for(component, edge))

        logger.debug(f"Found {len(gaps)} gaps across {len(placed)} placed components")
        return gaps

    def _gap_for(self, component: Component, edge: Edge) -> Gap:
        location = component.position.step(edge.direction, component.position.confidence)
        return Gap(
            id=self.identifiers.new_id("GAP"),
            location=location,
            required_shape=ComponentShape(
                topology=Topology.INTERIOR,
                complexity=component.shape.complexity,
                symmetry=False,
                fingerprint=f"NEEDED-{edge.direction.value}",
            ),
            required_edge=Edge(
                direction=edge.direction.opposite,
                pattern=edge.pattern,
                strength=edge.strength,
                compatible_with=[component.id],
            ),
            possible_sources=list(GAP_SOURCES.get(edge.direction, DEFAULT_GAP_SOURCES)),
            priority=max(1, min(10, math.ceil(component.weight / 10))),
            description=f"Missing {edge.direction.value} connection from component {component.id}",
            source_component_id=component.id,
            direction=edge.direction,
        )


class ConclusionAnalyzer:
    """Derives scored conclusions from completion, gaps and weights."""

    def __init__(self, identifiers: Optional[IdentifierSource] = None):
        self.identifiers = identifiers or IdentifierSource()

    def draw(
        self,
        placed: Sequence[Component],
        excluded: Sequence[Component],
        gaps: Sequence[Gap],
        completion: float,
    ) -> List[Conclusion]:
        conclusions: List[Conclusion] = []

        if completion >= CERTAINTY_COMPLETION:
            conclusions.append(
                Conclusion(
                    id=self.identifiers.new_id("CONC"),
                    type=ConclusionType.CERTAINTY,
                    statement="Picture is substantially complete. High confidence in reconstruction.",
                    supporting_components=[component.id for component in placed],
                    confidence=completion,
                    court_ready=True,
                    requires_human_verification=True,
                    legal_implications=["Evidence chain established", "Pattern of conduct demonstrated"],
                )
            )

        if gaps:
            conclusions.append(
                Conclusion(
                    id=self.identifiers.new_id("CONC"),
                    type=ConclusionType.RECOMMENDATION,
                    statement=f"{len(gaps)} gaps identified requiring additional investigation.",
                    confidence=100.0,
                    court_ready=False,
                    legal_implications=["Additional evidence needed", "Investigation incomplete"],
                )
            )

        heavy = [component for component in placed if component.weight >= FINDING_WEIGHT]
        if len(heavy) >= FINDING_MIN_COMPONENTS:
            conclusions.append(
                Conclusion(
                    id=self.identifiers.new_id("CONC"),
                    type=ConclusionType.FINDING,
                    statement="Multiple high-confidence evidence pieces corroborate the reconstruction.",
                    supporting_components=[component.id for component in heavy],
                    confidence=95.0,
                    court_ready=True,
                    requires_human_verification=True,
                    legal_implications=["Strong evidentiary foundation", "Multiple independent sources"],
                )
            )

        if excluded:
            conclusions.append(
                Conclusion(
                    id=self.identifiers.new_id("CONC"),
                    type=ConclusionType.WARNING,
                    statement=(
                        f"{len(excluded)} verified components could not be connected to the picture "
                        "and are excluded from the reconstruction."
                    ),
                    supporting_components=[component.id for component in excluded],
                    confidence=100.0,
                    court_ready=False,
                    legal_implications=["Excluded evidence must be disclosed", "Reconstruction may be incomplete"],
                )
            )

        return conclusions


def build_narrative(
    title: str,
    case_type: CaseType,
    completion: float,
    conclusions: Sequence[Conclusion],
    gaps: Sequence[Gap],
    excluded: Sequence[Component],
) -> str:
    """Deterministic plain-text account of the reconstruction."""

    parts = [
        f"RECONSTRUCTED TRUTH - Case: {title}",
        f"Case Type: {case_type.value}",
        f"Completion: {completion:.1f}%",
        "",
        "FINDINGS:",
    ]
    for conclusion in conclusions:
        parts.append(f"- [{conclusion.type.value.upper()}] {conclusion.statement}")
        parts.append(f"  Confidence: {conclusion.confidence:.1f}%")
        parts.append(f"  Court Ready: {'YES' if conclusion.court_ready else 'NO'}")

    if gaps:
        parts.append("")
        parts.append("GAPS REQUIRING INVESTIGATION:")
        for gap in gaps:
            parts.append(f"- Priority {gap.priority}: {gap.description}")
            parts.append(f"  Suggested sources: {', '.join(gap.possible_sources)}")

    if excluded:
        parts.append("")
        parts.append("EXCLUDED COMPONENTS:")
        for component in excluded:
            parts.append(
                f"- {component.id} ({component.fragment_type}, weight {component.weight:.1f}): "
                f"{component.placement_state.value}, no compatible free position"
            )

    return "\n".join(parts)
