"""
ComponentCompressor - maps reconstruction-eligible fragments 1:1 to components

Only fragments that are real, true, needed and verified at or above the
reconstruction level become components. This gate is stricter than
verifier acceptance.
"""

import json
import logging
import math
from typing import List, Optional, Sequence

from jigsaw_server.config.settings import Settings, settings
from jigsaw_server.models.component import Component, ComponentShape, Topology
from jigsaw_server.models.evidence import Fragment, FragmentType
from jigsaw_server.services import fingerprints
from jigsaw_server.services.identity import Clock, IdentifierSource, utc_now

logger = logging.getLogger(__name__)

TOPOLOGY_BY_TYPE = {
    FragmentType.TEMPORAL_MARKER: Topology.EDGE,
    FragmentType.LOCATION_DATA: Topology.CORNER,
    FragmentType.RELATIONSHIP_LINK: Topology.BRIDGE,
    FragmentType.FINANCIAL_TRACE: Topology.INTERIOR,
    FragmentType.SURVIVOR_TESTIMONY: Topology.KEYSTONE,
}

# Shapes flagged for higher mis-fit risk
SYMMETRIC_TYPES = frozenset({FragmentType.TEMPORAL_MARKER, FragmentType.LOCATION_DATA})

TYPE_WEIGHT_BONUS = {
    FragmentType.SURVIVOR_TESTIMONY: 20,
    FragmentType.PHYSICAL_EVIDENCE: 15,
    FragmentType.DOCUMENT_ARTIFACT: 10,
}


def shape_complexity(verification_level: int, confidence: float) -> int:
    return max(1, min(10, math.ceil((verification_level + confidence / 10) / 2)))


def shape_fingerprint(fragment: Fragment) -> str:
    """Deterministic content fingerprint: same fragment, same fingerprint."""
    return fingerprints.sha256_hex(
        f"{fragment.id}-{fragment.content}-{fragment.timestamp.isoformat()}"
    )[:16]


def component_weight(fragment: Fragment) -> float:
    weight = fragment.verification_level * 10 + fragment.confidence / 10
    weight += TYPE_WEIGHT_BONUS.get(fragment.fragment_type, 0)
    if fragment.chain_of_custody:
        weight += 5
    return max(0.0, min(100.0, weight))


class ComponentCompressor:
    """Engineers one Component per eligible Fragment."""

    def __init__(
        self,
        identifiers: Optional[IdentifierSource] = None,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
    ):
        self.identifiers = identifiers or IdentifierSource()
        self.clock = clock or utc_now
        self.config = config or settings
        self.engine_id = self.identifiers.new_id("CE")

        logger.info("ComponentCompressor initialized")

    def is_eligible(self, fragment: Fragment) -> bool:
        return (
            fragment.is_real
            and fragment.is_true
            and fragment.is_needed
            and fragment.verification_level >= self.config.RECONSTRUCTION_MIN_LEVEL
        )

    def shape_for(self, fragment: Fragment) -> ComponentShape:
        return ComponentShape(
            topology=TOPOLOGY_BY_TYPE.get(fragment.fragment_type, Topology.INTERIOR),
            complexity=shape_complexity(fragment.verification_level, fragment.confidence),
            symmetry=fragment.fragment_type in SYMMETRIC_TYPES,
            fingerprint=shape_fingerprint(fragment),
        )

    def compress(self, fragment: Fragment) -> Component:
        """
        Build the component for one fragment.

        Raises:
            ValueError: fragment does not pass the reconstruction gate
        """
        if not self.is_eligible(fragment):
            raise ValueError(f"Fragment {fragment.id} is not eligible for reconstruction")

        shape = self.shape_for(fragment)
        generated_at = self.clock().isoformat()
        fragment_json = fingerprints.canonical_json(fragment)
        shape_json = fingerprints.canonical_json(shape)

        integrity_hash = fingerprints.sha256_hex(
            json.dumps({"fragment": fragment_json, "shape": shape_json, "generated_at": generated_at})
        )
        # Includes the engine instance id; never read by placement.
        provenance_signature = fingerprints.sha512_hex(
            f"{fragment.id}-{fragment.fragment_type.value}-{shape.fingerprint}-{self.engine_id}"
        )

        return Component(
            id=self.identifiers.new_id("JC"),
            fragment_id=fragment.id,
            fragment_type=fragment.fragment_type.value,
            shape=shape,
            weight=component_weight(fragment),
            hash=integrity_hash,
            provenance_signature=provenance_signature,
            compression_ratio=len(fragment_json) / len(shape_json),
        )

    def compress_all(self, fragments: Sequence[Fragment]) -> List[Component]:
        """Gate and compress a batch, preserving fragment order."""
        components = [self.compress(fragment) for fragment in fragments if self.is_eligible(fragment)]
        excluded = len(fragments) - len(components)
        if excluded:
            failed_checks = sum(
                1 for fragment in fragments
                if not (fragment.is_real and fragment.is_true and fragment.is_needed)
            )
            low_level = excluded - failed_checks
            logger.info(
                f"{excluded} fragments excluded at reconstruction gate: "
                f"{failed_checks} failed verification checks, "
                f"{low_level} below level {self.config.RECONSTRUCTION_MIN_LEVEL}"
            )
        return components
