"""
ReconstructionEngine - the ``assemble`` entry point

Sequences compression, edge engineering, placement, gap and conclusion
analysis and readiness scoring for one case. The Picture is built once, at
the end, from the finished stage outputs.
"""

import logging
import time
from typing import Optional, Sequence

from jigsaw_server.config.settings import Settings, settings
from jigsaw_server.models.evidence import CaseType, Fragment
from jigsaw_server.models.picture import AssemblyResult, AssemblyStats, Picture
from jigsaw_server.services import fingerprints
from jigsaw_server.services.assembly.assembler import Assembler
from jigsaw_server.services.assembly.compressor import ComponentCompressor
from jigsaw_server.services.assembly.edge_engineer import EdgeEngineer
from jigsaw_server.services.assembly.gap_analyzer import ConclusionAnalyzer, GapAnalyzer, build_narrative
from jigsaw_server.services.assembly.readiness import (
    ReadinessScorer,
    picture_next_steps,
    picture_recommendations,
)
from jigsaw_server.services.errors import MalformedInputError
from jigsaw_server.services.identity import Clock, IdentifierSource, utc_now

logger = logging.getLogger(__name__)


class ReconstructionEngine:
    """Builds a Picture from verified fragments; one instance per pipeline."""

    def __init__(
        self,
        identifiers: Optional[IdentifierSource] = None,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
        compressor: Optional[ComponentCompressor] = None,
        edge_engineer: Optional[EdgeEngineer] = None,
        assembler: Optional[Assembler] = None,
        gap_analyzer: Optional[GapAnalyzer] = None,
        conclusion_analyzer: Optional[ConclusionAnalyzer] = None,
        readiness_scorer: Optional[ReadinessScorer] = None,
    ):
        self.identifiers = identifiers or IdentifierSource()
        self.clock = clock or utc_now
        self.config = config or settings
        self.compressor = compressor or ComponentCompressor(self.identifiers, self.clock, self.config)
        self.edge_engineer = edge_engineer or EdgeEngineer()
        self.assembler = assembler or Assembler(self.config)
        self.gap_analyzer = gap_analyzer or GapAnalyzer(self.identifiers)
        self.conclusion_analyzer = conclusion_analyzer or ConclusionAnalyzer(self.identifiers)
        self.readiness_scorer = readiness_scorer or ReadinessScorer()

        logger.info("ReconstructionEngine initialized")

    def assemble(
        self,
        fragments: Sequence[Fragment],
        case_id: str,
        case_type: CaseType,
        title: str,
    ) -> AssemblyResult:
        """
        Reconstruct the picture for one case.

        Raises:
            MalformedInputError: empty case id or duplicate fragment ids
        """
        start_time = time.time()
        if not case_id or not case_id.strip():
            raise MalformedInputError("case_id is required")
        fragment_ids = [fragment.id for fragment in fragments]
        if len(set(fragment_ids)) != len(fragment_ids):
            raise MalformedInputError("Duplicate fragment ids in batch")

        logger.info(f"Assembling case {case_id} from {len(fragments)} fragments")

        components = self.compressor.compress_all(fragments)
        components = self.edge_engineer.engineer(components)
        placement = self.assembler.assemble(components)

        placed = placement.placed_components
        excluded_ids = set(placement.unplaced_ids) | set(placement.unplaceable_ids)
        excluded = [component for component in placement.components if component.id in excluded_ids]
        completion = placement.completion_percentage

        gaps = self.gap_analyzer.find_gaps(placed)
        conclusions = self.conclusion_analyzer.draw(placed, excluded, gaps, completion)
        readiness = self.readiness_scorer.score(placed, completion, conclusions, gaps)
        narrative = build_narrative(title, case_type, completion, conclusions, gaps, excluded)

        picture = Picture(
            id=self.identifiers.new_id("PIC"),
            case_id=case_id,
            case_type=case_type,
            title=title,
            components=placement.components,
            placed_component_ids=placement.placed_ids,
            unplaced_component_ids=placement.unplaced_ids,
            unplaceable_component_ids=placement.unplaceable_ids,
            completion_percentage=completion,
            gaps=gaps,
            conclusions=conclusions,
            narrative=narrative,
            court_ready=readiness.court_ready,
            human_review_required=readiness.human_review_required,
            court_readiness_score=readiness.court_readiness_score,
            hash="",
            created_at=self.clock(),
        )
        content = picture.model_dump(mode="json", exclude={"hash"})
        picture = picture.model_copy(update={"hash": fingerprints.sha256_hex(fingerprints.canonical_json(content))})

        stats = AssemblyStats(
            fragments_processed=len(fragments),
            components_created=len(components),
            components_placed=len(placement.placed_ids),
            components_unplaced=len(placement.unplaced_ids),
            components_unplaceable=len(placement.unplaceable_ids),
            gaps_identified=len(gaps),
            conclusions_drawn=len(conclusions),
            iterations_used=placement.iterations,
            iteration_budget=placement.budget,
            stopped_reason=placement.stopped_reason,
            court_readiness_score=readiness.court_readiness_score,
            human_review_required=readiness.human_review_required,
            recommendations=picture_recommendations(readiness, completion, gaps),
            next_steps=picture_next_steps(readiness, gaps),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )

        logger.info(
            f"Case {case_id}: {completion:.1f}% complete, {len(gaps)} gaps, "
            f"court readiness {readiness.court_readiness_score:.1f}"
        )
        return AssemblyResult(picture=picture, stats=stats)
