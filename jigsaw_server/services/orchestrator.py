"""
PipelineOrchestrator - verify, assemble and process entry points

``process`` runs verification and reconstruction for one case, then merges
the human-review obligations of both stages into a single priority-sorted
queue and derives readiness text from thresholds the stages already
computed. The CombinedResult is only returned once every stage has finished;
a cancelled run publishes nothing.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import List, Optional, Sequence

from jigsaw_server.config.settings import Settings, settings
from jigsaw_server.models.evidence import CaseContext, CaseType, Fragment, FragmentType, Jurisdiction, RawInput
from jigsaw_server.models.picture import AssemblyResult
from jigsaw_server.models.readiness import (
    CombinedAnalysis,
    CombinedResult,
    CourtReadinessAssessment,
    DocumentationStatus,
    EvidenceChainLink,
    JurisdictionCompliance,
    KeyFinding,
    Recommendation,
    RecommendationType,
    ReviewQueueItem,
    ReviewSource,
)
from jigsaw_server.models.verification import VerificationBatch
from jigsaw_server.services.assembly.engine import ReconstructionEngine
from jigsaw_server.services.errors import MalformedInputError
from jigsaw_server.services.identity import Clock, IdentifierSource, utc_now
from jigsaw_server.services.review_dispatch import ReviewDispatchError, ReviewDispatcher
from jigsaw_server.services.telemetry import TelemetryStore
from jigsaw_server.services.verification.verifier import FragmentVerifier

logger = logging.getLogger(__name__)

JURISDICTION_REQUIREMENTS = {
    Jurisdiction.IE: ["Garda evidence standards", "Irish court admissibility rules"],
    Jurisdiction.UK: ["Crown Prosecution Service guidelines", "UK evidence act compliance"],
    Jurisdiction.NI: ["PSNI evidence standards", "Northern Ireland court rules"],
    Jurisdiction.SC: ["Scottish court evidence requirements", "Procurator Fiscal standards"],
    Jurisdiction.WA: ["Welsh court procedures", "CPS Wales guidelines"],
    Jurisdiction.EN: ["English court evidence rules", "CPS England guidelines"],
    Jurisdiction.ES: ["Spanish court requirements", "EU evidence standards"],
    Jurisdiction.EU: ["European Court of Justice standards", "Cross-border evidence protocols"],
}
DEFAULT_REQUIREMENTS = ["Standard evidence requirements"]

HIGH_CONFIDENCE = 80.0
NEAR_COMPLETE = 90.0
EVIDENCE_PACKAGE_COMPLETION = 80.0
MANY_GAPS = 3


class PipelineOrchestrator:
    """
    Entry points of the reconstruction pipeline.

    One orchestrator may serve many cases; its engines keep no state
    between calls. Telemetry and review dispatch are optional collaborators.
    """

    def __init__(
        self,
        identifiers: Optional[IdentifierSource] = None,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
        verifier: Optional[FragmentVerifier] = None,
        engine: Optional[ReconstructionEngine] = None,
        telemetry: Optional[TelemetryStore] = None,
        dispatcher: Optional[ReviewDispatcher] = None,
    ):
        self.identifiers = identifiers or IdentifierSource()
        self.clock = clock or utc_now
        self.config = config or settings
        self.verifier = verifier or FragmentVerifier(self.identifiers, self.clock, config=self.config)
        self.engine = engine or ReconstructionEngine(self.identifiers, self.clock, self.config)
        self.telemetry = telemetry
        self.dispatcher = dispatcher

        logger.info("PipelineOrchestrator initialized")

    async def verify(self, inputs: Sequence[RawInput], context: CaseContext) -> VerificationBatch:
        return await self.verifier.verify(inputs, context)

    def assemble(
        self,
        fragments: Sequence[Fragment],
        case_id: str,
        case_type: CaseType,
        title: str,
    ) -> AssemblyResult:
        return self.engine.assemble(fragments, case_id, case_type, title)

    async def process(
        self,
        inputs: Sequence[RawInput],
        case_id: str,
        case_type: CaseType,
        title: str,
        context: CaseContext,
    ) -> CombinedResult:
        """
        Verify, reconstruct and assess one case.

        Raises:
            MalformedInputError: case id or type disagree with the context,
                or the batch itself is malformed
        """
        start_time = time.time()
        if case_id != context.case_id:
            raise MalformedInputError(f"case_id {case_id} does not match context case {context.case_id}")
        if case_type != context.case_type:
            raise MalformedInputError(f"case_type {case_type.value} does not match context {context.case_type.value}")

        verification = await self.verify(inputs, context)
        assembly = await asyncio.to_thread(self.assemble, verification.fragments, case_id, case_type, title)

        analysis = self._analysis(verification, assembly)
        queue = self._review_queue(verification, assembly)
        readiness = self._court_readiness(verification, assembly, analysis, queue, context)
        recommendations = self._recommendations(verification, assembly, readiness, queue)
        next_steps = self._next_steps(assembly, readiness, queue)

        dispatch_status = None
        if self.dispatcher is not None and queue:
            try:
                await self.dispatcher.dispatch(case_id, queue)
                dispatch_status = "sent"
            except ReviewDispatchError as e:
                logger.error(f"Review queue for case {case_id} not delivered: {e}")
                dispatch_status = "failed"

        if self.telemetry is not None:
            picture = assembly.picture
            self.telemetry.record_run(
                case_type=case_type.value,
                case_id=case_id,
                total_inputs=verification.summary.total_inputs,
                fragments_verified=verification.summary.verified,
                inputs_rejected=verification.summary.rejected,
                components_placed=len(picture.placed_component_ids),
                components_unplaceable=len(picture.unplaceable_component_ids),
                completion=picture.completion_percentage,
                court_ready=picture.court_ready,
            )

        logger.info(
            f"Processed case {case_id}: {len(queue)} review items, ready={readiness.is_ready}"
        )

        return CombinedResult(
            case_id=case_id,
            verification=verification,
            assembly=assembly,
            analysis=analysis,
            court_readiness=readiness,
            human_review_queue=queue,
            recommendations=recommendations,
            next_steps=next_steps,
            review_dispatch_status=dispatch_status,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )

    # ------------------------------------------------------------------
    # Combined views
    # ------------------------------------------------------------------

    def _analysis(self, verification: VerificationBatch, assembly: AssemblyResult) -> CombinedAnalysis:
        picture = assembly.picture
        fragments = {fragment.id: fragment for fragment in verification.fragments}
        confidences = [fragment.confidence for fragment in verification.fragments]

        chain = []
        for step, component in enumerate(picture.placed_components, start=1):
            fragment = fragments[component.fragment_id]
            chain.append(
                EvidenceChainLink(
                    step=step,
                    component_id=component.id,
                    fragment_id=fragment.id,
                    fragment_type=fragment.fragment_type.value,
                    verification_level=fragment.verification_level,
                    confidence=fragment.confidence,
                    weight=component.weight,
                )
            )

        findings = [
            KeyFinding(
                finding=(
                    f"{verification.summary.verified} of {verification.summary.total_inputs} "
                    "inputs passed verification"
                ),
                confidence=verification.summary.average_confidence,
                supporting_fragments=list(fragments),
                court_ready=False,
            )
        ]
        for conclusion in picture.conclusions:
            findings.append(
                KeyFinding(
                    finding=conclusion.statement,
                    confidence=conclusion.confidence,
                    supporting_fragments=[
                        picture.component(component_id).fragment_id
                        for component_id in conclusion.supporting_components
                    ],
                    court_ready=conclusion.court_ready,
                )
            )
        if picture.gaps:
            gap_sources = {gap.source_component_id for gap in picture.gaps}
            findings.append(
                KeyFinding(
                    finding=f"{len(picture.gaps)} unmet connections remain across {len(gap_sources)} placed components",
                    confidence=100.0,
                    supporting_fragments=[
                        component.fragment_id for component in picture.placed_components if component.id in gap_sources
                    ],
                    court_ready=False,
                )
            )

        return CombinedAnalysis(
            total_inputs=verification.summary.total_inputs,
            verified_fragments=verification.summary.verified,
            rejected_inputs=verification.summary.rejected,
            components_placed=len(picture.placed_component_ids),
            completion_percentage=picture.completion_percentage,
            average_fragment_confidence=sum(confidences) / len(confidences) if confidences else 0.0,
            key_findings=findings,
            evidence_chain=chain,
        )

    def _review_queue(self, verification: VerificationBatch, assembly: AssemblyResult) -> List[ReviewQueueItem]:
        items = [
            ReviewQueueItem(
                item_id=self.identifiers.new_id("REV"),
                source=ReviewSource.VERIFICATION,
                reason=f"Input {item.input_id}: {item.reason}",
                priority=item.priority,
                required_expertise=item.required_expertise,
                deadline=item.deadline,
            )
            for item in verification.human_review
        ]

        picture = assembly.picture
        if picture.human_review_required:
            items.append(
                ReviewQueueItem(
                    item_id=self.identifiers.new_id("REV"),
                    source=ReviewSource.ASSEMBLY,
                    reason=(
                        f"Reconstructed picture {picture.id} ({picture.completion_percentage:.1f}% complete) "
                        "requires human verification before legal use"
                    ),
                    priority=10,
                    required_expertise=["Senior Investigator", "Legal Counsel"],
                    deadline=self.clock() + timedelta(hours=72),
                )
            )

        # Stable: equal priorities keep verifier order, picture item last.
        return sorted(items, key=lambda item: item.priority, reverse=True)

    def _court_readiness(
        self,
        verification: VerificationBatch,
        assembly: AssemblyResult,
        analysis: CombinedAnalysis,
        queue: List[ReviewQueueItem],
        context: CaseContext,
    ) -> CourtReadinessAssessment:
        picture = assembly.picture
        stats = assembly.stats

        strengths = []
        if verification.summary.average_confidence >= HIGH_CONFIDENCE:
            strengths.append("High confidence evidence verification")
        if picture.completion_percentage >= NEAR_COMPLETE:
            strengths.append("Near-complete evidence picture")
        if any(conclusion.court_ready for conclusion in picture.conclusions):
            strengths.append("Court-ready conclusions available")

        weaknesses = []
        if verification.summary.rejected > verification.summary.verified:
            weaknesses.append("High rejection rate - evidence quality concerns")
        if stats.gaps_identified > MANY_GAPS:
            weaknesses.append("Multiple gaps in evidence picture")
        if verification.human_review:
            weaknesses.append("Pending human review items")
        if picture.unplaceable_component_ids or picture.unplaced_component_ids:
            weaknesses.append("Verified evidence excluded from the reconstruction")

        actions = []
        if picture.human_review_required:
            actions.append("Complete mandatory human review")
        if stats.gaps_identified > 0:
            actions.append("Address identified evidence gaps")
        if not picture.court_ready:
            actions.append("Achieve court-ready status")

        documentation = DocumentationStatus(
            evidence_package_ready=picture.completion_percentage >= EVIDENCE_PACKAGE_COMPLETION,
            chain_of_custody_complete=all(fragment.chain_of_custody for fragment in verification.fragments),
            witness_statements_verified=any(
                fragment.fragment_type == FragmentType.SURVIVOR_TESTIMONY for fragment in verification.fragments
            ),
            human_review_pending=bool(queue),
        )

        return CourtReadinessAssessment(
            is_ready=picture.court_ready and picture.court_readiness_score >= self.config.COURT_READY_SCORE_THRESHOLD,
            court_readiness_score=picture.court_readiness_score,
            strengths=strengths,
            weaknesses=weaknesses,
            required_actions=actions,
            jurisdiction_compliance=[
                JurisdictionCompliance(
                    jurisdiction=jurisdiction,
                    requirements=list(JURISDICTION_REQUIREMENTS.get(jurisdiction, DEFAULT_REQUIREMENTS)),
                )
                for jurisdiction in context.jurisdictions
            ],
            documentation_status=documentation,
        )

    def _recommendations(
        self,
        verification: VerificationBatch,
        assembly: AssemblyResult,
        readiness: CourtReadinessAssessment,
        queue: List[ReviewQueueItem],
    ) -> List[Recommendation]:
        now = self.clock()
        picture = assembly.picture
        recommendations = []

        if picture.gaps:
            recommendations.append(
                Recommendation(
                    id=self.identifiers.new_id("REC"),
                    type=RecommendationType.INVESTIGATION,
                    priority=9,
                    title="Address Evidence Gaps",
                    description=(
                        f"{len(picture.gaps)} gaps identified in the evidence picture "
                        "require additional investigation"
                    ),
                    action_items=[f"Investigate: {gap.description}" for gap in picture.gaps],
                    deadline=now + timedelta(days=7),
                )
            )

        if verification.rejections:
            recommendations.append(
                Recommendation(
                    id=self.identifiers.new_id("REC"),
                    type=RecommendationType.VERIFICATION,
                    priority=7,
                    title="Review Rejected Evidence",
                    description=(
                        f"{len(verification.rejections)} inputs were rejected - review for "
                        "re-submission with additional corroboration"
                    ),
                    action_items=[f"Review: {rejection.reason}" for rejection in verification.rejections[:5]],
                )
            )

        if queue:
            recommendations.append(
                Recommendation(
                    id=self.identifiers.new_id("REC"),
                    type=RecommendationType.HUMAN_REVIEW,
                    priority=10,
                    title="Complete Mandatory Human Review",
                    description=f"{len(queue)} items require human expert review",
                    action_items=["Assign to qualified reviewers", "Track review progress", "Document review decisions"],
                    deadline=now + timedelta(hours=72),
                )
            )

        if readiness.is_ready:
            recommendations.append(
                Recommendation(
                    id=self.identifiers.new_id("REC"),
                    type=RecommendationType.LEGAL,
                    priority=8,
                    title="Prepare Court Submission",
                    description="Evidence package is court-ready - proceed with legal counsel review",
                    action_items=[
                        "Generate court-ready documentation package",
                        "Schedule legal counsel review",
                        "Prepare witness statements",
                    ],
                    deadline=now + timedelta(days=14),
                )
            )

        if not readiness.documentation_status.evidence_package_ready:
            recommendations.append(
                Recommendation(
                    id=self.identifiers.new_id("REC"),
                    type=RecommendationType.DOCUMENTATION,
                    priority=6,
                    title="Complete Evidence Documentation",
                    description="Evidence package requires additional documentation before court submission",
                    action_items=[
                        "Complete chain of custody documentation",
                        "Verify all witness statements",
                        "Generate evidence index",
                    ],
                )
            )

        return sorted(recommendations, key=lambda recommendation: recommendation.priority, reverse=True)

    def _next_steps(
        self,
        assembly: AssemblyResult,
        readiness: CourtReadinessAssessment,
        queue: List[ReviewQueueItem],
    ) -> List[str]:
        steps = []
        if queue:
            steps.append(f"MANDATORY: Complete human review for {len(queue)} items")
        if assembly.picture.gaps:
            steps.append(f"Investigate {len(assembly.picture.gaps)} identified evidence gaps")
        if readiness.is_ready:
            steps.append("Generate court-ready documentation package")
            steps.append("Schedule legal counsel review")
            steps.append("Prepare for court filing")
        else:
            steps.append("Continue evidence gathering to achieve court readiness")
            steps.append("Re-run the pipeline when new evidence is available")
        return [f"{number}. {step}" for number, step in enumerate(steps, start=1)]
