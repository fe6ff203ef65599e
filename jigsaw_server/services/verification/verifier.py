"""
FragmentVerifier - staged verification of raw evidentiary inputs

Each input runs through reality, truth and necessity checks, is cross
referenced against its provenance and scanned for anomalies. Accepted
inputs become immutable Fragments; rejected inputs keep their full
reasoning for audit.

Batches are verified on a bounded worker pool. Fragment identifiers are
drawn in input order before dispatch so a seeded identifier source yields
the same ids on every run.
"""

import asyncio
import logging
import math
import time
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, List, Optional, Sequence

from jigsaw_server.config.settings import Settings, settings
from jigsaw_server.models.evidence import (
    SOURCE_TO_FRAGMENT_TYPE,
    CaseContext,
    CaseType,
    ChainOfCustodyEntry,
    Fragment,
    RawInput,
    SourceType,
)
from jigsaw_server.models.verification import (
    Anomaly,
    AnomalySeverity,
    AnomalyType,
    CrossReference,
    HumanReviewItem,
    RejectedInput,
    RejectionCategory,
    VerificationBatch,
    VerificationOutcome,
    VerificationReasoning,
    VerificationSummary,
)
from jigsaw_server.services import fingerprints
from jigsaw_server.services.errors import MalformedInputError
from jigsaw_server.services.identity import Clock, IdentifierSource, utc_now
from jigsaw_server.services.verification import checks
from jigsaw_server.services.verification.relevance import load_relevance_tables

logger = logging.getLogger(__name__)

VERIFIER_VERSION = "1.0.0"


class FragmentVerifier:
    """
    Verifies raw inputs for one case at a time.

    Holds no per-case state: every call reads only its arguments, the
    injected clock and the relevance tables loaded at construction.
    """

    def __init__(
        self,
        identifiers: Optional[IdentifierSource] = None,
        clock: Optional[Clock] = None,
        relevance_tables: Optional[Dict[CaseType, FrozenSet[SourceType]]] = None,
        config: Optional[Settings] = None,
    ):
        self.identifiers = identifiers or IdentifierSource()
        self.clock = clock or utc_now
        self.relevance_tables = relevance_tables if relevance_tables is not None else load_relevance_tables()
        self.config = config or settings
        self.engine_id = self.identifiers.new_id("VE")

        logger.info(f"FragmentVerifier initialized (workers={self.config.VERIFY_MAX_WORKERS})")

    # ------------------------------------------------------------------
    # Single input
    # ------------------------------------------------------------------

    def verify_input(
        self,
        raw: RawInput,
        context: CaseContext,
        fragment_id: Optional[str] = None,
    ) -> VerificationOutcome:
        """Verify one input against the case context."""

        now = self.clock()
        config = self.config

        reality = checks.reality_checks(raw, now, config)
        truth = checks.truth_checks(raw, context)
        necessity = checks.necessity_checks(raw, context, self.relevance_tables, now, config)
        references = checks.cross_references(raw, context)
        anomalies = checks.detect_anomalies(raw, reality, truth, now)

        real = checks.is_real(reality, config)
        truthful = checks.is_true(truth, config)
        needed = checks.is_needed(necessity, config)

        level = self._verification_level(reality, truth, references, anomalies)
        confidence = (
            checks.mean([check.confidence for check in reality]) * 0.3
            + checks.mean([check.confidence for check in truth]) * 0.3
            + checks.mean([check.relevance for check in necessity]) * 0.2
            + checks.mean([reference.match_score for reference in references]) * 0.2
        )
        confidence = min(100.0, max(0.0, confidence))

        reasons: List[str] = []
        category: Optional[RejectionCategory] = None
        if not real:
            reasons.append("Failed reality checks - evidence may not be genuine")
            category = category or RejectionCategory.NOT_REAL
        if not truthful:
            reasons.append("Failed truth verification - evidence may be false or misleading")
            category = category or RejectionCategory.NOT_TRUE
        if not needed:
            reasons.append("Not needed for this case - irrelevant information")
            category = category or RejectionCategory.NOT_NEEDED
        if confidence < config.ACCEPTANCE_CONFIDENCE_THRESHOLD:
            reasons.append(f"Confidence too low ({confidence:.1f}%) - insufficient verification")
            category = category or RejectionCategory.INSUFFICIENT_CONFIDENCE

        rejected = bool(reasons)
        rejection_reason = "; ".join(reasons) if rejected else None

        fragment = None
        if not rejected:
            fragment = self._create_fragment(
                raw,
                fragment_id or self.identifiers.new_id("TF"),
                level,
                confidence,
                now,
            )

        logger.debug(
            f"Input {raw.id}: level={level} confidence={confidence:.1f} "
            f"real={real} true={truthful} needed={needed} rejected={rejected}"
        )

        return VerificationOutcome(
            input_id=raw.id,
            is_real=real,
            is_true=truthful,
            is_needed=needed,
            verification_level=level,
            confidence=confidence,
            reasoning=VerificationReasoning(
                reality_checks=reality,
                truth_checks=truth,
                necessity_checks=necessity,
                cross_references=references,
                anomalies=anomalies,
                overall_assessment=self._assessment(level, confidence, anomalies, rejection_reason),
            ),
            fragment=fragment,
            rejected=rejected,
            rejection_reason=rejection_reason,
            rejection_category=category,
        )

    def _verification_level(
        self,
        reality,
        truth,
        references: List[CrossReference],
        anomalies: List[Anomaly],
    ) -> int:
        reality_ratio = sum(1 for check in reality if check.passed) / len(reality)
        truth_ratio = sum(1 for check in truth if check.passed) / len(truth)
        reference_score = checks.mean([reference.match_score for reference in references]) / 100

        level = 5 + reality_ratio * 2 + truth_ratio * 2 + reference_score
        level -= 2 * sum(1 for anomaly in anomalies if anomaly.severity == AnomalySeverity.CRITICAL)
        level -= sum(1 for anomaly in anomalies if anomaly.severity == AnomalySeverity.HIGH)

        # Half-up rounding, then clamp.
        return max(1, min(10, math.floor(level + 0.5)))

    def _assessment(
        self,
        level: int,
        confidence: float,
        anomalies: List[Anomaly],
        rejection_reason: Optional[str],
    ) -> str:
        if rejection_reason:
            text = f"REJECTED: {rejection_reason}"
        else:
            text = f"VERIFIED: Level {level}/10 with {confidence:.1f}% confidence"
        if anomalies:
            text += f". {len(anomalies)} anomal{'y' if len(anomalies) == 1 else 'ies'} detected"
        return text

    def _create_fragment(
        self,
        raw: RawInput,
        fragment_id: str,
        level: int,
        confidence: float,
        now: datetime,
    ) -> Fragment:
        custody = [
            ChainOfCustodyEntry(
                timestamp=record.timestamp,
                handler=record.handler,
                action=record.method,
                location=record.source,
                hash=fingerprints.sha256_hex(fingerprints.canonical_json(record)),
            )
            for record in raw.provenance
        ]
        custody.append(
            ChainOfCustodyEntry(
                timestamp=now,
                handler=f"FragmentVerifier/{VERIFIER_VERSION}",
                action="verification",
                location=self.engine_id,
                hash=fingerprints.sha256_hex(
                    fingerprints.canonical_json(
                        {"input_id": raw.id, "level": level, "confidence": confidence}
                    )
                ),
            )
        )

        return Fragment(
            id=fragment_id,
            input_id=raw.id,
            fragment_type=SOURCE_TO_FRAGMENT_TYPE[SourceType(raw.source_type)],
            content=raw.content,
            source=raw.source,
            verification_level=level,
            confidence=confidence,
            timestamp=raw.timestamp,
            jurisdiction=raw.jurisdiction,
            metadata=dict(raw.metadata),
            chain_of_custody=custody,
            is_real=True,
            is_true=True,
            is_needed=True,
        )

    # ------------------------------------------------------------------
    # Human review
    # ------------------------------------------------------------------

    def review_item(self, outcome: VerificationOutcome, now: datetime) -> Optional[HumanReviewItem]:
        """Review request for ``outcome``, or None when no review is triggered."""

        level = outcome.verification_level
        anomalies = outcome.reasoning.anomalies
        review_anomalies = [anomaly for anomaly in anomalies if anomaly.requires_human_review]
        if level < self.config.HUMAN_REVIEW_LEVEL and not review_anomalies:
            return None

        reasons = []
        if level >= self.config.HUMAN_REVIEW_LEVEL:
            reasons.append(f"Level {level} verification requires human confirmation")
        if review_anomalies:
            reasons.append("Anomalies detected: " + ", ".join(a.description for a in review_anomalies))

        priority = 5
        if level >= 9:
            priority = 10
        elif level >= 7:
            priority = 8
        priority += 2 * sum(1 for anomaly in anomalies if anomaly.severity == AnomalySeverity.CRITICAL)
        priority = min(10, priority)

        if priority >= 9:
            deadline = now + timedelta(hours=24)
        elif priority >= 7:
            deadline = now + timedelta(hours=72)
        else:
            deadline = now + timedelta(days=7)

        expertise = ["General Verification"]
        if any(anomaly.type == AnomalyType.DOCUMENTARY for anomaly in anomalies):
            expertise.append("Document Analysis")
        if any(anomaly.type == AnomalyType.TEMPORAL for anomaly in anomalies):
            expertise.append("Timeline Analysis")
        if level >= 9:
            expertise.append("Senior Investigator")

        return HumanReviewItem(
            input_id=outcome.input_id,
            reason="; ".join(reasons),
            priority=priority,
            required_expertise=expertise,
            deadline=deadline,
        )

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def verify(self, inputs: Sequence[RawInput], context: CaseContext) -> VerificationBatch:
        """
        Verify every input of a batch concurrently.

        Raises:
            MalformedInputError: duplicate input ids within the batch
        """

        start_time = time.time()
        seen = Counter(raw.id for raw in inputs)
        duplicates = sorted(input_id for input_id, count in seen.items() if count > 1)
        if duplicates:
            raise MalformedInputError(f"Duplicate input ids in batch: {', '.join(duplicates)}")

        logger.info(f"Verifying {len(inputs)} inputs for case {context.case_id}")

        fragment_ids = [self.identifiers.new_id("TF") for _ in inputs]
        semaphore = asyncio.Semaphore(max(1, self.config.VERIFY_MAX_WORKERS))

        async def run(raw: RawInput, fragment_id: str) -> VerificationOutcome:
            async with semaphore:
                return await asyncio.to_thread(self.verify_input, raw, context, fragment_id)

        outcomes: List[VerificationOutcome] = list(
            await asyncio.gather(*(run(raw, fid) for raw, fid in zip(inputs, fragment_ids)))
        )

        now = self.clock()
        fragments = [outcome.fragment for outcome in outcomes if outcome.fragment is not None]
        rejections = [
            RejectedInput(
                input_id=outcome.input_id,
                reason=outcome.rejection_reason or "",
                category=outcome.rejection_category,
                verification_level=outcome.verification_level,
                confidence=outcome.confidence,
                anomalies=outcome.reasoning.anomalies,
            )
            for outcome in outcomes
            if outcome.rejected
        ]
        review = [item for item in (self.review_item(outcome, now) for outcome in outcomes) if item is not None]

        distribution = {level: 0 for level in range(1, 11)}
        for outcome in outcomes:
            distribution[outcome.verification_level] += 1

        summary = VerificationSummary(
            total_inputs=len(outcomes),
            verified=len(fragments),
            rejected=len(rejections),
            pending_human_review=len(review),
            average_confidence=checks.mean([outcome.confidence for outcome in outcomes]),
            level_distribution=distribution,
        )

        signature = fingerprints.sha512_hex(
            fingerprints.canonical_json(
                {
                    "engine_id": self.engine_id,
                    "version": VERIFIER_VERSION,
                    "case_id": context.case_id,
                    "fragments": len(fragments),
                    "timestamp": now.isoformat(),
                }
            )
        )

        logger.info(
            f"Verification complete for case {context.case_id}: "
            f"{len(fragments)} accepted, {len(rejections)} rejected, {len(review)} for review"
        )

        return VerificationBatch(
            case_id=context.case_id,
            fragments=fragments,
            rejections=rejections,
            human_review=review,
            summary=summary,
            outcomes=outcomes,
            processing_time_ms=int((time.time() - start_time) * 1000),
            engine_signature=signature,
        )
