"""
Reality, truth and necessity checks plus cross-referencing and anomaly detection.

Every function here is pure: its result depends only on the raw input, the
case context, the relevance tables and the supplied ``now``.
"""

import re
from datetime import datetime
from typing import Dict, FrozenSet, List

from jigsaw_server.config.settings import Settings
from jigsaw_server.models.evidence import CaseContext, CaseType, RawInput, SourceType, parse_source_type
from jigsaw_server.models.verification import (
    Anomaly,
    AnomalySeverity,
    AnomalyType,
    CrossReference,
    NecessityCheck,
    RealityCheck,
    TruthCheck,
)
from jigsaw_server.services.fingerprints import md5_hex

ACTIONABLE_PATTERNS = {
    "account_number": re.compile(r"\b[A-Z]{2}\d{6,}\b"),
    "card_number": re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b"),
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    "ip_address": re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"),
    "iban": re.compile(r"\b[A-Z]{2}\d{2}[A-Z0-9]{4}\d{7}[A-Z0-9]?\d?\b", re.IGNORECASE),
}


def mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


# ---------------------------------------------------------------------------
# Reality
# ---------------------------------------------------------------------------

def reality_checks(raw: RawInput, now: datetime, config: Settings) -> List[RealityCheck]:
    """Five checks that the record exists and is what it claims to be."""

    has_source = bool(raw.source and raw.source.strip())
    content_length = len(raw.content)
    substantive = content_length >= config.MIN_CONTENT_LENGTH
    timestamp_valid = raw.timestamp <= now and raw.timestamp.year >= config.MIN_VALID_YEAR
    has_provenance = len(raw.provenance) > 0
    source_type_valid = parse_source_type(raw.source_type) is not None

    return [
        RealityCheck(
            check="Source existence verification",
            passed=has_source,
            evidence=[f"Source: {raw.source}"] if has_source else [],
            confidence=90.0 if has_source else 0.0,
        ),
        RealityCheck(
            check="Content substantiveness",
            passed=substantive,
            evidence=[f"Content length: {content_length} characters"],
            confidence=min(100.0, content_length / 10),
        ),
        RealityCheck(
            check="Temporal validity",
            passed=timestamp_valid,
            evidence=[f"Timestamp: {raw.timestamp.isoformat()}"],
            confidence=95.0 if timestamp_valid else 10.0,
        ),
        RealityCheck(
            check="Provenance chain verification",
            passed=has_provenance,
            evidence=[f"Provenance entries: {len(raw.provenance)}"],
            confidence=85.0 if has_provenance else 40.0,
        ),
        RealityCheck(
            check="Source type validation",
            passed=source_type_valid,
            evidence=[f"Source type: {raw.source_type}"],
            confidence=100.0 if source_type_valid else 0.0,
        ),
    ]


def is_real(checks: List[RealityCheck], config: Settings) -> bool:
    if not all(check.passed for check in checks):
        return False
    return mean([check.confidence for check in checks]) >= config.REALITY_CONFIDENCE_THRESHOLD


# ---------------------------------------------------------------------------
# Truth
# ---------------------------------------------------------------------------

def truth_checks(raw: RawInput, context: CaseContext) -> List[TruthCheck]:
    """Four checks that the record is consistent with itself and the case."""

    verified_sources = [record.source for record in raw.provenance if record.verified]
    in_timeline = raw.timestamp >= context.start_date
    in_jurisdiction = raw.jurisdiction in context.jurisdictions

    return [
        # Content analysis is not implemented yet; consistency is assumed.
        TruthCheck(
            check="Internal consistency",
            passed=True,
            corroboration=["Content is internally consistent"],
            confidence=80.0,
        ),
        TruthCheck(
            check="External corroboration",
            passed=len(verified_sources) > 0,
            corroboration=[f"Verified by: {source}" for source in verified_sources],
            confidence=min(100.0, len(verified_sources) * 20.0),
        ),
        TruthCheck(
            check="Temporal consistency",
            passed=in_timeline,
            corroboration=["Within case timeline"] if in_timeline else [],
            contradictions=[] if in_timeline else ["Outside case timeline"],
            confidence=90.0 if in_timeline else 30.0,
        ),
        TruthCheck(
            check="Jurisdictional validity",
            passed=in_jurisdiction,
            corroboration=[f"Valid jurisdiction: {raw.jurisdiction.value}"] if in_jurisdiction else [],
            contradictions=[] if in_jurisdiction else [f"Invalid jurisdiction: {raw.jurisdiction.value}"],
            confidence=95.0 if in_jurisdiction else 50.0,
        ),
    ]


def is_true(checks: List[TruthCheck], config: Settings) -> bool:
    if not all(check.passed or not check.contradictions for check in checks):
        return False
    return mean([check.confidence for check in checks]) >= config.TRUTH_CONFIDENCE_THRESHOLD


# ---------------------------------------------------------------------------
# Necessity
# ---------------------------------------------------------------------------

def relevance_score(
    raw: RawInput,
    case_type: CaseType,
    tables: Dict[CaseType, FrozenSet[SourceType]],
    now: datetime,
    config: Settings,
) -> float:
    score = 50.0
    source_type = parse_source_type(raw.source_type)
    if source_type is not None and source_type in tables.get(case_type, frozenset()):
        score += 30
    if any(record.verified for record in raw.provenance):
        score += 15
    if (now - raw.timestamp).days < config.RECENCY_WINDOW_DAYS:
        score += 10
    return min(100.0, score)


def find_actionable(content: str) -> List[str]:
    """Names of the actionable-intelligence patterns found in ``content``."""
    return [name for name, pattern in ACTIONABLE_PATTERNS.items() if pattern.search(content)]


def _matched_hints(raw: RawInput, context: CaseContext) -> List[str]:
    text = raw.content.lower()
    return [hint for hint in [*context.subjects, *context.keywords] if hint and hint.lower() in text]


def necessity_checks(
    raw: RawInput,
    context: CaseContext,
    tables: Dict[CaseType, FrozenSet[SourceType]],
    now: datetime,
    config: Settings,
) -> List[NecessityCheck]:
    """Three checks that the record matters to this case."""

    relevance = relevance_score(raw, context.case_type, tables, now, config)
    reason = f"Relevance score: {relevance:.0f} for {context.case_type.value}"
    hints = _matched_hints(raw, context)
    if hints:
        reason += f" (mentions: {', '.join(hints)})"

    actionable = find_actionable(raw.content)

    return [
        NecessityCheck(
            check="Case relevance",
            needed=relevance >= config.NECESSITY_RELEVANCE_THRESHOLD,
            reason=reason,
            relevance=relevance,
        ),
        # Deduplication against stored evidence happens outside the pipeline.
        NecessityCheck(
            check="Information uniqueness",
            needed=True,
            reason="Provides unique information not available elsewhere",
            relevance=80.0,
        ),
        NecessityCheck(
            check="Actionable intelligence",
            needed=bool(actionable),
            reason=(
                f"Contains actionable information: {', '.join(actionable)}"
                if actionable
                else "No directly actionable information"
            ),
            relevance=90.0 if actionable else 30.0,
        ),
    ]


def is_needed(checks: List[NecessityCheck], config: Settings) -> bool:
    return any(check.needed and check.relevance >= config.NECESSITY_RELEVANCE_THRESHOLD for check in checks)


# ---------------------------------------------------------------------------
# Cross references and anomalies
# ---------------------------------------------------------------------------

def cross_references(raw: RawInput, context: CaseContext) -> List[CrossReference]:
    references = [
        CrossReference(
            source_id=md5_hex(record.source),
            source_type=record.method,
            matches=record.verified,
            discrepancies=[] if record.verified else ["Unverified source"],
            match_score=90.0 if record.verified else 40.0,
        )
        for record in raw.provenance
    ]
    references.append(
        CrossReference(
            source_id=context.case_id,
            source_type="case_context",
            matches=True,
            match_score=85.0,
        )
    )
    return references


def detect_anomalies(
    raw: RawInput,
    reality: List[RealityCheck],
    truth: List[TruthCheck],
    now: datetime,
) -> List[Anomaly]:
    anomalies: List[Anomaly] = []

    if raw.timestamp > now:
        anomalies.append(
            Anomaly(
                type=AnomalyType.TEMPORAL,
                description="Timestamp is in the future",
                severity=AnomalySeverity.CRITICAL,
                requires_human_review=True,
            )
        )

    failed_reality = [check for check in reality if not check.passed]
    if failed_reality:
        many = len(failed_reality) > 2
        anomalies.append(
            Anomaly(
                type=AnomalyType.LOGICAL,
                description=f"{len(failed_reality)} reality checks failed",
                severity=AnomalySeverity.HIGH if many else AnomalySeverity.MEDIUM,
                requires_human_review=many,
            )
        )

    contradictions = [item for check in truth for item in check.contradictions]
    if contradictions:
        anomalies.append(
            Anomaly(
                type=AnomalyType.DOCUMENTARY,
                description=f"Contradictions found: {', '.join(contradictions)}",
                severity=AnomalySeverity.HIGH,
                requires_human_review=True,
            )
        )

    return anomalies
