"""
Verification Models - Check results, anomalies and per-input outcomes

A VerificationOutcome carries the full reasoning behind every accept or
reject decision so the audit trail survives for rejected inputs too.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .evidence import Fragment


class RejectionCategory(str, Enum):
    """Why an input was refused a Fragment"""
    NOT_REAL = "not_real"
    NOT_TRUE = "not_true"
    NOT_NEEDED = "not_needed"
    INSUFFICIENT_CONFIDENCE = "insufficient_confidence"


class AnomalyType(str, Enum):
    TEMPORAL = "temporal"
    LOGICAL = "logical"
    STATISTICAL = "statistical"
    BEHAVIORAL = "behavioral"
    DOCUMENTARY = "documentary"


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RealityCheck(BaseModel):
    """Result of one reality check"""

    model_config = {"frozen": True}

    check: str
    passed: bool
    evidence: List[str] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=100.0)


class TruthCheck(BaseModel):
    """Result of one truth check"""

    model_config = {"frozen": True}

    check: str
    passed: bool
    corroboration: List[str] = Field(default_factory=list)
    contradictions: List[str] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=100.0)


class NecessityCheck(BaseModel):
    """Result of one necessity check"""

    model_config = {"frozen": True}

    check: str
    needed: bool
    reason: str
    relevance: float = Field(..., ge=0.0, le=100.0)


class CrossReference(BaseModel):
    """Comparison of an input against one independent source"""

    model_config = {"frozen": True}

    source_id: str
    source_type: str
    matches: bool
    discrepancies: List[str] = Field(default_factory=list)
    match_score: float = Field(..., ge=0.0, le=100.0)


class Anomaly(BaseModel):
    """Irregularity detected while verifying an input"""

    model_config = {"frozen": True}

    type: AnomalyType
    description: str
    severity: AnomalySeverity
    requires_human_review: bool


class VerificationReasoning(BaseModel):
    """All individual check results behind an outcome"""

    model_config = {"frozen": True}

    reality_checks: List[RealityCheck]
    truth_checks: List[TruthCheck]
    necessity_checks: List[NecessityCheck]
    cross_references: List[CrossReference]
    anomalies: List[Anomaly]
    overall_assessment: str


class VerificationOutcome(BaseModel):
    """Per-input verification result"""

    model_config = {"frozen": True}

    input_id: str
    is_real: bool
    is_true: bool
    is_needed: bool
    verification_level: int = Field(..., ge=1, le=10)
    confidence: float = Field(..., ge=0.0, le=100.0)
    reasoning: VerificationReasoning
    fragment: Optional[Fragment] = Field(None, description="Present only when the input was accepted")
    rejected: bool
    rejection_reason: Optional[str] = None
    rejection_category: Optional[RejectionCategory] = None

    @property
    def requires_human_review(self) -> bool:
        return any(anomaly.requires_human_review for anomaly in self.reasoning.anomalies)


class RejectedInput(BaseModel):
    """Audit record for an input that did not become a Fragment"""

    model_config = {"frozen": True}

    input_id: str
    reason: str
    category: RejectionCategory
    verification_level: int
    confidence: float
    anomalies: List[Anomaly] = Field(default_factory=list)


class HumanReviewItem(BaseModel):
    """Verifier-level request for manual approval"""

    model_config = {"frozen": True}

    input_id: str
    reason: str
    priority: int = Field(..., ge=1, le=10)
    required_expertise: List[str]
    deadline: datetime


class VerificationSummary(BaseModel):
    """Batch-level counts and distributions"""

    model_config = {"frozen": True}

    total_inputs: int
    verified: int
    rejected: int
    pending_human_review: int
    average_confidence: float
    level_distribution: Dict[int, int]


class VerificationBatch(BaseModel):
    """
    Result of verifying a batch of inputs for one case.

    ``outcomes`` keeps the full per-input reasoning in input order.
    ``engine_signature`` is a provenance value and differs between runs.
    """

    model_config = {"frozen": True}

    case_id: str
    fragments: List[Fragment]
    rejections: List[RejectedInput]
    human_review: List[HumanReviewItem]
    summary: VerificationSummary
    outcomes: List[VerificationOutcome]
    processing_time_ms: int
    engine_signature: str
