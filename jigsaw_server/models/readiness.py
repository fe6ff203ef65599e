"""
Combined Result Models - Court readiness, review queue and recommendations

Produced by the orchestrator after verification and assembly have both
finished.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .evidence import Jurisdiction
from .picture import AssemblyResult
from .verification import VerificationBatch


class ReviewSource(str, Enum):
    VERIFICATION = "verification"
    ASSEMBLY = "assembly"


class ReviewQueueItem(BaseModel):
    """Entry in the merged human-review queue"""

    model_config = {"frozen": True}

    item_id: str
    source: ReviewSource
    reason: str
    priority: int = Field(..., ge=1, le=10)
    required_expertise: List[str]
    deadline: datetime
    status: str = "pending"


class RecommendationType(str, Enum):
    INVESTIGATION = "investigation"
    VERIFICATION = "verification"
    HUMAN_REVIEW = "human_review"
    LEGAL = "legal"
    DOCUMENTATION = "documentation"


class Recommendation(BaseModel):
    model_config = {"frozen": True}

    id: str
    type: RecommendationType
    priority: int = Field(..., ge=1, le=10)
    title: str
    description: str
    action_items: List[str]
    deadline: Optional[datetime] = None


class KeyFinding(BaseModel):
    model_config = {"frozen": True}

    finding: str
    confidence: float
    supporting_fragments: List[str] = Field(default_factory=list)
    court_ready: bool


class EvidenceChainLink(BaseModel):
    """Placed component traced back to its fragment"""

    model_config = {"frozen": True}

    step: int
    component_id: str
    fragment_id: str
    fragment_type: str
    verification_level: int
    confidence: float
    weight: float


class CombinedAnalysis(BaseModel):
    model_config = {"frozen": True}

    total_inputs: int
    verified_fragments: int
    rejected_inputs: int
    components_placed: int
    completion_percentage: float
    average_fragment_confidence: float
    key_findings: List[KeyFinding]
    evidence_chain: List[EvidenceChainLink]


class JurisdictionCompliance(BaseModel):
    model_config = {"frozen": True}

    jurisdiction: Jurisdiction
    requirements: List[str]


class DocumentationStatus(BaseModel):
    model_config = {"frozen": True}

    evidence_package_ready: bool
    chain_of_custody_complete: bool
    witness_statements_verified: bool
    human_review_pending: bool


class CourtReadinessAssessment(BaseModel):
    """Advisory readiness view; never blocks the run"""

    model_config = {"frozen": True}

    is_ready: bool
    court_readiness_score: float
    strengths: List[str]
    weaknesses: List[str]
    required_actions: List[str]
    jurisdiction_compliance: List[JurisdictionCompliance]
    documentation_status: DocumentationStatus


class CombinedResult(BaseModel):
    """Result of the process entry point"""

    model_config = {"frozen": True}

    case_id: str
    verification: VerificationBatch
    assembly: AssemblyResult
    analysis: CombinedAnalysis
    court_readiness: CourtReadinessAssessment
    human_review_queue: List[ReviewQueueItem] = Field(..., description="Sorted by descending priority")
    recommendations: List[Recommendation]
    next_steps: List[str]
    review_dispatch_status: Optional[str] = Field(
        None, description="'sent' or 'failed' when a review dispatcher is configured"
    )
    processing_time_ms: int
