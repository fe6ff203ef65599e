"""
Jigsaw Server Models
Data models for evidence verification, component engineering and reconstruction
"""

# Evidence
from .evidence import (
    CaseContext,
    CaseType,
    ChainOfCustodyEntry,
    Fragment,
    FragmentType,
    Jurisdiction,
    ProvenanceRecord,
    RawInput,
    SourceType,
)

# Verification
from .verification import (
    Anomaly,
    AnomalySeverity,
    AnomalyType,
    HumanReviewItem,
    RejectedInput,
    RejectionCategory,
    VerificationBatch,
    VerificationOutcome,
    VerificationSummary,
)

# Components and pictures
from .component import (
    Component,
    ComponentLockedError,
    ComponentShape,
    Direction,
    Edge,
    PlacementState,
    Position,
    Topology,
)
from .picture import (
    AssemblyResult,
    AssemblyStats,
    Conclusion,
    ConclusionType,
    Gap,
    Picture,
    StoppedReason,
)

# Combined results
from .readiness import (
    CombinedResult,
    CourtReadinessAssessment,
    Recommendation,
    ReviewQueueItem,
)

__all__ = [
    # Evidence
    "CaseContext",
    "CaseType",
    "ChainOfCustodyEntry",
    "Fragment",
    "FragmentType",
    "Jurisdiction",
    "ProvenanceRecord",
    "RawInput",
    "SourceType",
    # Verification
    "Anomaly",
    "AnomalySeverity",
    "AnomalyType",
    "HumanReviewItem",
    "RejectedInput",
    "RejectionCategory",
    "VerificationBatch",
    "VerificationOutcome",
    "VerificationSummary",
    # Components
    "Component",
    "ComponentLockedError",
    "ComponentShape",
    "Direction",
    "Edge",
    "PlacementState",
    "Position",
    "Topology",
    # Pictures
    "AssemblyResult",
    "AssemblyStats",
    "Conclusion",
    "ConclusionType",
    "Gap",
    "Picture",
    "StoppedReason",
    # Combined
    "CombinedResult",
    "CourtReadinessAssessment",
    "Recommendation",
    "ReviewQueueItem",
]
