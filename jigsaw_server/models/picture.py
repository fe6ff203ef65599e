"""
Picture Models - Assembled structure, gaps, conclusions and assembly stats

A Picture is published once, at the end of an assembly run.
"""

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from .component import Component, ComponentShape, Direction, Edge, Position
from .evidence import CaseType


class ConclusionType(str, Enum):
    FINDING = "finding"
    INFERENCE = "inference"
    RECOMMENDATION = "recommendation"
    WARNING = "warning"
    CERTAINTY = "certainty"


class StoppedReason(str, Enum):
    """Why the placement loop ended"""
    COMPLETE = "complete"
    NO_PROGRESS = "no_progress"
    BUDGET_EXHAUSTED = "budget_exhausted"


class Gap(BaseModel):
    """Unmet edge requirement of a placed component"""

    model_config = {"frozen": True}

    id: str
    location: Position
    required_shape: ComponentShape
    required_edge: Edge
    possible_sources: List[str]
    priority: int = Field(..., ge=1, le=10)
    description: str
    source_component_id: str
    direction: Direction


class Conclusion(BaseModel):
    """Typed, scored statement drawn from the assembled structure"""

    model_config = {"frozen": True}

    id: str
    type: ConclusionType
    statement: str
    supporting_components: List[str] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=100.0)
    court_ready: bool
    human_verified: bool = False
    requires_human_verification: bool = False
    legal_implications: List[str] = Field(default_factory=list)


class Picture(BaseModel):
    """Immutable snapshot of one case reconstruction"""

    model_config = {"frozen": True}

    id: str
    case_id: str
    case_type: CaseType
    title: str
    components: List[Component]
    placed_component_ids: List[str] = Field(..., description="In placement order")
    unplaced_component_ids: List[str]
    unplaceable_component_ids: List[str]
    completion_percentage: float = Field(..., ge=0.0, le=100.0)
    gaps: List[Gap]
    conclusions: List[Conclusion]
    narrative: str
    court_ready: bool
    human_review_required: bool
    court_readiness_score: float = Field(..., ge=0.0, le=100.0)
    hash: str
    created_at: datetime

    def component(self, component_id: str) -> Component:
        for component in self.components:
            if component.id == component_id:
                return component
        raise KeyError(component_id)

    @property
    def placed_components(self) -> List[Component]:
        return [self.component(component_id) for component_id in self.placed_component_ids]

    @property
    def excluded_components(self) -> List[Component]:
        excluded = set(self.unplaced_component_ids) | set(self.unplaceable_component_ids)
        return [component for component in self.components if component.id in excluded]


class AssemblyStats(BaseModel):
    """Counters and derived text for one assembly run"""

    model_config = {"frozen": True}

    fragments_processed: int
    components_created: int
    components_placed: int
    components_unplaced: int
    components_unplaceable: int
    gaps_identified: int
    conclusions_drawn: int
    iterations_used: int
    iteration_budget: int
    stopped_reason: StoppedReason
    court_readiness_score: float
    human_review_required: bool
    recommendations: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)
    processing_time_ms: int


class AssemblyResult(BaseModel):
    """Result of the assemble entry point"""

    model_config = {"frozen": True}

    picture: Picture
    stats: AssemblyStats
