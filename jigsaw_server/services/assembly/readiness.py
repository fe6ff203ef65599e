"""Court readiness scoring and picture-level guidance text."""

import logging
from dataclasses import dataclass
from typing import List, Sequence

from jigsaw_server.models.component import Component
from jigsaw_server.models.picture import Conclusion, ConclusionType, Gap

logger = logging.getLogger(__name__)

COURT_READY_COMPLETION = 80.0
HIGH_WEIGHT = 70.0
MIN_HIGH_WEIGHT_COMPONENTS = 3
HUMAN_REVIEW_COMPLETION = 95.0
HIGH_PRIORITY_GAP = 7


@dataclass(frozen=True)
class Readiness:
    court_ready: bool
    human_review_required: bool
    court_readiness_score: float
    court_ready_conclusions: int
    high_weight_placed: int


class ReadinessScorer:
    """Aggregates completion, conclusion quality and weight distribution."""

    def score(
        self,
        placed: Sequence[Component],
        completion: float,
        conclusions: Sequence[Conclusion],
        gaps: Sequence[Gap],
    ) -> Readiness:
        court_ready_conclusions = sum(1 for conclusion in conclusions if conclusion.court_ready)
        high_weight = sum(1 for component in placed if component.weight >= HIGH_WEIGHT)

        court_ready = (
            completion >= COURT_READY_COMPLETION
            and court_ready_conclusions >= 1
            and high_weight >= MIN_HIGH_WEIGHT_COMPONENTS
        )
        human_review = (
            any(conclusion.type == ConclusionType.CERTAINTY for conclusion in conclusions)
            or completion >= HUMAN_REVIEW_COMPLETION
        )

        score = completion / 100 * 40
        score += court_ready_conclusions / max(1, len(conclusions)) * 30
        score += high_weight / max(1, len(placed)) * 20
        if not gaps:
            score += 10

        return Readiness(
            court_ready=court_ready,
            human_review_required=human_review,
            court_readiness_score=min(100.0, score),
            court_ready_conclusions=court_ready_conclusions,
            high_weight_placed=high_weight,
        )


def picture_recommendations(readiness: Readiness, completion: float, gaps: Sequence[Gap]) -> List[str]:
    recommendations = []
    if completion < COURT_READY_COMPLETION:
        recommendations.append("Continue investigation to gather additional evidence fragments")
    if gaps:
        recommendations.append(f"Address {len(gaps)} identified gaps before proceeding to court")
    if readiness.human_review_required:
        recommendations.append("MANDATORY: Human review required before any legal action")
    if readiness.court_ready:
        recommendations.append("Picture is court-ready - proceed with legal counsel review")
    else:
        recommendations.append("Picture not yet court-ready - additional verification needed")
    return recommendations


def picture_next_steps(readiness: Readiness, gaps: Sequence[Gap]) -> List[str]:
    steps = []
    high_priority = [gap for gap in gaps if gap.priority >= HIGH_PRIORITY_GAP]
    if high_priority:
        steps.append(f"Investigate {len(high_priority)} high-priority gaps")
    if readiness.human_review_required:
        steps.append("Submit for human expert review (Level 7+ verification)")
    if readiness.court_ready:
        steps.append("Generate court-ready documentation package")
        steps.append("Coordinate with legal counsel for filing")
    else:
        steps.append("Continue evidence gathering")
        steps.append("Re-run reconstruction when new fragments are available")
    return [f"{number}. {step}" for number, step in enumerate(steps, start=1)]
