"""Stats endpoints for pipeline telemetry."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import APIRouter

from jigsaw_server.models.evidence import CaseType
from jigsaw_server.services.telemetry import PipelineMetrics, get_telemetry_store

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/pipeline")
async def get_pipeline_metrics() -> Dict[str, Any]:
    """Expose per-case-type run telemetry for dashboards and tooling."""

    telemetry_store = get_telemetry_store()
    metrics_map = telemetry_store.get_all_metrics()

    case_types: List[Dict[str, Any]] = []
    for case_type in CaseType:
        metrics: PipelineMetrics = metrics_map.get(case_type.value, PipelineMetrics(case_type=case_type.value))
        case_types.append({
            "case_type": case_type.value,
            "total_runs": metrics.total_runs,
            "total_inputs": metrics.total_inputs,
            "fragments_verified": metrics.fragments_verified,
            "inputs_rejected": metrics.inputs_rejected,
            "acceptance_rate": metrics.acceptance_rate,
            "components_placed": metrics.components_placed,
            "components_unplaceable": metrics.components_unplaceable,
            "average_completion": metrics.average_completion,
            "court_ready_runs": metrics.court_ready_runs,
            "last_case_id": metrics.last_case_id,
            "last_updated": metrics.last_updated,
        })

    return {
        "case_types": case_types,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
