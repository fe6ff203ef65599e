"""
Pipeline API Routes - verify, assemble and process endpoints

Thin wrappers over PipelineOrchestrator. Request bodies are validated by
pydantic (422 on malformed records); batch-level problems map to 400.
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field
from typing import List, Optional
import asyncio
import logging

from jigsaw_server.config.settings import settings
from jigsaw_server.models.evidence import CaseContext, CaseType, Fragment, RawInput
from jigsaw_server.models.picture import AssemblyResult
from jigsaw_server.models.readiness import CombinedResult
from jigsaw_server.models.verification import VerificationBatch
from jigsaw_server.services.orchestrator import PipelineOrchestrator
from jigsaw_server.services.review_dispatch import ReviewDispatcher
from jigsaw_server.services.telemetry import get_telemetry_store

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/pipeline", tags=["pipeline"])

# Lazy initialization so importing the module does not touch Redis
_orchestrator: Optional[PipelineOrchestrator] = None


def get_orchestrator() -> PipelineOrchestrator:
    """Get or create the orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        dispatcher = ReviewDispatcher() if settings.REVIEW_DISPATCH_URL else None
        _orchestrator = PipelineOrchestrator(telemetry=get_telemetry_store(), dispatcher=dispatcher)
    return _orchestrator


async def close_orchestrator() -> None:
    """Release the orchestrator's outbound review client, if one was created."""
    global _orchestrator
    if _orchestrator is not None and _orchestrator.dispatcher is not None:
        await _orchestrator.dispatcher.aclose()
        logger.info("Review dispatcher closed")
    _orchestrator = None


class VerifyRequest(BaseModel):
    """Request model for the verify endpoint."""
    inputs: List[RawInput] = Field(..., description="Raw evidentiary records for one case")
    context: CaseContext


class AssembleRequest(BaseModel):
    """Request model for the assemble endpoint."""
    fragments: List[Fragment] = Field(..., description="Verified fragments")
    case_id: str = Field(..., min_length=1)
    case_type: CaseType
    title: str = Field(..., min_length=1, max_length=500)


class ProcessRequest(BaseModel):
    """Request model for the process endpoint."""
    inputs: List[RawInput]
    case_id: str = Field(..., min_length=1)
    case_type: CaseType
    title: str = Field(..., min_length=1, max_length=500)
    context: CaseContext


def _bad_request(e: ValueError) -> HTTPException:
    logger.warning(f"Invalid pipeline request: {e}")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _server_error(e: Exception, operation: str) -> HTTPException:
    logger.error(f"Pipeline {operation} error: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Internal server error during {operation}"
    )


@router.post("/verify", response_model=VerificationBatch, status_code=status.HTTP_200_OK)
async def verify_inputs(request: VerifyRequest) -> VerificationBatch:
    """
    Verify a batch of raw inputs against the case context.

    Raises:
        400: Duplicate input ids
        500: Internal processing error
    """
    try:
        return await get_orchestrator().verify(request.inputs, request.context)
    except ValueError as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error(e, "verification")


@router.post("/assemble", response_model=AssemblyResult, status_code=status.HTTP_200_OK)
async def assemble_fragments(request: AssembleRequest) -> AssemblyResult:
    """
    Reconstruct the picture from verified fragments.

    Raises:
        400: Duplicate fragment ids
        500: Internal processing error
    """
    try:
        return await asyncio.to_thread(
            get_orchestrator().assemble,
            request.fragments,
            request.case_id,
            request.case_type,
            request.title,
        )
    except ValueError as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error(e, "assembly")


@router.post("/process", response_model=CombinedResult, status_code=status.HTTP_200_OK)
async def process_case(request: ProcessRequest) -> CombinedResult:
    """
    Verify, reconstruct and assess a case in one call.

    Raises:
        400: Case id/type disagree with the context, or duplicate ids
        500: Internal processing error
    """
    try:
        return await get_orchestrator().process(
            request.inputs,
            request.case_id,
            request.case_type,
            request.title,
            request.context,
        )
    except ValueError as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error(e, "processing")
