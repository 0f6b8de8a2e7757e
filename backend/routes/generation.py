"""Generation API routes: async sessions with polling.

POST /api/generations
  → Validates the request, creates a session, returns { session_id, estimate } immediately.
  → The pipeline runs on the service's worker pool.

GET /api/generations
  → Recent sessions, newest first.

GET /api/generations/{session_id}
  → Status, aggregate progress and per-stage snapshots.

GET /api/generations/{session_id}/result
  → The generated artifact (409 while running, 422 when a mandatory stage failed).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from contentgen.config import get_settings
from contentgen.errors import NotReady, PipelineFailure, SessionNotFound
from contentgen.pipeline import GenerationService, LoggingReporter, build_registry, estimate
from contentgen.providers import get_gateway
from contentgen.schemas.models import (
    CostEstimate,
    GeneratedArtifact,
    GenerationRequest,
    SessionSnapshot,
    SessionSummary,
    Submission,
)
from contentgen.sessions import get_session_store

logger = logging.getLogger(__name__)
router = APIRouter()

_service: GenerationService | None = None


def get_service() -> GenerationService:
    """Return the process-wide generation service, built from settings on first use."""
    global _service
    if _service is None:
        settings = get_settings()
        _service = GenerationService(
            get_gateway(settings),
            store=get_session_store(),
            max_workers=settings.contentgen_max_workers,
            reporter=LoggingReporter(),
            registry=build_registry(settings.mandatory_stage_list),
            prices=settings.unit_prices,
            max_snapshots=settings.contentgen_snapshot_cache_size,
        )
    return _service


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class StageInfo(BaseModel):
    id: str
    name: str
    description: str
    optional: bool
    depends_on: list[str]
    capability: str | None
    weight: int


class CancelResponse(BaseModel):
    session_id: str
    cancelled: bool


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/stages", response_model=list[StageInfo], summary="List pipeline stages")
async def list_stages(service: GenerationService = Depends(get_service)):
    """Stages in execution order, with the deployment's mandatory set applied."""
    return [
        StageInfo(
            id=s.id,
            name=s.name,
            description=s.description,
            optional=s.optional,
            depends_on=sorted(s.depends_on),
            capability=s.capability,
            weight=s.weight,
        )
        for s in service.orchestrator.registry
    ]


@router.post("/estimate", response_model=CostEstimate, summary="Estimate generation cost")
async def estimate_cost(request: GenerationRequest, service: GenerationService = Depends(get_service)):
    orchestrator = service.orchestrator
    return estimate(request, orchestrator.prices, orchestrator.registry)


@router.post(
    "/generations",
    response_model=Submission,
    status_code=status.HTTP_201_CREATED,
    summary="Start article generation (async)",
    description=(
        "Creates a generation session and returns immediately with the cost estimate. "
        "Poll GET /api/generations/{session_id} for progress."
    ),
)
def create_generation(request: GenerationRequest, service: GenerationService = Depends(get_service)):
    return service.submit(request)


@router.get(
    "/generations",
    response_model=list[SessionSummary],
    summary="List recent generation sessions",
)
def list_generations(
    limit: int = Query(20, ge=1, le=100),
    service: GenerationService = Depends(get_service),
):
    return service.history(limit)


@router.get(
    "/generations/{session_id}",
    response_model=SessionSnapshot,
    summary="Get generation session status",
)
def get_generation(session_id: str, service: GenerationService = Depends(get_service)):
    try:
        return service.poll(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")


@router.get(
    "/generations/{session_id}/result",
    response_model=GeneratedArtifact,
    summary="Get the generated article",
)
def get_generation_result(session_id: str, service: GenerationService = Depends(get_service)):
    try:
        return service.result(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    except NotReady as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PipelineFailure as e:
        raise HTTPException(
            status_code=422,
            detail={"stage_id": e.stage_id, "message": e.message},
        )


@router.post(
    "/generations/{session_id}/cancel",
    response_model=CancelResponse,
    summary="Cancel a running generation",
)
def cancel_generation(session_id: str, service: GenerationService = Depends(get_service)):
    try:
        service.poll(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return CancelResponse(session_id=session_id, cancelled=service.cancel(session_id))
