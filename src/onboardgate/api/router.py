"""REST API router."""

from typing import Any, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from onboardgate import __version__
from onboardgate.api.deps import get_identity, get_registry, get_tracker, verify_api_key
from onboardgate.api.schemas import (
    CommitStepResponse,
    HealthResponse,
    MetricsResponse,
    ProgressResponse,
    SkipStepResponse,
    StepSchema,
    StepsResponse,
)
from onboardgate.auth.context import Identity
from onboardgate.engine import (
    ConflictError,
    InvalidPayloadError,
    InvalidStepError,
    OnboardGateError,
    ProgressTracker,
    StorageUnavailableError,
)
from onboardgate.models import Role
from onboardgate.observability.metrics import metrics
from onboardgate.registry import StepRegistry

router = APIRouter(prefix="/v1", dependencies=[Depends(verify_api_key)])

_ERROR_STATUS: dict[type[OnboardGateError], int] = {
    InvalidStepError: 404,
    InvalidPayloadError: 400,
    ConflictError: 409,
    StorageUnavailableError: 503,
}


def _raise_http(error: OnboardGateError) -> NoReturn:
    status_code = 500
    for error_type, code in _ERROR_STATUS.items():
        if isinstance(error, error_type):
            status_code = code
            break
    raise HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message},
    )


def _require_role(identity: Identity) -> Role:
    if identity.role is None:
        raise HTTPException(status_code=400, detail="Missing X-User-Role header")
    return identity.role


# ============================================================================
# Health & Metrics
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics():
    """Snapshot of in-process counters and timings."""
    return MetricsResponse(**metrics.snapshot())


# ============================================================================
# Onboarding
# ============================================================================


@router.get("/onboarding/steps", response_model=StepsResponse)
async def list_steps(
    role: Optional[Role] = Query(None),
    identity: Identity = Depends(get_identity),
    registry: StepRegistry = Depends(get_registry),
):
    """List the ordered steps of a role's flow (defaults to the caller's role)."""
    role = role or _require_role(identity)

    try:
        steps = registry.steps(role)
    except InvalidStepError as e:
        _raise_http(e)

    return StepsResponse(role=role.value, steps=[StepSchema.from_definition(s) for s in steps])


@router.get("/onboarding/progress", response_model=ProgressResponse)
async def get_progress(
    identity: Identity = Depends(get_identity),
    tracker: ProgressTracker = Depends(get_tracker),
):
    """Get the caller's onboarding progress (created on first access)."""
    try:
        record = await tracker.get_progress(identity.user_id)
    except OnboardGateError as e:
        _raise_http(e)

    return ProgressResponse.from_record(record)


@router.post("/onboarding/steps/{step}", response_model=CommitStepResponse)
async def commit_step(
    step: str,
    payload: Any = Body(None),
    identity: Identity = Depends(get_identity),
    tracker: ProgressTracker = Depends(get_tracker),
):
    """
    Save a step's validated form data.

    step is the step order (1-based) or its id, e.g. "personal". The body is
    stored as-is; field validation happens in the form layer.
    """
    role = _require_role(identity)

    try:
        result = await tracker.commit_step_by_ref(identity.user_id, role, step, payload)
    except OnboardGateError as e:
        _raise_http(e)

    return CommitStepResponse.from_result(result)


@router.put("/onboarding/skip/{step}", response_model=SkipStepResponse)
async def skip_step(
    step: str,
    identity: Identity = Depends(get_identity),
    tracker: ProgressTracker = Depends(get_tracker),
):
    """Skip a step; it still counts as done and can be filled in later."""
    role = _require_role(identity)

    try:
        result = await tracker.skip_step_by_ref(identity.user_id, role, step)
    except OnboardGateError as e:
        _raise_http(e)

    return SkipStepResponse.from_result(result)
