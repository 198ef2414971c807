"""Health check endpoints."""

from fastapi import APIRouter, HTTPException, Request
from starlette import status

from core.config import get_settings
from core.database import check_db_connection
from core.ratelimit import limiter
from core.telemetry import SERVICE_NAME
from schemas import DetailedHealthResponse, HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness endpoint. Never touches the database."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)


@router.get("/health/detailed", response_model=DetailedHealthResponse)
@limiter.limit("30/minute")
async def health_detailed(request: Request) -> DetailedHealthResponse:
    """Database reachability, cooldown profile and the live gate.

    Always returns 200; read the component fields for health.
    """
    database = await check_db_connection(request.app.state.engine)
    session = getattr(request.app.state, "checkin_session", None)
    profile = "fast" if get_settings().checkin_fast_mode else "production"

    if session is None:
        return DetailedHealthResponse(
            status="unhealthy",
            service=SERVICE_NAME,
            database=database,
            profile=profile,
            streak_loaded=False,
        )

    return DetailedHealthResponse(
        status="healthy" if database else "unhealthy",
        service=SERVICE_NAME,
        database=database,
        profile=profile,
        streak_loaded=True,
        gate_status=session.evaluate_gate().status,
        timer_pending=session.timer_pending,
        in_flight=session.in_flight,
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={
        503: {
            "description": "Init failed, streak not loaded or DB unreachable",
            "content": {
                "application/json": {"example": {"detail": "Database unavailable"}}
            },
        }
    },
)
@limiter.limit("30/minute")
async def ready(request: Request) -> HealthResponse:
    """Readiness endpoint.

    Returns 200 only when the streak state has been loaded and the database
    answers a trivial query.
    """
    init_error = getattr(request.app.state, "init_error", None)
    if init_error:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Initialization failed: {init_error}",
        )

    if not getattr(request.app.state, "init_done", False):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Starting",
        )

    if getattr(request.app.state, "checkin_session", None) is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Streak state not loaded",
        )

    if not await check_db_connection(request.app.state.engine):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        )

    return HealthResponse(status="ready", service=SERVICE_NAME)
