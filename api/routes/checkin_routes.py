"""Daily check-in endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette import status

from core import get_logger
from core.ratelimit import CHECKIN_LIMIT, READ_LIMIT, limiter
from core.wide_event import set_wide_event_fields
from rendering.checkin import (
    badge_catalog,
    button_label,
    celebrations,
    check_in_message,
    encouraging_message,
)
from schemas import (
    BadgesResponse,
    CalendarResponse,
    CheckInResponse,
    CheckInStatusResponse,
    GateResponse,
    GateStatus,
    RewardPreviewResponse,
    StreakState,
)
from services.checkin_errors import (
    AlreadyInFlightError,
    NotAllowedError,
    PersistenceFailureError,
)
from services.checkin_session import CheckInSession
from services.progress_service import (
    MAX_PREVIEW_DAYS,
    next_day_reward,
    next_rank_milestone,
    next_streak_milestone,
    rank_progress,
    streak_progress,
    upcoming_reward_preview,
    week_start,
    weekly_calendar,
)
from services.ranks_service import rank_for_attendance

logger = get_logger(__name__)

router = APIRouter(prefix="/api/checkin", tags=["checkin"])


def get_checkin_session(request: Request) -> CheckInSession:
    session: CheckInSession | None = getattr(request.app.state, "checkin_session", None)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Starting"
        )
    return session


Session = Annotated[CheckInSession, Depends(get_checkin_session)]


def _error_detail(message: str, state: StreakState | None) -> dict[str, Any]:
    return {
        "message": message,
        "state": state.model_dump(mode="json") if state is not None else None,
    }


@router.get("/status", response_model=CheckInStatusResponse)
@limiter.limit(READ_LIMIT)
async def checkin_status(request: Request, session: Session) -> CheckInStatusResponse:
    """Current streak, gate and next milestones for the check-in screen."""
    gate = session.evaluate_gate()
    state = session.state
    # A lapsed streak still shows its old value in state until the next check-in
    displayed_streak = 0 if gate.status == GateStatus.STREAK_BROKEN else state.current_streak

    set_wide_event_fields(gate_status=gate.status.value, current_streak=state.current_streak)

    return CheckInStatusResponse(
        state=state,
        displayed_streak=displayed_streak,
        gate=GateResponse(
            status=gate.status,
            can_check_in=gate.is_open and not session.in_flight,
            retry_after_seconds=gate.retry_after_seconds,
        ),
        current_rank=rank_for_attendance(state.connected_days),
        next_streak_milestone=next_streak_milestone(state),
        next_rank_milestone=next_rank_milestone(state),
        streak_progress=streak_progress(state),
        rank_progress=rank_progress(state),
        next_day_reward=next_day_reward(state),
        message=encouraging_message(displayed_streak),
        button_label=button_label(gate, in_flight=session.in_flight),
    )


@router.post(
    "",
    response_model=CheckInResponse,
    responses={
        409: {"description": "Cooldown active or a check-in is already in progress"},
        503: {"description": "Streak state could not be saved"},
    },
)
@limiter.limit(CHECKIN_LIMIT)
async def check_in(request: Request, session: Session) -> CheckInResponse:
    """Record today's check-in and return the rewards it earned."""
    try:
        result = await session.process_check_in()
    except NotAllowedError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=_error_detail(str(e), e.state),
            headers={"Retry-After": str(e.retry_after_seconds)},
        ) from e
    except AlreadyInFlightError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=_error_detail(str(e), e.state),
        ) from e
    except PersistenceFailureError as e:
        logger.error("checkin.persistence_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=_error_detail("Check-in could not be saved, please retry", e.state),
        ) from e

    return CheckInResponse(
        result=result,
        celebrations=celebrations(result),
        message=check_in_message(result),
    )


@router.get("/preview", response_model=RewardPreviewResponse)
@limiter.limit(READ_LIMIT)
async def reward_preview(
    request: Request,
    session: Session,
    count: Annotated[int, Query(ge=1, le=MAX_PREVIEW_DAYS)] = 7,
) -> RewardPreviewResponse:
    """Base rewards for the next ``count`` streak days."""
    return RewardPreviewResponse(
        rewards=list(upcoming_reward_preview(session.state, count))
    )


@router.get("/calendar", response_model=CalendarResponse)
@limiter.limit(READ_LIMIT)
async def calendar(request: Request, session: Session) -> CalendarResponse:
    today = session.now().date()
    return CalendarResponse(
        week_start=week_start(today),
        days=weekly_calendar(session.state, today),
    )


@router.get("/badges", response_model=BadgesResponse)
@limiter.limit(READ_LIMIT)
async def badges(request: Request, session: Session) -> BadgesResponse:
    return BadgesResponse(badges=badge_catalog(session.state))
