"""
Survey Wizard API Endpoints.

JSON surface a browser front-end drives. One wizard per browser session,
identified by a cookie and kept in memory; nothing is persisted.

Sessions idle longer than ``session_expire_hours`` are dropped, and the
store never holds more than ``max_survey_sessions`` (least recently used
go first).

The session cookie is ``SameSite=Lax`` and CORS is configured without
credentials, so the browser only sends it back when the front-end is served
from the same origin as this API. A front-end on another origin still gets
correct answers from each call but starts a new session every time.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field

from .forms import get_form_options
from .state import (
    InvalidAnswerError,
    SessionMarker,
    SubmissionInProgressError,
    SurveyWizard,
    WizardFlowError,
)
from .submission import SubmissionClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/survey", tags=["survey"])

SESSION_COOKIE = "fine_survey_session"


# =============================================================================
# Session Store
# =============================================================================

def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SurveySession:
    """Everything kept for one browser session."""
    marker: SessionMarker = field(default_factory=SessionMarker)
    wizard: SurveyWizard | None = None
    last_active_at: datetime = field(default_factory=_utc_now)


# In-memory session store, least recently used first
sessions: dict[str, SurveySession] = {}


def is_session_expired(session: SurveySession, expire_hours: float) -> bool:
    """Check if the session has been idle beyond ``expire_hours``."""
    hours_since_active = (_utc_now() - session.last_active_at).total_seconds() / 3600
    return hours_since_active > expire_hours


def prune_sessions(expire_hours: float, max_sessions: int) -> None:
    """Drop expired sessions, then the oldest ones until there is room for one more."""
    expired = [sid for sid, s in sessions.items() if is_session_expired(s, expire_hours)]
    for sid in expired:
        del sessions[sid]

    evicted = 0
    while sessions and len(sessions) >= max_sessions:
        del sessions[next(iter(sessions))]
        evicted += 1

    if expired or evicted:
        logger.info(f"Pruned survey sessions: {len(expired)} expired, {evicted} evicted")


def get_survey_session(request: Request, response: Response) -> SurveySession:
    """Load the caller's session, starting a new one if needed."""
    from fine_survey.config import get_settings

    settings = get_settings()
    session_id = request.cookies.get(SESSION_COOKIE)
    session = sessions.get(session_id) if session_id else None

    if session is not None:
        if not is_session_expired(session, settings.session_expire_hours):
            # Move to the most recently used end
            sessions[session_id] = sessions.pop(session_id)
            session.last_active_at = _utc_now()
            return session
        del sessions[session_id]
        logger.info("Survey session expired, starting a new one")

    prune_sessions(settings.session_expire_hours, settings.max_survey_sessions)

    session_id = secrets.token_urlsafe(32)
    sessions[session_id] = SurveySession()
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        httponly=True,
        samesite="lax",
    )
    return sessions[session_id]


def get_wizard(
    session: SurveySession = Depends(get_survey_session),
) -> SurveyWizard:
    """The session's wizard, mounted on first use."""
    if session.wizard is None:
        from fine_survey.config import get_settings

        session.wizard = SurveyWizard.mount(
            session.marker,
            redirect_delay_seconds=get_settings().redirect_delay_seconds,
        )
    return session.wizard


def get_submission_client() -> SubmissionClient:
    """Client for the relay configured in settings."""
    from fine_survey.config import get_settings

    settings = get_settings()
    return SubmissionClient(settings.relay_base_url, timeout=settings.relay_timeout_seconds)


# =============================================================================
# Request/Response Models
# =============================================================================

class AnswersRequest(BaseModel):
    """Partial update of answers, keyed by wire (camelCase) or python name."""
    answers: dict[str, Any] = Field(default_factory=dict)


class ToggleRequest(BaseModel):
    """Check or uncheck one option of a multi-select question."""
    field: str
    option: str
    selected: bool = True


class StateResponse(BaseModel):
    """Current wizard state."""
    step: int
    step_name: str
    total_steps: int
    progress: float
    view: str
    submitted: bool
    submitting: bool
    requires_platform_feedback: bool
    answers: dict
    notifications: list[dict] = []


class StepResponse(BaseModel):
    """Response after a navigation attempt."""
    success: bool
    step: int
    step_name: str
    missing: list[str] = []
    notification: dict | None = None


class SubmitResponse(BaseModel):
    """Response after a submit attempt."""
    success: bool
    view: str
    notification: dict
    redirect_to: str | None = None
    redirect_delay_seconds: float = 0.0


def _state_response(wizard: SurveyWizard) -> StateResponse:
    notifications = [n.to_dict() for n in wizard.drain_notifications()]
    return StateResponse(**wizard.to_dict(), notifications=notifications)


def _closed(e: WizardFlowError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/options")
async def get_survey_options():
    """Option lists for every choice question."""
    return get_form_options()


@router.get("/state", response_model=StateResponse)
async def get_survey_state(
    return_to_intro: bool = False,
    wizard: SurveyWizard = Depends(get_wizard),
) -> StateResponse:
    """
    Enter (or re-enter) the survey.

    A session that already submitted is sent to the thank-you view unless
    ``return_to_intro`` is set.
    """
    wizard.reenter(return_to_intro=return_to_intro)
    return _state_response(wizard)


@router.patch("/answers", response_model=StateResponse)
async def update_answers(
    request: AnswersRequest,
    wizard: SurveyWizard = Depends(get_wizard),
) -> StateResponse:
    """Record answers without moving between steps."""
    try:
        wizard.update_many(request.answers)
    except InvalidAnswerError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except WizardFlowError as e:
        raise _closed(e)
    return _state_response(wizard)


@router.post("/answers/toggle", response_model=StateResponse)
async def toggle_answer(
    request: ToggleRequest,
    wizard: SurveyWizard = Depends(get_wizard),
) -> StateResponse:
    """Check or uncheck a multi-select option."""
    try:
        wizard.toggle(request.field, request.option, request.selected)
    except InvalidAnswerError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except WizardFlowError as e:
        raise _closed(e)
    return _state_response(wizard)


@router.post("/advance", response_model=StepResponse)
async def advance_step(wizard: SurveyWizard = Depends(get_wizard)) -> StepResponse:
    """Go to the next step if the current one is complete."""
    try:
        result = wizard.advance()
    except WizardFlowError as e:
        raise _closed(e)

    notifications = wizard.drain_notifications()
    return StepResponse(
        success=result.ok,
        step=wizard.step.value,
        step_name=wizard.step.name.lower(),
        missing=result.missing,
        notification=notifications[-1].to_dict() if notifications else None,
    )


@router.post("/retreat", response_model=StepResponse)
async def retreat_step(wizard: SurveyWizard = Depends(get_wizard)) -> StepResponse:
    """Go back one step."""
    try:
        step = wizard.retreat()
    except WizardFlowError as e:
        raise _closed(e)
    return StepResponse(success=True, step=step.value, step_name=step.name.lower())


@router.post("/submit", response_model=SubmitResponse)
async def submit_survey(
    wizard: SurveyWizard = Depends(get_wizard),
    client: SubmissionClient = Depends(get_submission_client),
) -> SubmitResponse:
    """Send the finished survey to the relay. One attempt per call."""
    try:
        outcome = await wizard.submit(client)
    except SubmissionInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except WizardFlowError as e:
        raise _closed(e)

    wizard.drain_notifications()
    return SubmitResponse(
        success=outcome.success,
        view=wizard.view.value,
        notification=outcome.notification.to_dict(),
        redirect_to=outcome.redirect_to.value if outcome.redirect_to else None,
        redirect_delay_seconds=outcome.redirect_delay_seconds,
    )


@router.delete("/session")
async def clear_survey_session(session: SurveySession = Depends(get_survey_session)):
    """Forget the submitted marker and answers so the survey can be taken again."""
    session.marker.clear()
    session.wizard = None
    logger.info("Survey session cleared")
    return {"success": True}
