"""
Survey Wizard State Management.

Tracks the respondent's position in the eight-step survey, gates every
forward move on that step's validator, and runs the one-shot submission
handshake with the relay.

The wizard never looks anything up from the environment: whether this
session already submitted is handed in as a SessionMarker.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Literal

from pydantic import ValidationError

from .forms import (
    MULTI_SELECT_OPTIONS,
    SurveyResponse,
    ValidationErrorKind,
    field_name_for,
    is_blank,
    is_valid_email,
    missing_age,
    missing_app_usage,
    missing_gender_location,
    missing_identity,
    missing_interests,
    missing_platform_investment,
    missing_product_fit,
    requires_platform_feedback,
)
from .submission import SubmissionError

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT_DELAY_SECONDS = 2.0

INCOMPLETE_TITLE = "Please complete all required fields"
INCOMPLETE_MESSAGE = "Fill in all the required information before proceeding."
INVALID_EMAIL_MESSAGE = "Please enter a valid email address."


# =============================================================================
# Errors
# =============================================================================

class WizardError(Exception):
    """Base class for wizard flow errors."""


class InvalidAnswerError(WizardError, ValueError):
    """An answer names an unknown field or a label outside its option set."""


class WizardFlowError(WizardError):
    """An operation was attempted from a state that does not allow it."""


class SubmissionInProgressError(WizardError):
    """A submission is already in flight for this session."""


# =============================================================================
# Steps
# =============================================================================

class WizardStep(Enum):
    """The eight survey pages, in order."""
    WELCOME = 0              # Intro, nothing collected
    IDENTITY = 1             # Name + email
    AGE = 2
    GENDER_LOCATION = 3
    INTERESTS = 4            # Multi-select topics
    APP_USAGE = 5            # Branches on hasUsedApps
    PLATFORM_INVESTMENT = 6  # Platform feedback (if yes) + monthly investment
    PRODUCT_FIT = 7          # Final step, submits

    @property
    def is_final(self) -> bool:
        return self is FINAL_STEP

    def next(self) -> "WizardStep":
        return WizardStep(min(self.value + 1, FINAL_STEP.value))

    def previous(self) -> "WizardStep":
        return WizardStep(max(self.value - 1, 0))


FINAL_STEP = WizardStep.PRODUCT_FIT
TOTAL_STEPS = len(WizardStep)


def _nothing_missing(response: SurveyResponse) -> list[str]:
    return []


STEP_VALIDATORS: dict[WizardStep, Callable[[SurveyResponse], list[str]]] = {
    WizardStep.WELCOME: _nothing_missing,
    WizardStep.IDENTITY: missing_identity,
    WizardStep.AGE: missing_age,
    WizardStep.GENDER_LOCATION: missing_gender_location,
    WizardStep.INTERESTS: missing_interests,
    WizardStep.APP_USAGE: missing_app_usage,
    WizardStep.PLATFORM_INVESTMENT: missing_platform_investment,
    WizardStep.PRODUCT_FIT: missing_product_fit,
}


class WizardView(Enum):
    """What the respondent is looking at."""
    WIZARD = "wizard"
    THANK_YOU = "thank_you"


# =============================================================================
# Results
# =============================================================================

@dataclass
class StepValidation:
    """Outcome of checking one step."""
    step: WizardStep
    missing: list[str] = field(default_factory=list)
    error: ValidationErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Notification:
    """A toast shown to the respondent."""
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description, "variant": self.variant}


@dataclass
class SubmissionOutcome:
    """Result of one user-initiated submit."""
    success: bool
    notification: Notification
    redirect_to: WizardView | None = None
    redirect_delay_seconds: float = 0.0


@dataclass
class SessionMarker:
    """Per-session record of whether the survey was already submitted."""
    submitted: bool = False
    submitted_at: str | None = None

    def mark_submitted(self) -> None:
        self.submitted = True
        self.submitted_at = datetime.now(timezone.utc).isoformat()

    def clear(self) -> None:
        self.submitted = False
        self.submitted_at = None


# =============================================================================
# Validation
# =============================================================================

def validate_step(step: WizardStep, response: SurveyResponse) -> StepValidation:
    """
    Check whether ``step`` may be left going forward.

    A malformed (but present) email on the identity step is reported as
    INVALID_EMAIL so the respondent sees a specific message; every other
    failure is INCOMPLETE.
    """
    missing = STEP_VALIDATORS[step](response)
    if not missing:
        return StepValidation(step=step)

    if (
        step is WizardStep.IDENTITY
        and not is_blank(response.email)
        and not is_valid_email(response.email)
    ):
        return StepValidation(step=step, missing=missing, error=ValidationErrorKind.INVALID_EMAIL)

    return StepValidation(step=step, missing=missing, error=ValidationErrorKind.INCOMPLETE)


def validation_notification(result: StepValidation) -> Notification:
    """Build the toast for a failed step."""
    if result.error is ValidationErrorKind.INVALID_EMAIL:
        description = INVALID_EMAIL_MESSAGE
    else:
        description = INCOMPLETE_MESSAGE
    return Notification(title=INCOMPLETE_TITLE, description=description, variant="destructive")


# =============================================================================
# Wizard
# =============================================================================

class SurveyWizard:
    """
    One respondent's pass through the survey.

    Answers persist across navigation: advance() and retreat() only move the
    step index, they never touch the response.
    """

    def __init__(
        self,
        marker: SessionMarker | None = None,
        response: SurveyResponse | None = None,
        redirect_delay_seconds: float = DEFAULT_REDIRECT_DELAY_SECONDS,
    ):
        self.marker = marker if marker is not None else SessionMarker()
        self.response = response if response is not None else SurveyResponse()
        self.redirect_delay_seconds = redirect_delay_seconds
        self.step = WizardStep.WELCOME
        self.view = WizardView.WIZARD
        self.submitting = False
        self.notifications: list[Notification] = []

    @classmethod
    def mount(
        cls,
        marker: SessionMarker,
        return_to_intro: bool = False,
        **kwargs: Any,
    ) -> "SurveyWizard":
        """
        Create the wizard for a session, applying the re-entry guard.

        A session that already submitted lands on the thank-you view unless
        the caller explicitly asked to go back to the intro.
        """
        wizard = cls(marker=marker, **kwargs)
        wizard.reenter(return_to_intro=return_to_intro)
        return wizard

    def reenter(self, return_to_intro: bool = False) -> WizardView:
        """Re-apply the re-entry guard when the respondent comes back."""
        if return_to_intro:
            self.step = WizardStep.WELCOME
            self.view = WizardView.WIZARD
        elif self.marker.submitted:
            self.view = WizardView.THANK_YOU
        return self.view

    def _ensure_open(self) -> None:
        if self.view is WizardView.THANK_YOU:
            raise WizardFlowError("The survey is closed for this session")

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @property
    def progress(self) -> float:
        """Percent complete, counting the current step."""
        return (self.step.value + 1) / TOTAL_STEPS * 100

    @property
    def submitted(self) -> bool:
        return self.marker.submitted

    def validate(self, step: WizardStep | None = None) -> StepValidation:
        return validate_step(step if step is not None else self.step, self.response)

    def _notify(self, notification: Notification) -> Notification:
        self.notifications.append(notification)
        return notification

    def drain_notifications(self) -> list[Notification]:
        """Return pending toasts and forget them."""
        pending, self.notifications = self.notifications, []
        return pending

    # -------------------------------------------------------------------------
    # Answers
    # -------------------------------------------------------------------------

    def update(self, key: str, value: Any) -> None:
        """Set one answer. ``key`` may be the snake_case or camelCase name."""
        self._ensure_open()
        name = field_name_for(key)
        if name is None:
            raise InvalidAnswerError(f"Unknown survey field: {key}")
        try:
            setattr(self.response, name, value)
        except ValidationError as e:
            raise InvalidAnswerError(str(e)) from e

    def update_many(self, answers: dict[str, Any]) -> None:
        """Apply several answers at once; nothing changes if any is invalid."""
        self._ensure_open()
        merged = self.response.model_dump()
        for key, value in answers.items():
            name = field_name_for(key)
            if name is None:
                raise InvalidAnswerError(f"Unknown survey field: {key}")
            merged[name] = value
        try:
            self.response = SurveyResponse.model_validate(merged)
        except ValidationError as e:
            raise InvalidAnswerError(str(e)) from e

    def toggle(self, key: str, option: str, selected: bool) -> None:
        """Check or uncheck one option of a multi-select question."""
        name = field_name_for(key)
        if name not in MULTI_SELECT_OPTIONS:
            raise InvalidAnswerError(f"Not a multi-select field: {key}")
        current: list[str] = getattr(self.response, name)
        if selected:
            chosen = current if option in current else [*current, option]
        else:
            chosen = [o for o in current if o != option]
        self.update(name, chosen)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def advance(self) -> StepValidation:
        """
        Move forward one step if the current step validates.

        On the final step a passing validation does not move; submit()
        is the only way forward from there.
        """
        self._ensure_open()
        result = self.validate()
        if not result.ok:
            self._notify(validation_notification(result))
            logger.debug(f"Blocked on {self.step.name}: missing {result.missing}")
            return result

        if not self.step.is_final:
            self.step = self.step.next()
        return result

    def retreat(self) -> WizardStep:
        """Move back one step without re-validating."""
        self._ensure_open()
        self.step = self.step.previous()
        return self.step

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    async def submit(self, client) -> SubmissionOutcome:
        """
        Send the response once through ``client`` (a SubmissionClient).

        Raises:
            SubmissionInProgressError: another submit has not finished yet
            WizardFlowError: not on the final step, or already submitted
        """
        if self.submitting:
            raise SubmissionInProgressError("A submission is already in progress")
        if self.marker.submitted:
            raise WizardFlowError("This session has already submitted the survey")
        if not self.step.is_final:
            raise WizardFlowError(f"Cannot submit from step {self.step.name}")

        result = self.validate()
        if not result.ok:
            notification = self._notify(validation_notification(result))
            return SubmissionOutcome(success=False, notification=notification)

        self.submitting = True
        try:
            await client.send(self.response.to_payload())
        except SubmissionError as e:
            logger.warning(f"Survey submission failed: {e}")
            notification = self._notify(Notification(
                title="Submission failed",
                description="We could not send your answers. Please try again.",
                variant="destructive",
            ))
            return SubmissionOutcome(success=False, notification=notification)
        finally:
            self.submitting = False

        self.marker.mark_submitted()
        self.view = WizardView.THANK_YOU
        logger.info("Survey submitted")
        notification = self._notify(Notification(
            title="Survey Submitted! 🎉",
            description="Thank you for helping us improve financial education!",
        ))
        return SubmissionOutcome(
            success=True,
            notification=notification,
            redirect_to=WizardView.THANK_YOU,
            redirect_delay_seconds=self.redirect_delay_seconds,
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Snapshot for API responses."""
        return {
            "step": self.step.value,
            "step_name": self.step.name.lower(),
            "total_steps": TOTAL_STEPS,
            "progress": self.progress,
            "view": self.view.value,
            "submitted": self.marker.submitted,
            "submitting": self.submitting,
            "requires_platform_feedback": requires_platform_feedback(self.response),
            "answers": self.response.to_payload(),
        }
