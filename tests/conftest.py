"""
Pytest configuration and fixtures for FinE survey tests.
"""

import os

# Set test environment before importing fine_survey modules
os.environ["SURVEY_ENV"] = "development"
os.environ["SURVEY_SINK_URL"] = "https://sink.test/exec"
os.environ["RELAY_BASE_URL"] = "http://relay.test"
os.environ["REDIRECT_DELAY_SECONDS"] = "0"

import httpx
import pytest

from survey_wizard.forms import (
    AGE_OPTIONS,
    EXPERIENCE_RATING_OPTIONS,
    GENDER_OPTIONS,
    INTEREST_LEVEL_OPTIONS,
    INTEREST_OPTIONS,
    MONTHLY_INVESTMENT_OPTIONS,
    PLATFORM_FEATURE_OPTIONS,
    USAGE_FREQUENCY_OPTIONS,
    USEFULNESS_OPTIONS,
    SurveyResponse,
)
from survey_wizard.state import SessionMarker, SurveyWizard


class FakeSubmissionClient:
    """Records payloads instead of posting them."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.payloads: list[dict] = []

    async def send(self, payload: dict) -> None:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error


class RecordingSink:
    """httpx handler standing in for the spreadsheet endpoint."""

    def __init__(self, text: str = "OK", status_code: int = 200, error: Exception | None = None):
        self.text = text
        self.status_code = status_code
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, text=self.text)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


# Answers per step, keyed by wire name
STEP_ANSWERS = {
    1: {"name": "Jane Doe", "email": "jane@example.com"},
    2: {"age": AGE_OPTIONS[2]},
    3: {"gender": GENDER_OPTIONS[1], "location": "Brazil, São Paulo, SP"},
    4: {"interests": [INTEREST_OPTIONS[0], INTEREST_OPTIONS[3]]},
    5: {"hasUsedApps": "yes", "platformsUsed": "Mint, YNAB"},
    6: {
        "platformFeatures": [PLATFORM_FEATURE_OPTIONS[1]],
        "experienceRating": EXPERIENCE_RATING_OPTIONS[3],
        "monthlyInvestment": MONTHLY_INVESTMENT_OPTIONS[1],
    },
    7: {
        "interestLevel": INTEREST_LEVEL_OPTIONS[4],
        "usageFrequency": USAGE_FREQUENCY_OPTIONS[2],
        "usefulness": USEFULNESS_OPTIONS[3],
        "wouldRecommend": "Yes",
    },
}


def complete_answers() -> dict:
    """Every answer needed to reach and pass the final step."""
    merged = {}
    for answers in STEP_ANSWERS.values():
        merged.update(answers)
    return merged


@pytest.fixture
def marker():
    return SessionMarker()


@pytest.fixture
def wizard(marker):
    return SurveyWizard(marker=marker, redirect_delay_seconds=0)


@pytest.fixture
def completed_response():
    return SurveyResponse.model_validate(complete_answers())


@pytest.fixture
def wizard_at_final_step(marker, completed_response):
    """Wizard on the product-fit step with everything answered."""
    wizard = SurveyWizard(marker=marker, response=completed_response, redirect_delay_seconds=0)
    for _ in range(7):
        assert wizard.advance().ok
    return wizard


@pytest.fixture
def fake_client():
    return FakeSubmissionClient()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def failing_client():
    from survey_wizard.submission import SubmissionError

    return FakeSubmissionClient(error=SubmissionError("Could not reach relay"))


@pytest.fixture
def step_answers():
    return {step: dict(answers) for step, answers in STEP_ANSWERS.items()}


@pytest.fixture
def all_answers():
    return complete_answers()


@pytest.fixture
def make_sink():
    """Factory for sinks with a chosen reply or failure."""
    return RecordingSink
