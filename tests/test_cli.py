"""
Tests for the fine-survey command line.
"""

import pytest
from typer.testing import CliRunner

from fine_survey import __version__
from fine_survey.main import STEP_QUESTIONS, app, parse_choices, visible_questions
from survey_wizard.forms import AGE_OPTIONS, INTEREST_OPTIONS, SurveyResponse
from survey_wizard.state import WizardStep

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_health():
    result = runner.invoke(app, ["health"])
    assert result.exit_code == 0
    assert "Configuration loaded" in result.output
    assert "http://relay.test" in result.output


class TestParseChoices:
    def test_single(self):
        assert parse_choices("2", AGE_OPTIONS, multi=False) == AGE_OPTIONS[1]

    def test_single_rejects_several(self):
        assert parse_choices("1,2", AGE_OPTIONS, multi=False) is None

    def test_multi_dedupes_in_order(self):
        assert parse_choices("3, 1, 3", INTEREST_OPTIONS, multi=True) == [INTEREST_OPTIONS[2], INTEREST_OPTIONS[0]]

    @pytest.mark.parametrize("raw", ["", "0", "99", "abc", " , "])
    def test_bad_input(self, raw):
        assert parse_choices(raw, AGE_OPTIONS, multi=True) is None


def test_every_step_has_questions():
    for step in WizardStep:
        if step is not WizardStep.WELCOME:
            assert STEP_QUESTIONS[step]


def test_platform_questions_hidden_without_apps():
    response = SurveyResponse(has_used_apps="no")
    fields = [q.field for q in visible_questions(WizardStep.PLATFORM_INVESTMENT, response)]
    assert fields == ["monthly_investment"]

    response.has_used_apps = "yes"
    fields = [q.field for q in visible_questions(WizardStep.PLATFORM_INVESTMENT, response)]
    assert "platform_features" in fields
    assert "experience_rating" in fields
