"""
FinE Survey Wizard.

Collects one respondent's answers across eight pages and submits them once
to the relay.

Steps:
0. Welcome
1. Identity - name, email
2. Age
3. Gender + location
4. Interests
5. Prior app usage (branches on the answer)
6. Platform feedback (only if apps were used) + monthly investment
7. Product fit - submits
"""

from .forms import SurveyResponse
from .state import SessionMarker, SurveyWizard, WizardStep, WizardView
from .submission import SubmissionClient, SubmissionError

__all__ = [
    "SurveyResponse",
    "SessionMarker",
    "SurveyWizard",
    "WizardStep",
    "WizardView",
    "SubmissionClient",
    "SubmissionError",
]
