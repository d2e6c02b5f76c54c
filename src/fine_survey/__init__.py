"""
FinE Market Research - survey wizard and submission relay.

Components:
- survey_wizard: Eight-step survey state machine, validation and submission
- fine_survey.web: Relay endpoint forwarding submissions to the spreadsheet sink
"""

__version__ = "1.0.0"
