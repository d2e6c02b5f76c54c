"""
Survey Forms - Answer model, option lists and validation predicates.

Every question in the survey has either free text or a fixed set of labels.
The labels are the exact strings sent to the spreadsheet sink, so they are
never translated or normalized.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Valid Options
# =============================================================================

AGE_OPTIONS = [
    "Under 18 years old",
    "18 to 24 years old",
    "25 to 34 years old",
    "35 to 44 years old",
    "45 to 54 years old",
    "55 years old or older",
]

GENDER_OPTIONS = [
    "Male",
    "Female",
    "Prefer not to say",
]

INTEREST_OPTIONS = [
    "Stocks (equities)",
    "Investment Funds (mutual funds, hedge funds, bond funds, etc.)",
    "Fixed Income (government bonds, corporate bonds, savings accounts, certificates of deposit)",
    "Financial Planning & Budgeting",
    "Retirement Plans (401(k), IRAs, pension schemes)",
    "Cryptocurrencies & Digital Assets",
    "International Investments (foreign stocks, ETFs, ADRs)",
]

HAS_USED_APPS_OPTIONS = ["yes", "no"]

PLATFORM_FEATURE_OPTIONS = [
    "Practical lessons",
    "Short videos",
    "Quick tips",
    "Simple language",
    "Simulations",
    "Interaction with instructors",
    "Fast market updates",
    "Education and investment tools",
]

EXPERIENCE_RATING_OPTIONS = [
    "1 – Very dissatisfied",
    "2 – Dissatisfied",
    "3 – Neutral",
    "4 – Satisfied",
    "5 – Very satisfied",
]

MONTHLY_INVESTMENT_OPTIONS = [
    "Nothing, I would only use it if it were free",
    "Up to $10.00 per month",
    "Between $10.00 and $19.99 per month",
    "Between $19.99 and $29.99 per month",
    "$30.00 or more",
]

INTEREST_LEVEL_OPTIONS = [
    "Not interested",
    "Slightly interested",
    "Neutral",
    "Interested",
    "Very interested",
]

USAGE_FREQUENCY_OPTIONS = [
    "Once a month or less",
    "A few times a month",
    "Weekly",
    "2 to 3 times a week",
    "Daily",
]

USEFULNESS_OPTIONS = [
    "Not useful at all",
    "Slightly useful",
    "Moderately useful",
    "Very useful",
    "Essential",
]

WOULD_RECOMMEND_OPTIONS = ["Yes", "No", "Maybe"]

# Field name (python) -> allowed labels, for single-choice questions
CHOICE_OPTIONS: dict[str, list[str]] = {
    "age": AGE_OPTIONS,
    "gender": GENDER_OPTIONS,
    "has_used_apps": HAS_USED_APPS_OPTIONS,
    "experience_rating": EXPERIENCE_RATING_OPTIONS,
    "monthly_investment": MONTHLY_INVESTMENT_OPTIONS,
    "interest_level": INTEREST_LEVEL_OPTIONS,
    "usage_frequency": USAGE_FREQUENCY_OPTIONS,
    "usefulness": USEFULNESS_OPTIONS,
    "would_recommend": WOULD_RECOMMEND_OPTIONS,
}

# Field name (python) -> allowed labels, for multi-select questions
MULTI_SELECT_OPTIONS: dict[str, list[str]] = {
    "interests": INTEREST_OPTIONS,
    "platform_features": PLATFORM_FEATURE_OPTIONS,
}

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# =============================================================================
# Answer Model
# =============================================================================

class SurveyResponse(BaseModel):
    """
    All answers collected by the wizard.

    Every field starts empty and is filled in step by step. The JSON form
    uses the camelCase names the spreadsheet sink expects (``hasUsedApps``,
    ``platformFeatures``, ...); python code uses snake_case.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
        extra="forbid",
    )

    # Identity
    name: str = ""
    email: str = ""

    # Demographics
    age: str = ""
    gender: str = ""
    location: str = ""

    # Interests
    interests: list[str] = Field(default_factory=list)

    # Prior usage
    has_used_apps: str = Field(default="", alias="hasUsedApps")
    platforms_used: str = Field(default="", alias="platformsUsed")
    platform_features: list[str] = Field(default_factory=list, alias="platformFeatures")
    experience_rating: str = Field(default="", alias="experienceRating")
    platform_feedback: str = Field(default="", alias="platformFeedback")

    # Willingness to pay
    monthly_investment: str = Field(default="", alias="monthlyInvestment")

    # Product fit
    interest_level: str = Field(default="", alias="interestLevel")
    usage_frequency: str = Field(default="", alias="usageFrequency")
    usefulness: str = ""
    would_recommend: str = Field(default="", alias="wouldRecommend")

    @field_validator(*CHOICE_OPTIONS.keys())
    @classmethod
    def check_choice(cls, v: str, info) -> str:
        """Single-choice answers must be empty or one of the fixed labels."""
        if v and v not in CHOICE_OPTIONS[info.field_name]:
            raise ValueError(f"Unknown option for {info.field_name}: {v!r}")
        return v

    @field_validator(*MULTI_SELECT_OPTIONS.keys())
    @classmethod
    def check_selection(cls, v: list[str], info) -> list[str]:
        """Multi-select answers are a duplicate-free subset of the fixed labels."""
        allowed = MULTI_SELECT_OPTIONS[info.field_name]
        unknown = [o for o in v if o not in allowed]
        if unknown:
            raise ValueError(f"Unknown options for {info.field_name}: {unknown}")
        return list(dict.fromkeys(v))

    def to_payload(self) -> dict:
        """Serialize for the relay, using the sink's field names."""
        return self.model_dump(by_alias=True)


def field_name_for(key: str) -> str | None:
    """Resolve a python or camelCase answer key to the model field name."""
    if key in SurveyResponse.model_fields:
        return key
    for name, info in SurveyResponse.model_fields.items():
        if info.alias == key:
            return name
    return None


# =============================================================================
# Validation Predicates
# =============================================================================

class ValidationErrorKind(str, Enum):
    """Why a step refused to advance."""
    INCOMPLETE = "incomplete"
    INVALID_EMAIL = "invalid_email"


def is_valid_email(email: str) -> bool:
    """Basic ``local@domain.tld`` shape check, no RFC validation."""
    return bool(EMAIL_PATTERN.match(email))


def is_blank(value: str) -> bool:
    return value.strip() == ""


def requires_platform_feedback(response: SurveyResponse) -> bool:
    """Platform questions are only required from people who used an app."""
    return response.has_used_apps == "yes"


def missing_identity(response: SurveyResponse) -> list[str]:
    missing = []
    if is_blank(response.name):
        missing.append("name")
    if is_blank(response.email) or not is_valid_email(response.email):
        missing.append("email")
    return missing


def missing_age(response: SurveyResponse) -> list[str]:
    return [] if response.age else ["age"]


def missing_gender_location(response: SurveyResponse) -> list[str]:
    missing = []
    if not response.gender:
        missing.append("gender")
    if is_blank(response.location):
        missing.append("location")
    return missing


def missing_interests(response: SurveyResponse) -> list[str]:
    return [] if response.interests else ["interests"]


def missing_app_usage(response: SurveyResponse) -> list[str]:
    if not response.has_used_apps:
        return ["hasUsedApps"]
    if requires_platform_feedback(response) and is_blank(response.platforms_used):
        return ["platformsUsed"]
    return []


def missing_platform_investment(response: SurveyResponse) -> list[str]:
    missing = []
    if requires_platform_feedback(response):
        if not response.platform_features:
            missing.append("platformFeatures")
        if not response.experience_rating:
            missing.append("experienceRating")
    if not response.monthly_investment:
        missing.append("monthlyInvestment")
    return missing


def missing_product_fit(response: SurveyResponse) -> list[str]:
    missing = []
    if not response.interest_level:
        missing.append("interestLevel")
    if not response.usage_frequency:
        missing.append("usageFrequency")
    if not response.usefulness:
        missing.append("usefulness")
    if not response.would_recommend:
        missing.append("wouldRecommend")
    return missing


# =============================================================================
# API Response Helpers
# =============================================================================

def get_form_options() -> dict:
    """
    Get all option lists for rendering, keyed by the wire field name.
    """
    return {
        "age": AGE_OPTIONS,
        "gender": GENDER_OPTIONS,
        "interests": INTEREST_OPTIONS,
        "hasUsedApps": HAS_USED_APPS_OPTIONS,
        "platformFeatures": PLATFORM_FEATURE_OPTIONS,
        "experienceRating": EXPERIENCE_RATING_OPTIONS,
        "monthlyInvestment": MONTHLY_INVESTMENT_OPTIONS,
        "interestLevel": INTEREST_LEVEL_OPTIONS,
        "usageFrequency": USAGE_FREQUENCY_OPTIONS,
        "usefulness": USEFULNESS_OPTIONS,
        "wouldRecommend": WOULD_RECOMMEND_OPTIONS,
    }
