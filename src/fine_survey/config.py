"""
FinE Survey - Configuration and settings.

Everything is read from the environment (or a local .env file).
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SINK_URL = (
    "https://script.google.com/macros/s/"
    "AKfycbxKvr-LW3MxPksCSsLHd86eBwx3Rk93YTgLJV_YMBSLPNs13HnU_evcFSXcWnOCa4Yy4A/exec"
)


class SurveySettings(BaseSettings):
    """
    Settings shared by the relay, the wizard API and the CLI.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Relay: where submissions are forwarded to (Google Apps Script web app)
    survey_sink_url: str = DEFAULT_SINK_URL
    sink_timeout_seconds: float = 30.0

    # Wizard: where the relay lives
    relay_base_url: str = "http://localhost:3001"
    relay_timeout_seconds: float = 15.0

    # Wizard: pause before showing the thank-you view
    redirect_delay_seconds: float = 2.0

    # Web
    port: int = 3001
    cors_origins: list[str] = ["*"]
    serve_wizard_api: bool = True

    # Wizard sessions (in memory)
    session_expire_hours: int = 24  # Drop a session after this long idle
    max_survey_sessions: int = 10_000  # Oldest idle session is dropped beyond this

    # Application
    survey_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> SurveySettings:
    """Get cached settings instance."""
    return SurveySettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: SurveySettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
