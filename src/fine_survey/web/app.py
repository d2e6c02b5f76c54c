"""
FinE Survey Web - FastAPI application.

Hosts the submission relay and, unless disabled, the wizard API.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from fine_survey import __version__
from fine_survey.config import settings
from fine_survey.web.relay import router as relay_router
from survey_wizard.api import router as survey_router

logger = logging.getLogger(__name__)

app = FastAPI(title="FinE Market Research", version=__version__)

# Any origin may post a survey
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Log configuration on startup."""
    logger.info("FinE survey backend starting up...")
    logger.info(f"  Environment: {settings.survey_env}")
    logger.info(f"  Wizard API: {'enabled' if settings.serve_wizard_api else 'disabled'}")


@app.get("/", response_class=PlainTextResponse)
async def root():
    """Liveness check."""
    return "FinE Market Research backend is running."


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(relay_router)

if settings.serve_wizard_api:
    app.include_router(survey_router)
