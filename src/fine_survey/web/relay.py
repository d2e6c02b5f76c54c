"""
Submission relay.

Forwards a survey submission, byte for byte, to the spreadsheet sink and
hands back whatever the sink answered. The payload is never parsed, checked
or logged.
"""

import logging
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from fine_survey.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["relay"])

FORWARD_FAILED = "Failed to forward survey data"


async def get_sink_client() -> AsyncIterator[httpx.AsyncClient]:
    """One outbound client per request; no state shared between requests."""
    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.sink_timeout_seconds, follow_redirects=True) as client:
        yield client


@router.post("/api/survey")
async def forward_survey(
    request: Request,
    client: httpx.AsyncClient = Depends(get_sink_client),
) -> Response:
    """
    Relay a submission to the sink.

    200 with the sink's raw body if the forward completed (whatever status
    the sink itself returned), 500 with ``{error, details}`` if it raised.
    """
    body = await request.body()
    content_type = request.headers.get("content-type", "application/json")

    try:
        sink_response = await client.post(
            get_settings().survey_sink_url,
            content=body,
            headers={"Content-Type": content_type},
        )
        text = sink_response.text
    except httpx.HTTPError as e:
        logger.error(f"Survey forward failed: {type(e).__name__}: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": FORWARD_FAILED, "details": str(e)},
        )

    return Response(content=text, status_code=200, media_type="text/html")
