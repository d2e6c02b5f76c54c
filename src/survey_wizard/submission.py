"""
Submission client - posts a finished survey to the relay.

The relay's response body is never parsed; only whether the call went
through matters.
"""

import logging

import httpx

logger = logging.getLogger(__name__)

SURVEY_PATH = "/api/survey"


class SubmissionError(Exception):
    """The relay could not be reached or did not accept the submission."""


class SubmissionClient:
    """
    Sends one survey payload per call. No retries.

    ``transport`` is passed straight to httpx, so tests (and the in-process
    terminal front-end) can route requests without a network.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def url(self) -> str:
        return f"{self.base_url}{SURVEY_PATH}"

    async def send(self, payload: dict) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise SubmissionError("Request timed out") from e
        except httpx.HTTPStatusError as e:
            raise SubmissionError(f"Relay returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise SubmissionError(f"Could not reach relay: {e}") from e

        logger.debug(f"Submission accepted by {self.url}")
