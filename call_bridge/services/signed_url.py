"""
Client for the agent provider's signed-URL endpoint.

Each call needs a short-lived, pre-authorised WebSocket URL for its agent leg. The
provider issues one per authenticated GET; the blocking request runs in a worker
thread so a slow provider only delays the call that asked.
"""

import asyncio
import logging
import os
from typing import Optional

import requests

from call_bridge.config.constants import DEFAULT_API_BASE, LOGGER_NAME, SIGNED_URL_PATH
from call_bridge.exceptions import SignedUrlError

logger = logging.getLogger(LOGGER_NAME)

# Get provider credentials from environment variables
ELEVENLABS_API_KEY = os.getenv("ELEVENLABS_API_KEY")
ELEVENLABS_API_BASE = os.getenv("ELEVENLABS_API_BASE", DEFAULT_API_BASE)
SIGNED_URL_TIMEOUT = float(os.getenv("SIGNED_URL_TIMEOUT", "10"))


class SignedUrlClient:
    """Fetches signed agent connection URLs from the provider's REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key if api_key is not None else ELEVENLABS_API_KEY
        self.api_base = (api_base or ELEVENLABS_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else SIGNED_URL_TIMEOUT
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}{SIGNED_URL_PATH}"

    def fetch(self, agent_id: str) -> str:
        """
        Request a signed URL for an agent, blocking until the provider answers.

        Args:
            agent_id: Identifier of the agent to connect to

        Returns:
            The signed WebSocket URL

        Raises:
            SignedUrlError: On missing configuration, transport failure, an error
                status, or a response without a signed URL
        """
        if not self.api_key:
            raise SignedUrlError("ELEVENLABS_API_KEY environment variable not set")
        if not agent_id:
            raise SignedUrlError("No agent id configured")

        try:
            response = self._session.get(
                self.endpoint,
                params={"agent_id": agent_id},
                headers={"xi-api-key": self.api_key, "accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SignedUrlError(f"Signed URL request failed: {e}") from e

        if not response.ok:
            raise SignedUrlError(
                f"Signed URL request failed ({response.status_code}): {response.text[:200]}"
            )

        try:
            signed_url = response.json().get("signed_url")
        except ValueError as e:
            raise SignedUrlError("Signed URL response is not JSON") from e
        if not signed_url:
            raise SignedUrlError("Signed URL response missing signed_url")

        logger.debug(f"Obtained signed URL for agent {agent_id}")
        return signed_url

    async def get_signed_url(self, agent_id: str) -> str:
        """Fetch a signed URL without blocking the event loop."""
        return await asyncio.to_thread(self.fetch, agent_id)
