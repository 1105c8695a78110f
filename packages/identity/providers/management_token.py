"""
Cached Auth0 Management API credential.

One instance is created per process (see factory.py). The token is reused
until it is within the refresh margin of its expiry; concurrent callers that
find it stale wait on a single refresh instead of each fetching their own.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from common.core.exceptions import MetadataUnavailable
from common.core.otel_axiom_exporter import get_logger, trace_span

logger = get_logger(__name__)


@dataclass(frozen=True)
class ManagementToken:
    access_token: str
    expires_at: float  # time.monotonic() deadline

    def is_fresh(self, margin_seconds: float) -> bool:
        return time.monotonic() + margin_seconds < self.expires_at


class ManagementTokenProvider:
    """Client-credentials token for the Auth0 Management API."""

    def __init__(
        self,
        domain: str,
        client_id: str,
        client_secret: str,
        refresh_margin_seconds: float = 60,
        timeout_seconds: float = 10.0,
    ):
        self.domain = domain
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_margin_seconds = refresh_margin_seconds
        self.timeout_seconds = timeout_seconds
        self._token: Optional[ManagementToken] = None
        self._refresh_lock = asyncio.Lock()

    async def get_token(self) -> str:
        token = self._token
        if token and token.is_fresh(self.refresh_margin_seconds):
            return token.access_token

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            token = self._token
            if token and token.is_fresh(self.refresh_margin_seconds):
                return token.access_token

            self._token = await self._fetch_token()
            return self._token.access_token

    def invalidate(self) -> None:
        """Drop the cached token, e.g. after the API rejected it."""
        self._token = None

    @trace_span
    async def _fetch_token(self) -> ManagementToken:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    f"https://{self.domain}/oauth/token",
                    json={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "audience": f"https://{self.domain}/api/v2/",
                        "grant_type": "client_credentials",
                    },
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Error fetching Auth0 Management token: {e}")
            raise MetadataUnavailable("Unable to get Auth0 Management token") from e

        access_token = body.get("access_token")
        if not access_token:
            raise MetadataUnavailable("Auth0 token response missing access_token")

        expires_in = float(body.get("expires_in", 86400))
        logger.info(
            "Fetched Auth0 Management token", extra={"expires_in": expires_in}
        )
        return ManagementToken(
            access_token=access_token, expires_at=time.monotonic() + expires_in
        )
