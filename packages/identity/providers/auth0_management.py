from typing import Any, Optional
from urllib.parse import quote

import httpx

from common.core.exceptions import MetadataUnavailable
from common.core.otel_axiom_exporter import get_logger, trace_span
from packages.identity.models.domain.metadata import MetadataPatch, UserMetadata
from packages.identity.providers.interface import IdentityMetadataProviderInterface
from packages.identity.providers.management_token import ManagementTokenProvider

logger = get_logger(__name__)


class Auth0MetadataProvider(IdentityMetadataProviderInterface):
    """Auth0 Management API implementation of the identity metadata store."""

    def __init__(
        self,
        domain: str,
        token_provider: ManagementTokenProvider,
        timeout_seconds: float = 10.0,
    ):
        if not domain:
            raise ValueError("Auth0 configuration missing: auth0_domain is required")

        self.domain = domain
        self.token_provider = token_provider
        self.timeout_seconds = timeout_seconds
        self.base_url = f"https://{domain}/api/v2"

    @trace_span
    async def get_metadata(self, user_id: str) -> UserMetadata:
        user = await self._request("GET", f"/users/{quote(user_id, safe='')}")
        return UserMetadata.model_validate(user.get("app_metadata") or {})

    @trace_span
    async def patch_metadata(self, user_id: str, patch: MetadataPatch) -> UserMetadata:
        # Auth0 merges top-level app_metadata keys, so only the set fields are sent
        user = await self._request(
            "PATCH",
            f"/users/{quote(user_id, safe='')}",
            json={"app_metadata": patch.to_app_metadata()},
        )
        logger.info(
            "Patched identity metadata",
            extra={"user_id": user_id, "fields": list(patch.to_app_metadata())},
        )
        return UserMetadata.model_validate(user.get("app_metadata") or {})

    @trace_span
    async def find_user_by_customer_id(self, customer_id: str) -> Optional[str]:
        if not customer_id or '"' in customer_id:
            logger.warning(
                "Refusing identity lookup for malformed customer id",
                extra={"customer_id": customer_id},
            )
            return None

        users = await self._request(
            "GET",
            "/users",
            params={
                "q": f'app_metadata.stripeCustomerId:"{customer_id}"',
                "search_engine": "v3",
            },
        )
        if not users:
            return None
        if len(users) > 1:
            logger.warning(
                "Multiple identity records linked to one customer",
                extra={"customer_id": customer_id, "count": len(users)},
            )
        return users[0]["user_id"]

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send an authenticated Management API request, refreshing the token once on 401."""
        for attempt in range(2):
            token = await self.token_provider.get_token()
            try:
                async with httpx.AsyncClient(
                    base_url=self.base_url, timeout=self.timeout_seconds
                ) as client:
                    response = await client.request(
                        method,
                        path,
                        headers={"Authorization": f"Bearer {token}"},
                        **kwargs,
                    )
            except httpx.HTTPError as e:
                logger.error(
                    f"Auth0 request failed: {method} {path}: {e}",
                    extra={"method": method, "path": path},
                )
                raise MetadataUnavailable(f"Auth0 {method} {path} failed") from e

            if response.status_code == 401 and attempt == 0:
                self.token_provider.invalidate()
                continue

            if response.is_error:
                logger.error(
                    f"Auth0 returned {response.status_code} for {method} {path}",
                    extra={"status_code": response.status_code, "body": response.text},
                )
                raise MetadataUnavailable(
                    f"Auth0 {method} {path} returned {response.status_code}"
                )

            return response.json()

        raise MetadataUnavailable(f"Auth0 rejected refreshed token for {method} {path}")
