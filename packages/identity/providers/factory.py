"""Factory for the process-wide identity metadata provider."""

from typing import Optional

from common.core.config import settings
from common.core.constants import IdentityProviderType
from common.core.otel_axiom_exporter import get_logger
from packages.identity.providers.auth0_management import Auth0MetadataProvider
from packages.identity.providers.interface import IdentityMetadataProviderInterface
from packages.identity.providers.management_token import ManagementTokenProvider
from packages.identity.providers.memory_metadata import MemoryMetadataProvider

logger = get_logger(__name__)

_identity_provider: Optional[IdentityMetadataProviderInterface] = None


def get_identity_provider() -> IdentityMetadataProviderInterface:
    """
    Get the configured identity metadata provider.

    Built once per process so the Management API token cache is shared by
    every request.
    """
    global _identity_provider

    if _identity_provider is None:
        if settings.identity_provider == IdentityProviderType.MEMORY:
            _identity_provider = MemoryMetadataProvider()
        else:
            token_provider = ManagementTokenProvider(
                domain=settings.auth0_domain,
                client_id=settings.auth0_client_id,
                client_secret=settings.auth0_client_secret,
                refresh_margin_seconds=settings.auth0_token_refresh_margin_seconds,
                timeout_seconds=settings.identity_timeout_seconds,
            )
            _identity_provider = Auth0MetadataProvider(
                domain=settings.auth0_domain,
                token_provider=token_provider,
                timeout_seconds=settings.identity_timeout_seconds,
            )
        logger.info(f"Initialized {settings.identity_provider.value} identity provider")

    return _identity_provider
