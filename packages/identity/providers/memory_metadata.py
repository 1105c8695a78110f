import asyncio
from typing import Dict, Optional

from common.core.otel_axiom_exporter import get_logger
from packages.identity.models.domain.metadata import MetadataPatch, UserMetadata
from packages.identity.providers.interface import IdentityMetadataProviderInterface

logger = get_logger(__name__)


class MemoryMetadataProvider(IdentityMetadataProviderInterface):
    """
    In-memory identity metadata store for local runs and tests.

    Each call yields to the event loop before touching state, the way a
    network round trip would, so interleavings match the real store.
    """

    def __init__(self, users: Optional[Dict[str, dict]] = None):
        self._users: Dict[str, dict] = {
            user_id: dict(app_metadata) for user_id, app_metadata in (users or {}).items()
        }
        logger.info("Memory identity metadata provider initialized")

    async def get_metadata(self, user_id: str) -> UserMetadata:
        await asyncio.sleep(0)
        return UserMetadata.model_validate(self._users.setdefault(user_id, {}))

    async def patch_metadata(self, user_id: str, patch: MetadataPatch) -> UserMetadata:
        await asyncio.sleep(0)
        app_metadata = self._users.setdefault(user_id, {})
        app_metadata.update(patch.to_app_metadata())
        return UserMetadata.model_validate(app_metadata)

    async def find_user_by_customer_id(self, customer_id: str) -> Optional[str]:
        await asyncio.sleep(0)
        for user_id, app_metadata in self._users.items():
            if app_metadata.get("stripeCustomerId") == customer_id:
                return user_id
        return None
