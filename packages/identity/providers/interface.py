from abc import ABC, abstractmethod
from typing import Optional

from packages.identity.models.domain.metadata import MetadataPatch, UserMetadata


class IdentityMetadataProviderInterface(ABC):
    """
    Interface for the identity metadata store.

    Implementations raise MetadataUnavailable for any transport or store
    failure, including timeouts. "Not found" is never reported as a default.
    """

    @abstractmethod
    async def get_metadata(self, user_id: str) -> UserMetadata:
        """Read the user's metadata blob."""
        pass

    @abstractmethod
    async def patch_metadata(self, user_id: str, patch: MetadataPatch) -> UserMetadata:
        """Merge the set fields of patch into the user's metadata."""
        pass

    @abstractmethod
    async def find_user_by_customer_id(self, customer_id: str) -> Optional[str]:
        """Reverse lookup: user id whose metadata links to customer_id, if any."""
        pass
