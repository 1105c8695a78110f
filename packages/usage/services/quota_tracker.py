"""
Free-tier usage quota, stored as usageCount in the identity record.

The read-check-write against the identity store is not atomic, so each
increment runs under a per-user lock from the lock provider. Two concurrent
requests for the same user can therefore never both be admitted from the
same count.
"""

import asyncio
from typing import Optional

from common.core.config import settings
from common.core.exceptions import MetadataUnavailable, QuotaExceeded
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.providers.locking.factory import get_lock_provider
from common.providers.locking.interface import DistributedLockInterface
from packages.identity.models.domain.metadata import MetadataPatch
from packages.identity.providers.factory import get_identity_provider
from packages.identity.providers.interface import IdentityMetadataProviderInterface

logger = get_logger(__name__)


def quota_lock_key(user_id: str) -> str:
    return f"quota:{user_id}"


class QuotaTracker:
    """Service for free-tier quota enforcement."""

    def __init__(
        self,
        identity_provider: Optional[IdentityMetadataProviderInterface] = None,
        lock_provider: Optional[DistributedLockInterface] = None,
        limit: Optional[int] = None,
    ):
        self.identity_provider = identity_provider or get_identity_provider()
        self.lock_provider = lock_provider or get_lock_provider()
        self.limit = settings.free_tier_usage_limit if limit is None else limit

    @trace_span
    async def track(self, user_id: str, should_increment: bool = True) -> int:
        """
        Record one free-tier action, or just read the current count.

        Returns:
            The usage count after this call

        Raises:
            QuotaExceeded: if incrementing and the user is already at the limit
            MetadataUnavailable: if the identity store or the lock is unavailable
        """
        if not should_increment:
            metadata = await self.identity_provider.get_metadata(user_id)
            return metadata.usage_count

        lock_key = quota_lock_key(user_id)
        lock_ttl = settings.quota_lock_ttl_seconds
        token = await self.lock_provider.acquire_lock_with_retry(
            lock_key,
            lock_ttl_seconds=lock_ttl,
            acquire_timeout_seconds=settings.quota_lock_timeout_seconds,
        )
        if token is None:
            logger.warning(
                "Timed out waiting for quota lock", extra={"user_id": user_id}
            )
            raise MetadataUnavailable(f"Quota lock busy for {user_id}")

        try:
            # Bounded by the lock TTL so the lock cannot lapse mid-update
            return await asyncio.wait_for(self._increment(user_id), timeout=lock_ttl)
        except asyncio.TimeoutError as e:
            raise MetadataUnavailable(f"Quota update timed out for {user_id}") from e
        finally:
            await self.lock_provider.release_lock(lock_key, token)

    async def _increment(self, user_id: str) -> int:
        metadata = await self.identity_provider.get_metadata(user_id)
        usage_count = metadata.usage_count

        if usage_count >= self.limit:
            logger.info(
                "Free-tier quota exhausted",
                extra={"user_id": user_id, "usage_count": usage_count},
            )
            raise QuotaExceeded(user_id, usage_count, self.limit)

        usage_count += 1
        await self.identity_provider.patch_metadata(
            user_id, MetadataPatch(usage_count=usage_count)
        )
        logger.info(
            f"Usage tracked: {usage_count}/{self.limit}",
            extra={"user_id": user_id, "usage_count": usage_count},
        )
        return usage_count
