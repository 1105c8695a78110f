import asyncio
import time
from abc import ABC, abstractmethod
from typing import Optional


class DistributedLockInterface(ABC):
    """Interface for distributed lock providers."""

    @abstractmethod
    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        """
        Acquire a lock for a resource without waiting.

        Args:
            resource_key: The resource to lock (e.g., "quota:auth0|123")
            timeout_seconds: Lock expiration time in seconds

        Returns:
            Lock token if acquired, None otherwise
        """
        pass

    @abstractmethod
    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        """
        Release a lock.

        Args:
            resource_key: The locked resource
            lock_token: The token received when acquiring the lock

        Returns:
            True if released, False if token doesn't match or lock expired
        """
        pass

    async def acquire_lock_with_retry(
        self,
        resource_key: str,
        lock_ttl_seconds: int = 30,
        acquire_timeout_seconds: float = 5.0,
        retry_interval_ms: int = 50,
    ) -> Optional[str]:
        """
        Acquire a lock, retrying until acquire_timeout_seconds has elapsed.

        Returns:
            Lock token if acquired, None if timeout exceeded
        """
        end_time = time.monotonic() + acquire_timeout_seconds
        while True:
            token = await self.acquire_lock(resource_key, lock_ttl_seconds)
            if token:
                return token
            if time.monotonic() >= end_time:
                return None
            await asyncio.sleep(retry_interval_ms / 1000)
