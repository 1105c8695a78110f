import time
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from .interface import DistributedLockInterface
from common.core.otel_axiom_exporter import get_logger

logger = get_logger(__name__)


@dataclass
class LockEntry:
    """A held lock with its expiry."""

    token: str
    expires_at: float

    def is_expired(self) -> bool:
        return time.monotonic() > self.expires_at


class MemoryLock(DistributedLockInterface):
    """
    In-process lock implementation for a single worker.

    Acquire/release never await between the check and the write, so the
    event loop cannot interleave two acquirers of the same key.
    """

    def __init__(self):
        self._locks: Dict[str, LockEntry] = {}
        logger.info("Memory lock provider initialized")

    async def acquire_lock(
        self, resource_key: str, timeout_seconds: int = 30
    ) -> Optional[str]:
        entry = self._locks.get(resource_key)
        if entry is not None and not entry.is_expired():
            return None

        token = str(uuid.uuid4())
        self._locks[resource_key] = LockEntry(
            token=token, expires_at=time.monotonic() + timeout_seconds
        )
        return token

    async def release_lock(self, resource_key: str, lock_token: str) -> bool:
        entry = self._locks.get(resource_key)
        if entry is None or entry.token != lock_token:
            logger.warning(
                f"Cannot release lock for {resource_key} - token mismatch or lock expired"
            )
            return False

        del self._locks[resource_key]
        return True
