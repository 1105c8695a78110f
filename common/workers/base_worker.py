import asyncio
from abc import ABC, abstractmethod
from typing import Optional
from uuid import uuid4

from common.core.otel_axiom_exporter import get_logger

logger = get_logger(__name__)


class PeriodicWorker(ABC):
    """Base worker that runs one unit of work on a fixed interval."""

    def __init__(self, name: str, interval_seconds: float, worker_id: Optional[str] = None):
        self.name = name
        self.interval_seconds = interval_seconds
        self.worker_id = worker_id or f"{name}_worker_{uuid4()}"
        self.running = False

    async def start(self):
        """Run the work loop until stopped."""
        if self.running:
            logger.warning(f"Worker {self.worker_id} is already running")
            return

        self.running = True
        logger.info(f"Starting worker {self.worker_id}, every {self.interval_seconds}s")

        try:
            while self.running:
                try:
                    await self.run_once()
                except Exception as e:
                    # One bad pass must not stop later passes
                    logger.error(
                        f"Error in worker {self.worker_id} pass: {e}", exc_info=True
                    )
                await asyncio.sleep(self.interval_seconds)
        finally:
            self.running = False

    async def stop(self):
        """Stop the worker."""
        self.running = False
        logger.info(f"Stopping worker {self.worker_id}")

    @abstractmethod
    async def run_once(self):
        """One pass of work. Must be implemented by subclasses."""
        pass
