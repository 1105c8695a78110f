import asyncio

from unittest.mock import AsyncMock, MagicMock

from common.workers.base_worker import PeriodicWorker
from packages.billing.webhooks.stripe_webhook import WebhookReconciler
from packages.billing.workers.webhook_maintenance_worker import WebhookMaintenanceWorker


class CountingWorker(PeriodicWorker):
    """Concrete PeriodicWorker that stops itself after a number of passes."""

    def __init__(self, passes: int, fail_on: int = -1):
        super().__init__(name="counting", interval_seconds=0)
        self.passes = passes
        self.fail_on = fail_on
        self.calls = 0

    async def run_once(self):
        self.calls += 1
        if self.calls >= self.passes:
            await self.stop()
        if self.calls == self.fail_on:
            raise RuntimeError("bad pass")


class TestPeriodicWorker:
    async def test_runs_until_stopped(self):
        worker = CountingWorker(passes=3)

        await asyncio.wait_for(worker.start(), timeout=1)

        assert worker.calls == 3
        assert worker.running is False

    async def test_failed_pass_does_not_stop_worker(self):
        worker = CountingWorker(passes=3, fail_on=1)

        await asyncio.wait_for(worker.start(), timeout=1)

        assert worker.calls == 3

    async def test_start_is_not_reentrant(self):
        worker = CountingWorker(passes=1)
        worker.running = True

        await worker.start()

        assert worker.calls == 0

    def test_worker_id_includes_name(self):
        assert CountingWorker(passes=1).worker_id.startswith("counting_worker_")


class TestWebhookMaintenanceWorker:
    async def test_run_once_retries_then_purges(self):
        reconciler = MagicMock(spec=WebhookReconciler)
        reconciler.retry_failed_events = AsyncMock(return_value=2)
        reconciler.purge_events_older_than = AsyncMock(return_value=5)
        worker = WebhookMaintenanceWorker(reconciler=reconciler, interval_seconds=60)

        await worker.run_once()

        reconciler.retry_failed_events.assert_awaited_once()
        reconciler.purge_events_older_than.assert_awaited_once()

    async def test_uses_configured_interval(self):
        worker = WebhookMaintenanceWorker(reconciler=MagicMock(spec=WebhookReconciler))

        assert worker.interval_seconds > 0
        assert worker.name == "webhook_maintenance"
