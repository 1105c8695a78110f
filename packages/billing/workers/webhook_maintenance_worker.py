from typing import Optional

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from common.workers.base_worker import PeriodicWorker
from packages.billing.webhooks.stripe_webhook import WebhookReconciler

logger = get_logger(__name__)


class WebhookMaintenanceWorker(PeriodicWorker):
    """Retries failed webhook events and enforces ledger retention."""

    def __init__(
        self,
        reconciler: Optional[WebhookReconciler] = None,
        interval_seconds: Optional[float] = None,
    ):
        super().__init__(
            name="webhook_maintenance",
            interval_seconds=interval_seconds
            or settings.webhook_maintenance_interval_seconds,
        )
        self.reconciler = reconciler or WebhookReconciler()

    async def run_once(self):
        recovered = await self.reconciler.retry_failed_events()
        purged = await self.reconciler.purge_events_older_than(
            settings.webhook_event_retention_days
        )
        logger.info(
            "Webhook maintenance pass complete",
            extra={"recovered": recovered, "purged": purged},
        )
