from common.workers.launcher import WorkerLauncher
from packages.billing.workers.webhook_maintenance_worker import (
    WebhookMaintenanceWorker,
)

if __name__ == "__main__":
    WorkerLauncher().run(
        worker_factory=WebhookMaintenanceWorker,
        worker_name="Webhook Maintenance Worker",
    )
