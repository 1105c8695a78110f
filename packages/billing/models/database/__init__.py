"""Database models for billing."""

from packages.billing.models.database.webhook_event import WebhookEventEntity

__all__ = [
    "WebhookEventEntity",
]
