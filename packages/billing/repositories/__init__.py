"""Billing repositories."""

from packages.billing.repositories.webhook_event_repository import (
    WebhookEventRepository,
)

__all__ = [
    "WebhookEventRepository",
]
