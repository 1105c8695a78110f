"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    InvoiceSagaStep,
    InvoiceStatus,
    ReconciliationStep,
    WebhookEventStatus,
)
from packages.billing.models.domain.payment import (
    ChargeRequest,
    FinalizedInvoice,
    InvoiceSaga,
    PaymentMethod,
)
from packages.billing.models.domain.webhook_event import WebhookEvent

__all__ = [
    # Enums
    "InvoiceSagaStep",
    "InvoiceStatus",
    "ReconciliationStep",
    "WebhookEventStatus",
    # Payments
    "ChargeRequest",
    "FinalizedInvoice",
    "InvoiceSaga",
    "PaymentMethod",
    # Webhooks
    "WebhookEvent",
]
